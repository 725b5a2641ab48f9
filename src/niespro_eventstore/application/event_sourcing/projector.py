"""Application event sourcing – Projector abstract base class."""

from __future__ import annotations

import abc
from typing import Generic, Iterable, TypeVar
from uuid import UUID

from niespro_eventstore.application.event_sourcing.store import EventStore
from niespro_eventstore.application.event_sourcing.stored_event import StoredEvent

R = TypeVar("R")


class Projector(Generic[R], abc.ABC):
    """Builds a cross-aggregate read model from events of given types.

    The type parameter *R* is the read-model entity type produced.
    :meth:`catch_up` re-reads every subscribed type from the store and
    projects the records whose ``id`` it has not projected before, oldest
    ``timestamp`` first.  ``timestamp`` is when the event occurred, not when
    it was written, so it cannot serve as a cursor: an event that occurred
    earlier may be appended after a later one was already projected.

    Example::

        class DailyRevenue(Projector[Decimal]):
            event_types = ("OrderCreated",)

            def __init__(self) -> None:
                super().__init__()
                self.totals: dict[date, Decimal] = {}

            async def project(self, event: StoredEvent) -> None:
                ...
    """

    event_types: tuple[str, ...] = ()

    def __init__(self) -> None:
        self._projected: set[UUID] = set()

    @property
    def projected_count(self) -> int:
        return len(self._projected)

    def has_projected(self, record_id: UUID) -> bool:
        return record_id in self._projected

    @abc.abstractmethod
    async def project(self, event: StoredEvent) -> None:
        """Process a single stored event and update the read model."""

    async def project_all(self, events: Iterable[StoredEvent]) -> None:
        for event in events:
            if event.id in self._projected:
                continue
            await self.project(event)
            self._projected.add(event.id)

    async def catch_up(self, store: EventStore) -> int:
        """Project every subscribed event not seen yet; returns how many were new."""
        batch: list[StoredEvent] = []
        for event_type in self.event_types:
            batch.extend(
                e for e in await store.events_by_type(event_type) if e.id not in self._projected
            )
        batch.sort(key=lambda e: (e.timestamp, e.aggregate_id.hex, e.version))
        await self.project_all(batch)
        return len(batch)


__all__ = ["Projector"]
