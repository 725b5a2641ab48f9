"""Application event sourcing – EventSourcedRepository."""

from __future__ import annotations

import abc
from typing import Generic, TypeVar
from uuid import UUID

from niespro_eventstore.application.dispatch import EventBus
from niespro_eventstore.application.event_sourcing.aggregate import EventSourcedAggregate
from niespro_eventstore.application.event_sourcing.store import AppendResult, EventStore
from niespro_eventstore.kernel.types import Ok
from niespro_eventstore.observability.logging import get_logger

T = TypeVar("T", bound=EventSourcedAggregate)

log = get_logger(__name__)


class EventSourcedRepository(Generic[T], abc.ABC):
    """Loads aggregates by replay and saves their pending events.

    ``save`` passes the version the aggregate was loaded at as
    ``expected_version``.  On success the pending events are cleared and
    then published to the optional *bus*; publication happens after the
    append is durable and its failures never undo it.

    Example::

        class OrderRepository(EventSourcedRepository[Order]):
            def _create_empty(self, aggregate_id: UUID) -> Order:
                return Order(aggregate_id)

        repo = OrderRepository(store, bus=bus)
        order = await repo.load(order_id)
        order.confirm()
        result = await repo.save(order)
        if result.is_err():
            ...  # reload and retry, see retry_on_conflict
    """

    def __init__(self, store: EventStore, bus: EventBus | None = None) -> None:
        self._store = store
        self._bus = bus

    @abc.abstractmethod
    def _create_empty(self, aggregate_id: UUID) -> T:
        """Return a blank aggregate instance with *aggregate_id*."""

    async def load(self, aggregate_id: UUID) -> T | None:
        """Replay stored events; returns ``None`` if none exist."""
        records = await self._store.events_for(aggregate_id)
        if not records:
            return None
        aggregate = self._create_empty(aggregate_id)
        serializer = self._store.serializer
        for record in records:
            aggregate.replay(serializer.from_stored(record), record.version)
        return aggregate

    async def save(self, aggregate: T) -> AppendResult:
        pending = list(aggregate.pending_events)
        if not pending:
            return Ok([])

        result = await self._store.append(
            aggregate.id,
            aggregate.aggregate_type(),
            pending,
            expected_version=aggregate.persisted_version,
        )
        if result.is_err():
            return result

        aggregate.pull_events()
        if self._bus is not None:
            for event in pending:
                await self._bus.publish(event)
        log.debug("repository.saved", aggregate_id=str(aggregate.id), version=aggregate.version)
        return result


__all__ = ["EventSourcedRepository"]
