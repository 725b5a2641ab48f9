"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Sequence
from uuid import UUID

from niespro_eventstore.application.event_sourcing.serialization import EventSerializer
from niespro_eventstore.application.event_sourcing.stored_event import StoredEvent
from niespro_eventstore.kernel.ddd.domain_event import DomainEvent
from niespro_eventstore.kernel.errors import ConcurrencyConflictError, ValidationError
from niespro_eventstore.kernel.time import ensure_utc
from niespro_eventstore.kernel.types import Err, Ok, Result
from niespro_eventstore.observability.logging import get_logger

type AppendResult = Result[list[StoredEvent], ConcurrencyConflictError]

log = get_logger(__name__)


class EventStore(abc.ABC):
    """Port – durable append-only log of domain events, keyed by aggregate.

    ``expected_version`` implements **optimistic concurrency control**:

    - pass ``0`` for an aggregate that has no events yet;
    - pass the version last read from the store otherwise;
    - a mismatch yields ``Err(ConcurrencyConflictError)`` and nothing is
      written.

    Implementations must back the check with a uniqueness guarantee on
    ``(aggregate_id, version)``; the version pre-check alone only fails fast.
    Expected failures are returned, infrastructure failures are raised
    (``SerializationError``, ``StorageUnavailableError``).  Nothing is
    retried inside the store.
    """

    def __init__(self, serializer: EventSerializer) -> None:
        self._serializer = serializer

    @property
    def serializer(self) -> EventSerializer:
        return self._serializer

    @abc.abstractmethod
    async def append(
        self,
        aggregate_id: UUID,
        aggregate_type: str,
        events: Sequence[DomainEvent],
        expected_version: int,
    ) -> AppendResult:
        """Atomically append *events* after checking *expected_version*."""

    @abc.abstractmethod
    async def events_for(self, aggregate_id: UUID, from_version: int = 0) -> list[StoredEvent]:
        """Events of *aggregate_id* with ``version > from_version``, ascending by version."""

    @abc.abstractmethod
    async def events_by_type(
        self,
        event_type: str,
        from_date: datetime | None = None,
    ) -> list[StoredEvent]:
        """Events tagged *event_type*, ascending by ``timestamp``.

        When *from_date* is given only events with ``timestamp >= from_date``
        are returned.  Ties are ordered by ``(aggregate_id, version)``.
        """

    @abc.abstractmethod
    async def current_version(self, aggregate_id: UUID) -> int:
        """Highest stored version for *aggregate_id*, or ``0``."""

    @abc.abstractmethod
    async def exists(self, aggregate_id: UUID) -> bool:
        """``True`` iff at least one event is stored for *aggregate_id*."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_expected_version(expected_version: int) -> None:
        if expected_version < 0:
            raise ValidationError(f"expected_version must be >= 0, got {expected_version}")

    def _build_records(
        self,
        aggregate_id: UUID,
        aggregate_type: str,
        events: Sequence[DomainEvent],
        current_version: int,
    ) -> list[StoredEvent]:
        """Serialise *events* with versions ``current_version + 1, + 2, …``."""
        return [
            self._serializer.to_stored(aggregate_id, aggregate_type, event, current_version + offset)
            for offset, event in enumerate(events, start=1)
        ]

    @staticmethod
    def _conflict(aggregate_id: UUID, expected: int, actual: int, **kwargs: object) -> Err[ConcurrencyConflictError]:
        error = ConcurrencyConflictError(aggregate_id, expected, actual, **kwargs)  # type: ignore[arg-type]
        log.warning("event_store.concurrency_conflict", **error.log_fields())
        return Err(error)


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and local development.

    Check and write happen without an intervening suspension point, so the
    version check is atomic here; the ``(aggregate_id, version)`` key set
    mirrors the unique index of the SQL store.
    """

    def __init__(self, serializer: EventSerializer) -> None:
        super().__init__(serializer)
        self._log: list[StoredEvent] = []
        self._keys: set[tuple[UUID, int]] = set()

    async def append(
        self,
        aggregate_id: UUID,
        aggregate_type: str,
        events: Sequence[DomainEvent],
        expected_version: int,
    ) -> AppendResult:
        self._check_expected_version(expected_version)
        actual = self._max_version(aggregate_id)
        if actual != expected_version:
            return self._conflict(aggregate_id, expected_version, actual)

        records = self._build_records(aggregate_id, aggregate_type, events, actual)
        keys = [(r.aggregate_id, r.version) for r in records]
        if any(k in self._keys for k in keys):
            return self._conflict(aggregate_id, expected_version, self._max_version(aggregate_id))

        self._log.extend(records)
        self._keys.update(keys)
        log.info(
            "event_store.appended",
            aggregate_id=str(aggregate_id),
            aggregate_type=aggregate_type,
            count=len(records),
            version=actual + len(records),
        )
        return Ok(records)

    async def events_for(self, aggregate_id: UUID, from_version: int = 0) -> list[StoredEvent]:
        return sorted(
            (e for e in self._log if e.aggregate_id == aggregate_id and e.version > from_version),
            key=lambda e: e.version,
        )

    async def events_by_type(
        self,
        event_type: str,
        from_date: datetime | None = None,
    ) -> list[StoredEvent]:
        since = ensure_utc(from_date) if from_date is not None else None
        matching = (
            e
            for e in self._log
            if e.event_type == event_type and (since is None or e.timestamp >= since)
        )
        return sorted(matching, key=lambda e: (e.timestamp, e.aggregate_id.hex, e.version))

    async def current_version(self, aggregate_id: UUID) -> int:
        return self._max_version(aggregate_id)

    async def exists(self, aggregate_id: UUID) -> bool:
        return any(e.aggregate_id == aggregate_id for e in self._log)

    def _max_version(self, aggregate_id: UUID) -> int:
        return max((e.version for e in self._log if e.aggregate_id == aggregate_id), default=0)

    def all_events(self) -> list[StoredEvent]:
        """Every stored record in insertion order."""
        return list(self._log)


__all__ = ["AppendResult", "EventStore", "InMemoryEventStore"]
