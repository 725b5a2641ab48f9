"""SQLAlchemy adapter – SQLAlchemyEventStore."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Sequence
from uuid import UUID

from sqlalchemy import Table, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from niespro_eventstore.adapters.sqlalchemy.schema import event_store_table
from niespro_eventstore.application.event_sourcing.serialization import EventSerializer
from niespro_eventstore.application.event_sourcing.store import AppendResult, EventStore
from niespro_eventstore.application.event_sourcing.stored_event import StoredEvent
from niespro_eventstore.kernel.ddd.domain_event import DomainEvent
from niespro_eventstore.kernel.errors import StorageUnavailableError
from niespro_eventstore.kernel.time import ensure_utc
from niespro_eventstore.kernel.types import Ok
from niespro_eventstore.observability.logging import get_logger

log = get_logger(__name__)


class SQLAlchemyEventStore(EventStore):
    """Append-only SQL event store with optimistic concurrency.

    Every call opens its own session from *session_factory*; ``append``
    runs check and inserts in one transaction, so a batch is either fully
    committed or not visible at all (including on task cancellation).

    A write that loses the race on ``UNIQUE (aggregate_id, version)`` is
    reported exactly like a failed pre-check: ``Err(ConcurrencyConflictError)``
    with the version re-read after rollback.  Other database failures raise
    :class:`StorageUnavailableError`.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning an
        :class:`~sqlalchemy.ext.asyncio.AsyncSession`, e.g. an
        ``async_sessionmaker`` or :class:`SqlAlchemySessionFactory`.
    serializer:
        Converts domain events to rows and back.
    table:
        The event log table (see :func:`build_event_store_table`).
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        serializer: EventSerializer,
        table: Table = event_store_table,
    ) -> None:
        super().__init__(serializer)
        self._session_factory = session_factory
        self._table = table

    @property
    def table(self) -> Table:
        return self._table

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        return self._session_factory

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def append(
        self,
        aggregate_id: UUID,
        aggregate_type: str,
        events: Sequence[DomainEvent],
        expected_version: int,
    ) -> AppendResult:
        self._check_expected_version(expected_version)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    actual = await self._max_version(session, aggregate_id)
                    if actual != expected_version:
                        return self._conflict(aggregate_id, expected_version, actual)

                    records = self._build_records(aggregate_id, aggregate_type, events, actual)
                    for record in records:
                        await self._insert(session, record)
        except IntegrityError as exc:
            actual = await self.current_version(aggregate_id)
            if actual == expected_version:
                error = StorageUnavailableError(
                    "append", f"Integrity violation appending to {aggregate_id}", aggregate_id=aggregate_id, cause=exc
                )
                log.error("event_store.integrity_error", **error.log_fields())
                raise error from exc
            return self._conflict(aggregate_id, expected_version, actual, cause=exc)
        except SQLAlchemyError as exc:
            error = StorageUnavailableError("append", aggregate_id=aggregate_id, cause=exc)
            log.error("event_store.append_failed", **error.log_fields())
            raise error from exc

        log.info(
            "event_store.appended",
            aggregate_id=str(aggregate_id),
            aggregate_type=aggregate_type,
            count=len(records),
            version=expected_version + len(records),
        )
        return Ok(records)

    async def _insert(self, session: AsyncSession, record: StoredEvent) -> None:
        await session.execute(
            insert(self._table).values(
                id=record.id,
                aggregate_id=record.aggregate_id,
                aggregate_type=record.aggregate_type,
                event_type=record.event_type,
                event_data=record.event_data,
                metadata=record.metadata,
                version=record.version,
                timestamp=record.timestamp,
                correlation_id=record.correlation_id,
                causation_id=record.causation_id,
            )
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def events_for(self, aggregate_id: UUID, from_version: int = 0) -> list[StoredEvent]:
        t = self._table
        stmt = (
            select(t)
            .where(t.c.aggregate_id == aggregate_id)
            .where(t.c.version > from_version)
            .order_by(t.c.version)
        )
        return await self._fetch("events_for", stmt)

    async def events_by_type(
        self,
        event_type: str,
        from_date: datetime | None = None,
    ) -> list[StoredEvent]:
        t = self._table
        stmt = select(t).where(t.c.event_type == event_type)
        if from_date is not None:
            stmt = stmt.where(t.c.timestamp >= ensure_utc(from_date))
        stmt = stmt.order_by(t.c.timestamp, t.c.aggregate_id, t.c.version)
        return await self._fetch("events_by_type", stmt)

    async def current_version(self, aggregate_id: UUID) -> int:
        try:
            async with self._session_factory() as session:
                return await self._max_version(session, aggregate_id)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("current_version", aggregate_id=aggregate_id, cause=exc) from exc

    async def exists(self, aggregate_id: UUID) -> bool:
        t = self._table
        stmt = select(t.c.id).where(t.c.aggregate_id == aggregate_id).limit(1)
        try:
            async with self._session_factory() as session:
                found = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("exists", aggregate_id=aggregate_id, cause=exc) from exc
        return found is not None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _max_version(self, session: AsyncSession, aggregate_id: UUID) -> int:
        t = self._table
        stmt = select(func.max(t.c.version)).where(t.c.aggregate_id == aggregate_id)
        return (await session.execute(stmt)).scalar() or 0

    async def _fetch(self, operation: str, stmt: Any) -> list[StoredEvent]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).mappings().all()
        except SQLAlchemyError as exc:
            error = StorageUnavailableError(operation, cause=exc)
            log.error("event_store.read_failed", **error.log_fields())
            raise error from exc
        return [self._to_stored(row) for row in rows]

    @staticmethod
    def _to_stored(row: Any) -> StoredEvent:
        return StoredEvent(
            id=row["id"],
            aggregate_id=row["aggregate_id"],
            aggregate_type=row["aggregate_type"],
            event_type=row["event_type"],
            event_data=row["event_data"],
            metadata=row["metadata"],
            version=int(row["version"]),
            timestamp=ensure_utc(row["timestamp"]),
            correlation_id=row["correlation_id"],
            causation_id=row["causation_id"],
        )


__all__ = ["SQLAlchemyEventStore"]
