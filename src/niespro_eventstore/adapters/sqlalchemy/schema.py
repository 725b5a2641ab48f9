"""SQLAlchemy adapter – event store table definition."""
from __future__ import annotations

from typing import Any

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

DEFAULT_TABLE_NAME = "event_store"


def build_event_store_table(metadata: MetaData, name: str = DEFAULT_TABLE_NAME) -> Table:
    """Declare the event log table *name* on *metadata*.

    ``UNIQUE (aggregate_id, version)`` is what actually serialises
    concurrent writers on the same aggregate; the version check done by the
    store before inserting only fails fast.
    """
    return Table(
        name,
        metadata,
        Column("id", Uuid, primary_key=True),
        Column("aggregate_id", Uuid, nullable=False),
        Column("aggregate_type", String(100), nullable=False),
        Column("event_type", String(100), nullable=False),
        Column("event_data", Text, nullable=False),
        Column("metadata", Text, nullable=True),
        Column("version", BigInteger, nullable=False),
        Column("timestamp", DateTime(timezone=True), nullable=False),
        Column("correlation_id", String(100), nullable=True),
        Column("causation_id", String(100), nullable=True),
        UniqueConstraint("aggregate_id", "version", name=f"uq_{name}_aggregate_version"),
        CheckConstraint("version > 0", name=f"ck_{name}_version_positive"),
        Index(f"ix_{name}_aggregate_id", "aggregate_id"),
        Index(f"ix_{name}_event_type", "event_type"),
        Index(f"ix_{name}_timestamp", "timestamp"),
        Index(f"ix_{name}_aggregate_type_timestamp", "aggregate_type", "timestamp"),
    )


metadata = MetaData()
event_store_table = build_event_store_table(metadata)


async def create_schema(engine: Any, table: Table = event_store_table) -> None:
    """Create *table* and its indexes if they do not exist yet.

    Parameters
    ----------
    engine:
        An :class:`~sqlalchemy.ext.asyncio.AsyncEngine`.
    """
    async with engine.begin() as conn:
        await conn.run_sync(table.metadata.create_all, tables=[table])


__all__ = [
    "DEFAULT_TABLE_NAME",
    "build_event_store_table",
    "create_schema",
    "event_store_table",
    "metadata",
]
