"""SQLAlchemy adapter – build a ready-to-use store from settings."""
from __future__ import annotations

from sqlalchemy import MetaData

from niespro_eventstore.adapters.sqlalchemy.event_store import SQLAlchemyEventStore
from niespro_eventstore.adapters.sqlalchemy.schema import (
    DEFAULT_TABLE_NAME,
    build_event_store_table,
    create_schema,
    event_store_table,
)
from niespro_eventstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from niespro_eventstore.application.event_sourcing.serialization import EventRegistry, EventSerializer
from niespro_eventstore.config.settings import EventStoreSettings
from niespro_eventstore.observability.logging import get_logger

log = get_logger(__name__)


def build_event_store(
    settings: EventStoreSettings,
    registry: EventRegistry,
) -> tuple[SQLAlchemyEventStore, SqlAlchemySessionFactory]:
    """Wire engine, serializer and table from *settings*.

    Returns the store and its session factory; the caller owns
    ``await factory.dispose()`` at shutdown.
    """
    factory = SqlAlchemySessionFactory(settings.database_url, echo=settings.echo)
    if settings.table_name == DEFAULT_TABLE_NAME:
        table = event_store_table
    else:
        table = build_event_store_table(MetaData(), settings.table_name)
    serializer = EventSerializer(registry, schema_version=settings.schema_version)
    log.info(
        "event_store.configured",
        table=table.name,
        dialect=factory.engine.dialect.name,
        event_types=sorted(registry.tags),
    )
    return SQLAlchemyEventStore(factory, serializer, table), factory


async def initialise_event_store(
    settings: EventStoreSettings,
    registry: EventRegistry,
) -> tuple[SQLAlchemyEventStore, SqlAlchemySessionFactory]:
    """:func:`build_event_store` followed by :func:`create_schema`."""
    store, factory = build_event_store(settings, registry)
    await create_schema(factory.engine, store.table)
    return store, factory


__all__ = ["build_event_store", "initialise_event_store"]
