"""SQLAlchemy adapter – event log table, session factory and store."""
from niespro_eventstore.adapters.sqlalchemy.bootstrap import build_event_store, initialise_event_store
from niespro_eventstore.adapters.sqlalchemy.event_store import SQLAlchemyEventStore
from niespro_eventstore.adapters.sqlalchemy.schema import (
    build_event_store_table,
    create_schema,
    event_store_table,
)
from niespro_eventstore.adapters.sqlalchemy.session import SqlAlchemySessionFactory

__all__ = [
    "SQLAlchemyEventStore",
    "SqlAlchemySessionFactory",
    "build_event_store",
    "build_event_store_table",
    "create_schema",
    "event_store_table",
    "initialise_event_store",
]
