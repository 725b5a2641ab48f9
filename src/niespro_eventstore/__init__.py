"""
niespro_eventstore – append-only event log with optimistic concurrency.

Import path convention::

    from niespro_eventstore.kernel.errors import ConcurrencyConflictError
    from niespro_eventstore.kernel.ddd import DomainEvent
    from niespro_eventstore.application.event_sourcing import EventStore, EventSerializer
    from niespro_eventstore.adapters.sqlalchemy import SQLAlchemyEventStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
