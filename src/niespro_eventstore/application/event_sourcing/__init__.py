"""Application – Event Sourcing."""

from niespro_eventstore.application.event_sourcing.aggregate import EventSourcedAggregate
from niespro_eventstore.application.event_sourcing.projector import Projector
from niespro_eventstore.application.event_sourcing.repository import EventSourcedRepository
from niespro_eventstore.application.event_sourcing.retry import ConflictRetryPolicy, retry_on_conflict
from niespro_eventstore.application.event_sourcing.serialization import EventRegistry, EventSerializer
from niespro_eventstore.application.event_sourcing.store import (
    AppendResult,
    EventStore,
    InMemoryEventStore,
)
from niespro_eventstore.application.event_sourcing.stored_event import EventMetadata, StoredEvent

__all__ = [
    "AppendResult",
    "ConflictRetryPolicy",
    "EventMetadata",
    "EventRegistry",
    "EventSerializer",
    "EventSourcedAggregate",
    "EventSourcedRepository",
    "EventStore",
    "InMemoryEventStore",
    "Projector",
    "StoredEvent",
    "retry_on_conflict",
]
