"""AggregateRoot – owns pending domain events and the observed version."""

from __future__ import annotations

from uuid import UUID

from niespro_eventstore.kernel.ddd.domain_event import DomainEvent


class AggregateRoot:
    """Consistency boundary whose changes are recorded as domain events.

    ``version`` counts every event the aggregate has seen, stored or
    pending; ``version - len(pending)`` is what the store last reported.
    """

    _version: int
    _events: list[DomainEvent]

    def __init__(self, id: UUID) -> None:  # noqa: A002
        self.id = id
        self._version = 0
        self._events = []

    def _raise_event(self, event: DomainEvent) -> None:
        """Record a domain event and bump the version."""
        self._events.append(event)
        self._version += 1

    def pull_events(self) -> list[DomainEvent]:
        """Return and clear pending domain events."""
        events = list(self._events)
        self._events.clear()
        return events

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    @property
    def version(self) -> int:
        return self._version

    @property
    def persisted_version(self) -> int:
        return self._version - len(self._events)

    @classmethod
    def aggregate_type(cls) -> str:
        """Type tag stored with every event (defaults to class name)."""
        return cls.__name__

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.id == self.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.id))


__all__ = ["AggregateRoot"]
