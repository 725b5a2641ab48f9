"""Application event sourcing – EventSourcedAggregate base class."""

from __future__ import annotations

import abc

from niespro_eventstore.kernel.ddd.aggregate import AggregateRoot
from niespro_eventstore.kernel.ddd.domain_event import DomainEvent


class EventSourcedAggregate(AggregateRoot, abc.ABC):
    """Aggregate root whose state is derived only from its events.

    New events go through :meth:`_raise_event`, which applies them
    immediately; stored events go through :meth:`replay`.

    Example::

        class Order(EventSourcedAggregate):
            def __init__(self, id: UUID) -> None:
                super().__init__(id)
                self.status = "NEW"

            def confirm(self) -> None:
                self._raise_event(OrderConfirmed(order_id=self.id))

            def apply(self, event: DomainEvent) -> None:
                if isinstance(event, OrderConfirmed):
                    self.status = "CONFIRMED"
    """

    @abc.abstractmethod
    def apply(self, event: DomainEvent) -> None:
        """Mutate state for a single event. Must not raise new events."""

    def _raise_event(self, event: DomainEvent) -> None:
        self.apply(event)
        super()._raise_event(event)

    def replay(self, event: DomainEvent, version: int) -> None:
        """Apply a stored *event* and adopt its *version*."""
        self.apply(event)
        self._version = version


__all__ = ["EventSourcedAggregate"]
