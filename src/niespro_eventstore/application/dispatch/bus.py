"""Application dispatch – EventHandler, EventBus, InProcessEventBus."""

from __future__ import annotations

import abc
import asyncio
from typing import Any, Generic, TypeVar

from niespro_eventstore.kernel.ddd.domain_event import DomainEvent
from niespro_eventstore.observability.logging import get_logger

E = TypeVar("E", bound=DomainEvent)

log = get_logger(__name__)


class EventHandler(abc.ABC, Generic[E]):
    """Handle a single domain event type."""

    @abc.abstractmethod
    async def handle(self, event: E) -> None: ...


class EventBus(abc.ABC):
    """Port: notify in-process subscribers of events that were already stored."""

    @abc.abstractmethod
    def register(self, event_type: type[DomainEvent], handler: EventHandler[Any]) -> None: ...

    @abc.abstractmethod
    async def publish(self, event: DomainEvent) -> None: ...


class InProcessEventBus(EventBus):
    """In-process fan-out via :func:`asyncio.gather`.

    A failing handler is logged with its traceback and does not affect the
    other handlers or the publisher; by the time an event is published it
    is already durable.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler[Any]]] = {}

    def register(self, event_type: type[DomainEvent], handler: EventHandler[Any]) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            return
        results = await asyncio.gather(*(h.handle(event) for h in handlers), return_exceptions=True)
        for handler, outcome in zip(handlers, results):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                log.exception(
                    "event_bus.handler_failed",
                    event_type=event.event_type,
                    event_id=str(event.event_id),
                    handler=type(handler).__qualname__,
                    exc_info=outcome,
                )


__all__ = ["EventBus", "EventHandler", "InProcessEventBus"]
