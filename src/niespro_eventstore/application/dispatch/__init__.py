"""Application – in-process notification of stored events."""
from niespro_eventstore.application.dispatch.bus import EventBus, EventHandler, InProcessEventBus

__all__ = ["EventBus", "EventHandler", "InProcessEventBus"]
