"""Observability – structured logging helpers."""
from niespro_eventstore.observability.logging.factory import JsonLoggerFactory
from niespro_eventstore.observability.logging.processors import CorrelationProcessor, get_logger

__all__ = ["CorrelationProcessor", "JsonLoggerFactory", "get_logger"]
