"""Observability – correlation context."""
from niespro_eventstore.observability.correlation.context import CorrelationContext, RequestContext

__all__ = ["CorrelationContext", "RequestContext"]
