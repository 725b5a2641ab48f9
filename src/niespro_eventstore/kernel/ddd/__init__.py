"""Kernel DDD building blocks."""
from niespro_eventstore.kernel.ddd.aggregate import AggregateRoot
from niespro_eventstore.kernel.ddd.domain_event import DomainEvent

__all__ = ["AggregateRoot", "DomainEvent"]
