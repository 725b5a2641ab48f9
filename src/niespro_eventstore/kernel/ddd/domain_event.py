"""Domain events."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from uuid import UUID, uuid4

from niespro_eventstore.kernel.time import utc_now


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """Base class for domain events.

    ``event_id`` and ``occurred_at`` are keyword-only so subclasses can
    declare required payload fields positionally.

    Example::

        @dataclasses.dataclass(frozen=True)
        class OrderCreated(DomainEvent):
            order_id: UUID
            customer_email: str
            total: Decimal
    """

    event_id: UUID = dataclasses.field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = dataclasses.field(default_factory=utc_now, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__


__all__ = ["DomainEvent"]
