"""Application event sourcing – StoredEvent and EventMetadata."""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from niespro_eventstore.kernel.errors import SerializationError


@dataclasses.dataclass(frozen=True)
class EventMetadata:
    """Side-channel data written next to every event payload."""

    correlation_id: str
    causation_id: str
    timestamp: datetime
    event_version: str = "1.0"

    def to_json(self) -> str:
        return json.dumps(
            {
                "correlation_id": self.correlation_id,
                "causation_id": self.causation_id,
                "timestamp": self.timestamp.isoformat(),
                "event_version": self.event_version,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "EventMetadata":
        try:
            data: dict[str, Any] = json.loads(raw)
            return cls(
                correlation_id=data["correlation_id"],
                causation_id=data["causation_id"],
                timestamp=datetime.fromisoformat(data["timestamp"]),
                event_version=data.get("event_version", "1.0"),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise SerializationError(
                "Malformed event metadata", payload_type="EventMetadata", cause=exc
            ) from exc


@dataclasses.dataclass(frozen=True)
class StoredEvent:
    """One immutable row of the event log.

    ``event_data`` and ``metadata`` are opaque serialized text; use
    :class:`~niespro_eventstore.application.event_sourcing.serialization.EventSerializer`
    to turn a record back into its domain event.
    """

    aggregate_id: UUID
    aggregate_type: str
    event_type: str
    event_data: str
    version: int
    """1-based, contiguous sequence number within the aggregate."""

    timestamp: datetime
    """When the event occurred (not when it was written)."""

    metadata: str | None = None
    correlation_id: str | None = None
    causation_id: str | None = None
    id: UUID = dataclasses.field(default_factory=uuid4)

    def event_metadata(self) -> EventMetadata | None:
        if self.metadata is None:
            return None
        return EventMetadata.from_json(self.metadata)


__all__ = ["EventMetadata", "StoredEvent"]
