"""Infrastructure errors – serialization and storage failures."""

from __future__ import annotations

from typing import Any

from niespro_eventstore.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize an event payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        if payload_type is not None:
            kwargs.setdefault("detail", {"payload_type": payload_type})
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


class StorageUnavailableError(InfrastructureError):
    """The durable store could not be reached or the commit failed.

    Never retried inside the store; the caller owns the retry policy.
    """

    default_code = "storage_unavailable"
    retryable = True

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("detail", {"operation": operation})
        super().__init__(message or f"Event storage unavailable during '{operation}'", **kwargs)
        self.operation = operation


__all__ = [
    "InfrastructureError",
    "SerializationError",
    "StorageUnavailableError",
]
