"""Root error class for the event store error hierarchy."""

from __future__ import annotations

from typing import Any, ClassVar


class BaseError(Exception):
    """Root of every error raised or returned by the event store.

    Besides the message, an error knows which aggregate it concerns (when
    there is one) and whether repeating the same call may succeed.
    :meth:`log_fields` flattens that into keyword arguments for a structlog
    call, so adapters log failures with the same keys everywhere.

    Args:
        message: Human-readable description.
        code: Machine-readable slug (defaults to ``default_code``).
        aggregate_id: Stream the failure belongs to, if any.
        detail: Extra context, merged into :meth:`log_fields`.
        cause: Lower-level exception that triggered this error.
    """

    default_code: ClassVar[str] = "event_store_error"
    retryable: ClassVar[bool] = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        aggregate_id: Any = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.aggregate_id = aggregate_id
        self.detail: dict[str, Any] = detail or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, aggregate_id={self.aggregate_id!r})"

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"error_code": self.code, "retryable": self.retryable, **self.detail}
        if self.aggregate_id is not None:
            fields["aggregate_id"] = str(self.aggregate_id)
        if self.cause is not None:
            fields["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return fields

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for API responses; the cause is left out."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.aggregate_id is not None:
            payload["aggregate_id"] = str(self.aggregate_id)
        if self.detail:
            payload["detail"] = self.detail
        return payload


__all__ = ["BaseError"]
