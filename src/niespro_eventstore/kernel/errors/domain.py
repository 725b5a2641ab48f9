"""Domain errors – business rule violations and write conflicts."""

from __future__ import annotations

from typing import Any

from niespro_eventstore.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"


class ValidationError(DomainError):
    """Input data does not meet validation rules."""

    default_code = "validation_error"


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


class ConcurrencyConflictError(ConflictError):
    """The caller's expected aggregate version no longer matches the log.

    Recoverable: re-read the aggregate, reapply the change and append again
    with the fresh version.  Returned by ``EventStore.append`` inside an
    ``Err`` rather than raised.
    """

    default_code = "concurrency_conflict"
    retryable = True
    user_message = "The record was changed by someone else. Please retry your action."

    def __init__(
        self,
        aggregate_id: Any,
        expected: int,
        actual: int,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Concurrency conflict for aggregate {aggregate_id}: "
            f"expected version {expected}, current version {actual}",
            aggregate_id=aggregate_id,
            detail={"expected_version": expected, "actual_version": actual},
            **kwargs,
        )
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["user_message"] = self.user_message
        return base


__all__ = [
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "ValidationError",
]
