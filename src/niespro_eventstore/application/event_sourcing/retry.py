"""Application event sourcing – caller-side retry on concurrency conflicts.

The store never retries.  A caller that wants to absorb contention wraps
its *whole* read-modify-append cycle in :func:`retry_on_conflict`, so each
attempt reloads the aggregate and appends with a fresh expected version.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential_jitter,
)

from niespro_eventstore.config.settings import EventStoreSettings
from niespro_eventstore.kernel.errors import ConcurrencyConflictError
from niespro_eventstore.kernel.types import Err, Result
from niespro_eventstore.observability.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)


def _is_conflict(result: Any) -> bool:
    return isinstance(result, Err) and isinstance(result.error, ConcurrencyConflictError)


def _log_retry(state: RetryCallState) -> None:
    conflict = state.outcome.result() if state.outcome is not None else None
    fields = conflict.error.log_fields() if isinstance(conflict, Err) else {}
    log.warning("event_store.conflict_retry", attempt=state.attempt_number, **fields)


def _last_result(state: RetryCallState) -> Any:
    assert state.outcome is not None
    return state.outcome.result()


async def retry_on_conflict(
    operation: Callable[[], Awaitable[Result[T, ConcurrencyConflictError]]],
    *,
    attempts: int = 3,
    max_wait: float = 1.0,
) -> Result[T, ConcurrencyConflictError]:
    """Run *operation* until it stops returning a concurrency conflict.

    Gives up after *attempts* calls and returns the last ``Err``.  Any
    exception raised by *operation* propagates on the first occurrence.

    Example::

        async def confirm() -> AppendResult:
            order = await repo.load(order_id)
            order.confirm()
            return await repo.save(order)

        result = await retry_on_conflict(confirm, attempts=5)
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=min(0.05, max_wait), max=max_wait, jitter=max_wait / 10),
        retry=retry_if_result(_is_conflict),
        before_sleep=_log_retry,
        retry_error_callback=_last_result,
        reraise=True,
    )
    return await retrying(operation)


@dataclasses.dataclass(frozen=True)
class ConflictRetryPolicy:
    """Reusable :func:`retry_on_conflict` configuration."""

    attempts: int = 3
    max_wait: float = 1.0

    @classmethod
    def from_settings(cls, settings: EventStoreSettings) -> "ConflictRetryPolicy":
        return cls(
            attempts=settings.conflict_retry_attempts,
            max_wait=settings.conflict_retry_max_wait,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[Result[T, ConcurrencyConflictError]]],
    ) -> Result[T, ConcurrencyConflictError]:
        return await retry_on_conflict(operation, attempts=self.attempts, max_wait=self.max_wait)


__all__ = ["ConflictRetryPolicy", "retry_on_conflict"]
