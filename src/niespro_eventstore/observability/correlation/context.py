"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import dataclasses
from contextvars import ContextVar
from uuid import uuid4


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single request/use-case execution."""
    correlation_id: str
    user_id: str | None = None

    @classmethod
    def new(cls, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=str(uuid4()), user_id=user_id)


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_niespro_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``.

    Event stores stamp the active correlation id into every appended
    event's metadata; without an active context each event gets a fresh id.
    """

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    def current_correlation_id() -> str | None:
        ctx = _CTX_VAR.get()
        return ctx.correlation_id if ctx is not None else None

    @staticmethod
    def set_from_headers(headers: dict[str, str]) -> RequestContext:
        """Store a context built from ``X-Correlation-ID`` / ``X-Request-ID``.

        Header names are matched case-insensitively; a UUID is generated
        when neither is present.
        """
        norm = {k.lower(): v for k, v in headers.items()}
        ctx = RequestContext(
            correlation_id=norm.get("x-correlation-id") or norm.get("x-request-id") or str(uuid4()),
        )
        _CTX_VAR.set(ctx)
        return ctx


__all__ = ["CorrelationContext", "RequestContext"]
