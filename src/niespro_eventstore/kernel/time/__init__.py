"""Kernel time."""
from niespro_eventstore.kernel.time.clock import ensure_utc, utc_now

__all__ = ["ensure_utc", "utc_now"]
