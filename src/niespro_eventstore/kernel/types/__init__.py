"""Kernel types."""
from niespro_eventstore.kernel.types.result import Err, Ok, Result

__all__ = ["Err", "Ok", "Result"]
