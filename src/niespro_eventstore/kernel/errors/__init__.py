"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── ValidationError
    │   └── ConflictError
    │       └── ConcurrencyConflictError
    └── InfrastructureError      (infrastructure.py)
        ├── SerializationError
        └── StorageUnavailableError
"""

from niespro_eventstore.kernel.errors.base import BaseError
from niespro_eventstore.kernel.errors.domain import (
    ConcurrencyConflictError,
    ConflictError,
    DomainError,
    ValidationError,
)
from niespro_eventstore.kernel.errors.infrastructure import (
    InfrastructureError,
    SerializationError,
    StorageUnavailableError,
)

__all__ = [
    "BaseError",
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "InfrastructureError",
    "SerializationError",
    "StorageUnavailableError",
    "ValidationError",
]
