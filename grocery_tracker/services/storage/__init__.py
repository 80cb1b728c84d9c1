"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The hosted entity store is an external collaborator; this package ships an
in-memory implementation and a retry wrapper for any backend.
"""

from grocery_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntityStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from grocery_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntityStorage,
)
from grocery_tracker.services.storage.retrying import RetryingEntityStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntityStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryEntityStorage",
    "RetryingEntityStorage",
]
