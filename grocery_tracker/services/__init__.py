"""Services package."""

from grocery_tracker.services.identity import (
    IdentityProviderInterface,
    extract_bearer_token,
)
from grocery_tracker.services.notifications import (
    ContactNotifierInterface,
    NotificationError,
)
from grocery_tracker.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    EntityStorageInterface,
    InMemoryAuditStorage,
    InMemoryEntityStorage,
    NotFoundError,
    RetryingEntityStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Identity
    "IdentityProviderInterface",
    "extract_bearer_token",
    # Notifications
    "ContactNotifierInterface",
    "NotificationError",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "EntityStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryEntityStorage",
    "NotFoundError",
    "RetryingEntityStorage",
    "StorageConnectionError",
    "StorageError",
]
