"""
Abstract Storage Interface

DESIGN DECISION: The hosted entity store is reached through one small
interface per collection. This allows us to:
1. Run every household flow against in-memory storage in tests
2. Swap the hosted backend without touching business logic
3. Add retry/caching layers transparently

The interface mirrors what the hosted store offers and nothing more:
filter, get, create, update. Records travel as plain dicts; callers
validate them into models.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from grocery_tracker.models.audit import AuditEvent


class EntityStorageInterface(ABC):
    """
    Abstract interface for one entity collection
    (HouseholdMember, Household, User, ...).
    """

    @abstractmethod
    async def filter(
        self,
        criteria: dict[str, Any],
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        List records whose fields equal every value in criteria.

        Args:
            criteria: Field -> required value (empty dict matches all)
            sort: Field to sort by; a leading "-" sorts descending
            limit: Maximum number of records to return

        Returns:
            Matching records (possibly empty)

        Raises:
            StorageError: If the backend call fails
        """
        pass

    @abstractmethod
    async def get(self, entity_id: str) -> dict:
        """
        Retrieve one record by id.

        Raises:
            NotFoundError: If no record has this id
            StorageError: If the backend call fails
        """
        pass

    @abstractmethod
    async def create(self, data: dict[str, Any]) -> dict:
        """
        Create a record and return it as stored (with its id).

        Raises:
            DuplicateError: If a record with the same id exists
        """
        pass

    @abstractmethod
    async def update(self, entity_id: str, changes: dict[str, Any]) -> dict:
        """
        Apply a partial update and return the updated record.

        Raises:
            NotFoundError: If no record has this id
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if stored."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one correlation id, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
