"""
In-Memory Storage Implementation

Used by the test-suite and for local runs without the hosted backend.
Behaves like the hosted entity store as far as the core can observe:
equality filters, "-field" descending sort, limits, and NotFoundError
from get/update.

Records are copied on the way in and out so callers can never mutate
stored state by accident.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from grocery_tracker.models.audit import AuditEvent
from grocery_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntityStorageInterface,
    NotFoundError,
)


class InMemoryEntityStorage(EntityStorageInterface):
    """Dict-backed entity collection keyed by record id."""

    def __init__(self, records: Optional[list[dict]] = None):
        self._records: dict[str, dict] = {}
        for record in records or []:
            self._insert(record)

    def _insert(self, data: dict[str, Any]) -> dict:
        record = copy.deepcopy(data)
        record.setdefault("id", uuid4().hex)
        record.setdefault("created_date", datetime.now(timezone.utc))
        record_id = str(record["id"])
        if record_id in self._records:
            raise DuplicateError(f"Record already exists: {record_id}")
        self._records[record_id] = record
        return copy.deepcopy(record)

    @staticmethod
    def _matches(record: dict, criteria: dict[str, Any]) -> bool:
        return all(record.get(field) == value for field, value in criteria.items())

    async def filter(
        self,
        criteria: dict[str, Any],
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        matches = [r for r in self._records.values() if self._matches(r, criteria)]

        if sort:
            descending = sort.startswith("-")
            field = sort.lstrip("-")
            # Records without the sort field go last either way
            present = [r for r in matches if r.get(field) is not None]
            missing = [r for r in matches if r.get(field) is None]
            present.sort(key=lambda r: r[field], reverse=descending)
            matches = present + missing

        if limit is not None:
            matches = matches[:limit]

        return [copy.deepcopy(r) for r in matches]

    async def get(self, entity_id: str) -> dict:
        try:
            return copy.deepcopy(self._records[str(entity_id)])
        except KeyError:
            raise NotFoundError(f"Record not found: {entity_id}")

    async def create(self, data: dict[str, Any]) -> dict:
        return self._insert(data)

    async def update(self, entity_id: str, changes: dict[str, Any]) -> dict:
        record = self._records.get(str(entity_id))
        if record is None:
            raise NotFoundError(f"Record not found: {entity_id}")
        record.update(copy.deepcopy(changes))
        record["id"] = str(entity_id)
        return copy.deepcopy(record)

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
