"""
Audit Models for Grocery Tracker

Household changes are visible to every member, so each one is recorded:
who joined, who generated an invite code, which member records could
not be resolved, which side effects failed.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Household resolution
    HOUSEHOLD_RESOLVED = "household_resolved"
    HOUSEHOLD_MISSING = "household_missing"
    MEMBER_PROFILE_DROPPED = "member_profile_dropped"

    # Invitations
    INVITE_CODE_GENERATED = "invite_code_generated"
    HOUSEHOLD_JOINED = "household_joined"
    HOUSEHOLD_TIER_UPGRADED = "household_tier_upgraded"

    # Side effects
    NOTIFICATION_FAILED = "notification_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'household', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one request)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_record(self) -> dict:
        """
        Convert to a flat record for entity storage.

        details is JSON-encoded so any backend can hold it in one column.
        """
        record = self.to_log_dict()
        record["details"] = json.dumps(self.details) if self.details else ""
        record["error_message"] = self.error_message or ""
        return record


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.household_joined(user_id, household_id, ...)
    """

    @staticmethod
    def household_resolved(
        user_id: str,
        household_id: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_RESOLVED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Household resolved from {source}",
            details={
                "household_id": household_id,
                "source": source,
            },
        )

    @staticmethod
    def household_missing(
        user_id: str,
        household_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_MISSING,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=reason,
            details={
                "household_id": household_id,
            },
        )

    @staticmethod
    def member_profile_dropped(
        household_id: str,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_PROFILE_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="household",
            entity_id=household_id,
            correlation_id=correlation_id,
            description=f"Member profile could not be loaded: {user_id}",
            error_message=error_message,
            details={
                "user_id": user_id,
            },
        )

    @staticmethod
    def invite_code_generated(
        household_id: str,
        user_id: str,
        reused: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITE_CODE_GENERATED,
            entity_type="household",
            entity_id=household_id,
            correlation_id=correlation_id,
            description=(
                "Existing invite code returned" if reused
                else "New invite code generated"
            ),
            details={
                "user_id": user_id,
                "reused": reused,
            },
            is_user_action=True,
        )

    @staticmethod
    def household_joined(
        user_id: str,
        household_id: str,
        household_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_JOINED,
            entity_type="household",
            entity_id=household_id,
            correlation_id=correlation_id,
            description=f"User joined household: {household_name}",
            details={
                "user_id": user_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def household_tier_upgraded(
        household_id: str,
        from_tier: str,
        to_tier: str,
        scan_limit: int,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_TIER_UPGRADED,
            entity_type="household",
            entity_id=household_id,
            correlation_id=correlation_id,
            description=f"Household upgraded from {from_tier} to {to_tier}",
            details={
                "from_tier": from_tier,
                "to_tier": to_tier,
                "household_scan_limit": scan_limit,
                "joining_user_id": user_id,
            },
        )

    @staticmethod
    def notification_failed(
        channel: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Non-critical notification failed: {channel}",
            error_message=error_message,
            details={
                "channel": channel,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
