"""
Audit Logger

DESIGN DECISION: Every significant household action is logged.
This provides:
1. Traceability of who joined or invited whom
2. Visibility into dangling member records that were dropped
3. A record of non-critical side effects that failed

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a logging failure never fails a request)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from grocery_tracker.config import get_settings
from grocery_tracker.models.audit import AuditEvent, AuditEventBuilder
from grocery_tracker.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog for JSON output."""
    level = level or get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("grocery_tracker.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_household_resolved(
        self,
        user_id: str,
        household_id: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.household_resolved(
            user_id=user_id,
            household_id=household_id,
            source=source,
            correlation_id=correlation_id,
        ))

    async def log_household_missing(
        self,
        user_id: str,
        household_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.household_missing(
            user_id=user_id,
            household_id=household_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_member_profile_dropped(
        self,
        household_id: str,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_profile_dropped(
            household_id=household_id,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_invite_code_generated(
        self,
        household_id: str,
        user_id: str,
        reused: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.invite_code_generated(
            household_id=household_id,
            user_id=user_id,
            reused=reused,
            correlation_id=correlation_id,
        ))

    async def log_household_joined(
        self,
        user_id: str,
        household_id: str,
        household_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.household_joined(
            user_id=user_id,
            household_id=household_id,
            household_name=household_name,
            correlation_id=correlation_id,
        ))

    async def log_household_tier_upgraded(
        self,
        household_id: str,
        from_tier: str,
        to_tier: str,
        scan_limit: int,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.household_tier_upgraded(
            household_id=household_id,
            from_tier=from_tier,
            to_tier=to_tier,
            scan_limit=scan_limit,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_notification_failed(
        self,
        channel: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.notification_failed(
            channel=channel,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through
    all subsequent operations.
    """
    return uuid4()
