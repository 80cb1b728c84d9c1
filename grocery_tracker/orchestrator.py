"""
Main Orchestrator for Grocery Tracker

Ties the household and period components to their collaborators and
defines the end-to-end flows:
1. My household (caller -> household id -> household -> members)
2. Invitations (generate code, join by code)
3. Budget comparison (budget + preset -> aligned periods -> spending)

DESIGN DECISION: Flows receive every collaborator through the
constructor. There is no global client; tests build flows around
in-memory storage.
"""

from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from grocery_tracker.audit import AuditLogger, create_correlation_id
from grocery_tracker.config import (
    ConfigurationError,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from grocery_tracker.household import (
    InvitationService,
    get_household_members,
    resolve_household_id,
)
from grocery_tracker.models.budget import AlignedPeriods, SpendingComparison
from grocery_tracker.models.household import (
    Household,
    InviteCodeResult,
    JoinHouseholdResult,
    MyHousehold,
    User,
)
from grocery_tracker.periods import compare_period_spending, get_budget_aligned_periods
from grocery_tracker.services.notifications import ContactNotifierInterface
from grocery_tracker.services.storage import (
    EntityStorageInterface,
    InMemoryAuditStorage,
    InMemoryEntityStorage,
    RetryingEntityStorage,
)


logger = structlog.get_logger(__name__)


class HouseholdFlow:
    """
    Orchestrates household reads and invitation writes.

    Flow for "my household":
    1. Resolve household id (user record first, membership fallback)
    2. No id -> "User has no household"
    3. Load the household; dangling id -> "Household not found"
    4. Load members; unreadable profiles are dropped, not fatal
    """

    def __init__(
        self,
        households: EntityStorageInterface,
        users: EntityStorageInterface,
        memberships: EntityStorageInterface,
        notifier: Optional[ContactNotifierInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        invitations: Optional[InvitationService] = None,
    ):
        self._households = households
        self._users = users
        self._memberships = memberships
        self._audit_logger = audit_logger
        self._invitations = invitations or InvitationService(
            households=households,
            users=users,
            memberships=memberships,
            notifier=notifier,
            audit_logger=audit_logger,
        )
        self._logger = structlog.get_logger(__name__)

    async def get_my_household(
        self,
        user: User,
        correlation_id: Optional[UUID] = None,
    ) -> MyHousehold:
        """
        The caller's household with its members.

        Raises:
            StorageError: If the membership or household lookup fails
        """
        correlation_id = correlation_id or create_correlation_id()

        household_id = await resolve_household_id(
            user,
            self._memberships,
            audit_logger=self._audit_logger,
            correlation_id=correlation_id,
        )
        self._logger.info(
            "get_my_household",
            user_id=user.id,
            household_id=household_id,
        )

        if household_id is None:
            if self._audit_logger:
                await self._audit_logger.log_household_missing(
                    user_id=user.id,
                    household_id=None,
                    reason="User has no household",
                    correlation_id=correlation_id,
                )
            return MyHousehold(
                current_user_id=user.id,
                message="User has no household",
            )

        records = await self._households.filter({"id": household_id}, limit=1)
        if not records:
            if self._audit_logger:
                await self._audit_logger.log_household_missing(
                    user_id=user.id,
                    household_id=household_id,
                    reason="Household not found",
                    correlation_id=correlation_id,
                )
            return MyHousehold(
                current_user_id=user.id,
                message="Household not found",
            )

        household = Household.model_validate(records[0])
        members = await get_household_members(
            household.id,
            self._memberships,
            self._users,
            audit_logger=self._audit_logger,
            correlation_id=correlation_id,
        )
        self._logger.info(
            "household_members_loaded",
            household_id=household.id,
            memberships=len(members.memberships),
            profiles=len(members.profiles),
        )

        return MyHousehold(
            household=household,
            members=members.profiles,
            memberships=members.memberships,
            current_user_id=user.id,
        )

    async def generate_household_code(
        self,
        user: User,
        household_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> InviteCodeResult:
        return await self._invitations.generate_household_code(
            user,
            household_id,
            correlation_id=correlation_id or create_correlation_id(),
        )

    async def join_household_by_code(
        self,
        user: User,
        invite_code: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> JoinHouseholdResult:
        return await self._invitations.join_household_by_code(
            user,
            invite_code,
            correlation_id=correlation_id or create_correlation_id(),
        )


class BudgetComparisonFlow:
    """Aligns a budget's period with a comparison preset and totals receipts."""

    def compare(
        self,
        budget: Any,
        preset: Optional[str],
        receipts: Optional[Iterable[Any]] = None,
    ) -> tuple[AlignedPeriods, SpendingComparison]:
        """
        Returns:
            (aligned_periods, spending_comparison)
        """
        periods = get_budget_aligned_periods(budget, preset)
        return periods, compare_period_spending(receipts, periods)


def _with_retries(
    storage: Optional[EntityStorageInterface],
    settings: StorageSettings,
) -> EntityStorageInterface:
    if storage is None:
        storage = InMemoryEntityStorage()
    return RetryingEntityStorage(storage, settings=settings)


def create_app_components(
    households: Optional[EntityStorageInterface] = None,
    users: Optional[EntityStorageInterface] = None,
    memberships: Optional[EntityStorageInterface] = None,
    notifier: Optional[ContactNotifierInterface] = None,
    storage_settings: Optional[StorageSettings] = None,
) -> tuple[HouseholdFlow, BudgetComparisonFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Collections that are not supplied fall back to in-memory storage,
    which is what local runs and tests use. Every collection is wrapped
    in the storage retry policy.

    Raises:
        ConfigurationError: If any settings section fails validation

    Returns:
        (household_flow, budget_comparison_flow, audit_logger)
    """
    status = validate_all_settings()
    failed = sorted(name for name, ok in status.items() if ok is False)
    if failed:
        logger.error(
            "settings_invalid",
            errors={name: status[f"{name}_error"] for name in failed},
        )
        raise ConfigurationError(f"Invalid settings: {', '.join(failed)}")

    storage_settings = storage_settings or get_settings().storage
    audit_logger = AuditLogger(InMemoryAuditStorage())

    household_flow = HouseholdFlow(
        households=_with_retries(households, storage_settings),
        users=_with_retries(users, storage_settings),
        memberships=_with_retries(memberships, storage_settings),
        notifier=notifier,
        audit_logger=audit_logger,
    )

    return household_flow, BudgetComparisonFlow(), audit_logger
