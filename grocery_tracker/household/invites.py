"""
Household Invitations

Admins hand out short invite codes; other users join by typing them in.

DESIGN DECISION: Joining does three things, in order of importance:
1. Link the user to the household (user record + membership record)
2. "Blended billing": if the newcomer pays for a better tier than the
   household has, the household is upgraded to that tier
3. Tag the contact in the email platform

Step 3 is best-effort. Its failure is logged and swallowed.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog

from grocery_tracker.audit import AuditLogger
from grocery_tracker.config import HouseholdSettings, get_settings
from grocery_tracker.models.household import (
    Household,
    InviteCodeResult,
    JoinHouseholdResult,
    User,
    scan_limit_for_tier,
    tier_priority,
)
from grocery_tracker.services.notifications import ContactNotifierInterface
from grocery_tracker.services.storage import EntityStorageInterface


JOINED_TAG = "household_joined"


class HouseholdError(Exception):
    """Base exception for household flow failures."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequestError(HouseholdError):
    """Required input missing or malformed."""
    status_code = 400


class ForbiddenError(HouseholdError):
    """Caller is not allowed to perform this action."""
    status_code = 403


class HouseholdNotFoundError(HouseholdError):
    """No household matches the given id or code."""
    status_code = 404


class AlreadyMemberError(HouseholdError):
    """User is already a member of the household they tried to join."""
    status_code = 400


def generate_invite_code(length: int, alphabet: str) -> str:
    """Random code drawn from alphabet."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    return code.strip().upper()


class InvitationService:
    """
    Generates invite codes and joins users to households.

    All collaborators are injected; nothing here talks to the hosted
    backend directly.
    """

    def __init__(
        self,
        households: EntityStorageInterface,
        users: EntityStorageInterface,
        memberships: EntityStorageInterface,
        notifier: Optional[ContactNotifierInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[HouseholdSettings] = None,
    ):
        self._households = households
        self._users = users
        self._memberships = memberships
        self._notifier = notifier
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().household
        self._logger = structlog.get_logger(__name__)

    async def _find_household(self, criteria: dict) -> Optional[Household]:
        records = await self._households.filter(criteria, limit=1)
        if not records:
            return None
        return Household.model_validate(records[0])

    async def _unused_code(self) -> str:
        """
        Draw codes until one is not taken.

        After invite_code_max_attempts collisions the last draw is used.
        """
        code = ""
        for _ in range(self._settings.invite_code_max_attempts):
            code = generate_invite_code(
                self._settings.invite_code_length,
                self._settings.invite_code_alphabet,
            )
            if not await self._households.filter({"invite_code": code}, limit=1):
                break
        return code

    async def generate_household_code(
        self,
        user: User,
        household_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> InviteCodeResult:
        """
        Return the household's invite code, creating one if needed.

        Raises:
            InvalidRequestError: household_id missing
            HouseholdNotFoundError: no such household
            ForbiddenError: caller is not the household admin
        """
        if not household_id:
            raise InvalidRequestError("household_id is required")

        household = await self._find_household({"id": household_id})
        if household is None:
            raise HouseholdNotFoundError("Household not found")

        if household.admin_id != user.id:
            raise ForbiddenError("Only household admins can generate invite codes.")

        if household.invite_code:
            result = InviteCodeResult(
                household_id=household.id,
                invite_code=household.invite_code,
                reused=True,
                message="Household already has an invite code",
            )
        else:
            code = await self._unused_code()
            await self._households.update(household.id, {"invite_code": code})
            result = InviteCodeResult(household_id=household.id, invite_code=code)

        if self._audit_logger:
            await self._audit_logger.log_invite_code_generated(
                household_id=household.id,
                user_id=user.id,
                reused=result.reused,
                correlation_id=correlation_id,
            )
        return result

    async def _notify_joined(
        self,
        user: User,
        correlation_id: Optional[UUID],
    ) -> bool:
        """Tag the contact; failures are non-critical."""
        if self._notifier is None:
            return False
        try:
            await self._notifier.tag_contact(user.email, [JOINED_TAG])
            return True
        except Exception as e:
            self._logger.warning(
                "contact_tagging_failed",
                email=user.email,
                tag=JOINED_TAG,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_notification_failed(
                    channel="contact_tagging",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return False

    async def _blend_tiers(
        self,
        user: User,
        household: Household,
        correlation_id: Optional[UUID],
    ) -> Optional[str]:
        """Upgrade the household to the joining user's tier if it is better."""
        household_tier = household.subscription_tier or "free"
        if tier_priority(user.tier) <= tier_priority(household_tier):
            return None

        scan_limit = scan_limit_for_tier(user.tier)
        await self._households.update(household.id, {
            "subscription_tier": user.tier,
            "household_scan_limit": scan_limit,
        })
        self._logger.info(
            "household_tier_upgraded",
            household_id=household.id,
            from_tier=household_tier,
            to_tier=user.tier,
        )
        if self._audit_logger:
            await self._audit_logger.log_household_tier_upgraded(
                household_id=household.id,
                from_tier=household_tier,
                to_tier=user.tier,
                scan_limit=scan_limit,
                user_id=user.id,
                correlation_id=correlation_id,
            )
        return user.tier

    async def join_household_by_code(
        self,
        user: User,
        invite_code: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> JoinHouseholdResult:
        """
        Join the household an invite code belongs to.

        Raises:
            InvalidRequestError: invite_code missing
            HouseholdNotFoundError: no household uses the code
            AlreadyMemberError: user already belongs to that household
        """
        if not invite_code or not invite_code.strip():
            raise InvalidRequestError("invite_code is required")

        household = await self._find_household(
            {"invite_code": normalize_invite_code(invite_code)}
        )
        if household is None:
            raise HouseholdNotFoundError(
                "Invalid invitation code. Please check and try again."
            )

        if user.household_id and user.household_id == household.id:
            raise AlreadyMemberError("You are already a member of this household.")

        await self._users.update(user.id, {"household_id": household.id})
        await self._memberships.create({
            "user_id": user.id,
            "household_id": household.id,
            "created_date": datetime.now(timezone.utc),
        })

        if self._audit_logger:
            await self._audit_logger.log_household_joined(
                user_id=user.id,
                household_id=household.id,
                household_name=household.name,
                correlation_id=correlation_id,
            )

        notified = await self._notify_joined(user, correlation_id)
        upgraded_tier = await self._blend_tiers(user, household, correlation_id)

        return JoinHouseholdResult(
            household=household,
            upgraded_tier=upgraded_tier,
            notification_sent=notified,
        )
