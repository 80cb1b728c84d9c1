"""
Household Resolution

Two questions every household-aware request asks first:
1. Which household does this user belong to?
2. Who else is in it?

DESIGN DECISION: user.household_id is a cached copy of the membership
table. When it is set it is trusted as-is. When it is absent, the most
recently created membership wins, because users can leave and rejoin
households.

Absence is not an error: no user, no household and no members all come
back as None / empty. Only a failing membership query propagates.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from grocery_tracker.audit import AuditLogger
from grocery_tracker.models.household import (
    HouseholdMembers,
    HouseholdMembership,
    User,
)
from grocery_tracker.services.storage import EntityStorageInterface


logger = structlog.get_logger(__name__)


async def resolve_household_id(
    user: Optional[User],
    memberships: EntityStorageInterface,
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
) -> Optional[str]:
    """
    Determine the household a user belongs to.

    Args:
        user: The caller, or None if unauthenticated
        memberships: HouseholdMember collection
        audit_logger: Optional audit trail
        correlation_id: Request correlation id for audit events

    Returns:
        The household id, or None if the user has no household

    Raises:
        StorageError: If the membership lookup itself fails
    """
    if user is None:
        return None

    if user.household_id:
        if audit_logger:
            await audit_logger.log_household_resolved(
                user_id=user.id,
                household_id=user.household_id,
                source="user_record",
                correlation_id=correlation_id,
            )
        return user.household_id

    records = await memberships.filter(
        {"user_id": user.id},
        sort="-created_date",
        limit=1,
    )
    if not records:
        return None

    household_id = records[0].get("household_id") or None
    if household_id and audit_logger:
        await audit_logger.log_household_resolved(
            user_id=user.id,
            household_id=household_id,
            source="membership",
            correlation_id=correlation_id,
        )
    return household_id


async def _fetch_profile(
    membership: HouseholdMembership,
    users: EntityStorageInterface,
    audit_logger: Optional[AuditLogger],
    correlation_id: Optional[UUID],
) -> Optional[User]:
    """Load one member's profile; any failure drops the member."""
    try:
        record = await users.get(membership.user_id)
        return User.model_validate(record)
    except Exception as e:
        logger.warning(
            "member_profile_dropped",
            household_id=membership.household_id,
            user_id=membership.user_id,
            error=str(e),
        )
        if audit_logger:
            await audit_logger.log_member_profile_dropped(
                household_id=membership.household_id,
                user_id=membership.user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
        return None


async def get_household_members(
    household_id: str,
    memberships: EntityStorageInterface,
    users: EntityStorageInterface,
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
) -> HouseholdMembers:
    """
    List a household's memberships and the profiles behind them.

    Profiles are fetched concurrently. A member whose profile cannot be
    loaded (e.g. a deleted user still holding a membership) is left out
    of profiles but stays in memberships.

    Raises:
        StorageError: If the membership query fails
    """
    records = await memberships.filter({"household_id": household_id})
    if not records:
        return HouseholdMembers()

    member_records = [HouseholdMembership.model_validate(r) for r in records]

    profiles = await asyncio.gather(*(
        _fetch_profile(membership, users, audit_logger, correlation_id)
        for membership in member_records
    ))

    return HouseholdMembers(
        memberships=member_records,
        profiles=[profile for profile in profiles if profile is not None],
    )
