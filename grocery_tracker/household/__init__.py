"""Household resolution and invitations."""

from grocery_tracker.household.invites import (
    AlreadyMemberError,
    ForbiddenError,
    HouseholdError,
    HouseholdNotFoundError,
    InvalidRequestError,
    InvitationService,
    generate_invite_code,
    normalize_invite_code,
)
from grocery_tracker.household.resolver import (
    get_household_members,
    resolve_household_id,
)

__all__ = [
    "AlreadyMemberError",
    "ForbiddenError",
    "HouseholdError",
    "HouseholdNotFoundError",
    "InvalidRequestError",
    "InvitationService",
    "generate_invite_code",
    "get_household_members",
    "normalize_invite_code",
    "resolve_household_id",
]
