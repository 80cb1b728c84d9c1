"""
Household Data Models

Users, households and the membership records that join them.

These records are owned by the hosted identity provider and entity store.
The core reads them, and only the invitation flows write to them.

DESIGN DECISION: Optional fields are explicit (Optional[...] = None) rather
than "whatever the provider happened to send". A blank household_id is
normalized to None so that "absent" has exactly one representation.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class SubscriptionTier(str, Enum):
    """
    Subscription tiers shared by users and households.

    A household's tier is the best tier any member brought with them.
    """
    FREE = "free"
    FREE_TRIAL = "free_trial"
    STANDARD = "standard"
    PLUS = "plus"


# Higher wins when a member joins a household
TIER_PRIORITY: dict[str, int] = {
    SubscriptionTier.FREE.value: 0,
    SubscriptionTier.FREE_TRIAL.value: 0,
    SubscriptionTier.STANDARD.value: 1,
    SubscriptionTier.PLUS.value: 2,
}

# Monthly receipt scans per household
TIER_SCAN_LIMITS: dict[str, int] = {
    SubscriptionTier.FREE.value: 4,
    SubscriptionTier.STANDARD.value: 12,
    SubscriptionTier.PLUS.value: 30,
}

DEFAULT_SCAN_LIMIT = 12


def tier_priority(tier: Optional[str]) -> int:
    """Priority of a tier; unknown or missing tiers rank lowest."""
    return TIER_PRIORITY.get(tier or "", 0)


def scan_limit_for_tier(tier: Optional[str]) -> int:
    return TIER_SCAN_LIMITS.get(tier or "", DEFAULT_SCAN_LIMIT)


# =============================================================================
# ENTITIES
# =============================================================================

class User(BaseModel):
    """
    A user record as returned by the identity provider.

    household_id is a cached denormalization of the membership table.
    It may be missing or stale; the membership records are the source
    of truth when it is absent.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(..., min_length=1, description="User identifier")
    email: str = Field(..., description="Login email")
    household_id: Optional[str] = Field(
        default=None,
        description="Directly assigned household, if any"
    )
    currency: Optional[str] = Field(
        default=None,
        max_length=3,
        description="Preferred ISO 4217 currency code"
    )
    tier: Optional[str] = Field(
        default=SubscriptionTier.FREE.value,
        description="Subscription tier the user pays for"
    )

    @field_validator('household_id')
    @classmethod
    def blank_household_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class HouseholdMembership(BaseModel):
    """
    Join record linking a user to a household.

    created_date decides which membership wins when a user has
    left and rejoined several households. Older records may lack it;
    those rank behind every dated membership.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str = Field(..., min_length=1)
    household_id: str = Field(..., min_length=1)
    created_date: Optional[datetime] = None


class Household(BaseModel):
    """
    A household that several users share receipts and budgets with.

    Only the identifier matters to resolution; the remaining fields
    are used by the invitation flows.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    id: str = Field(..., min_length=1)
    name: str = Field(default="", max_length=200)
    admin_id: Optional[str] = None
    invite_code: Optional[str] = None
    subscription_tier: str = Field(default=SubscriptionTier.FREE.value)
    household_scan_limit: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# RESULTS
# =============================================================================

class HouseholdMembers(BaseModel):
    """
    Members of one household.

    memberships is always complete; profiles holds only the users
    that could be loaded, so it may be shorter.
    """

    memberships: list[HouseholdMembership] = Field(default_factory=list)
    profiles: list[User] = Field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.memberships) - len(self.profiles)


class MyHousehold(BaseModel):
    """Result of looking up the caller's own household."""

    household: Optional[Household] = None
    members: list[User] = Field(default_factory=list)
    memberships: list[HouseholdMembership] = Field(default_factory=list)
    current_user_id: Optional[str] = None
    message: Optional[str] = None

    def to_response_dict(self) -> dict:
        """Shape returned to the client."""
        body = {
            "household": self.household.model_dump(mode="json") if self.household else None,
            "members": [member.model_dump(mode="json") for member in self.members],
        }
        if self.household is None:
            body["message"] = self.message
            return body
        body["memberships"] = [m.model_dump(mode="json") for m in self.memberships]
        body["currentUserId"] = self.current_user_id
        return body


class InviteCodeResult(BaseModel):
    """Invite code handed to a household admin."""

    household_id: str
    invite_code: str
    reused: bool = False
    message: Optional[str] = None

    def to_response_dict(self) -> dict:
        body = {"success": True, "invite_code": self.invite_code}
        if self.message:
            body["message"] = self.message
        return body


class JoinHouseholdResult(BaseModel):
    """Outcome of joining a household by invite code."""

    household: Household
    upgraded_tier: Optional[str] = None
    notification_sent: bool = True

    @property
    def message(self) -> str:
        return f"Successfully joined {self.household.name}!"

    def to_response_dict(self) -> dict:
        return {
            "success": True,
            "household": {
                "id": self.household.id,
                "name": self.household.name,
            },
            "message": self.message,
        }
