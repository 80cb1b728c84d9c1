"""
Data Models Package

This package contains all Pydantic models used by the Grocery Tracker core.
All data flowing through the system must conform to these schemas.
"""

from grocery_tracker.models.household import (
    Household,
    HouseholdMembers,
    HouseholdMembership,
    InviteCodeResult,
    JoinHouseholdResult,
    MyHousehold,
    SubscriptionTier,
    User,
    scan_limit_for_tier,
    tier_priority,
)
from grocery_tracker.models.budget import (
    AlignedPeriods,
    Budget,
    ComparisonPreset,
    Period,
    Receipt,
    SpendingComparison,
)
from grocery_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Household models
    "Household",
    "HouseholdMembers",
    "HouseholdMembership",
    "InviteCodeResult",
    "JoinHouseholdResult",
    "MyHousehold",
    "SubscriptionTier",
    "User",
    "scan_limit_for_tier",
    "tier_priority",
    # Budget models
    "AlignedPeriods",
    "Budget",
    "ComparisonPreset",
    "Period",
    "Receipt",
    "SpendingComparison",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
