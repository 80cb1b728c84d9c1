"""
Budget and Period Models

A budget covers an inclusive calendar range [period_start, period_end].
Receipts are dated records that fall inside or outside such a range.

DESIGN DECISION: Receipt.purchase_date keeps whatever the caller supplied
(a date, a datetime or a raw string). Receipts come from OCR and manual
entry, so an unparsable date is a normal input. Filtering decides what
to do with it; construction never fails on it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComparisonPreset(str, Enum):
    """
    Named comparison offsets for budget-to-budget spending comparisons.

    DEFAULT shows the current period only.
    """
    DEFAULT = "default"
    MONTH_ON_MONTH = "month-on-month"
    THREE_MONTHS_AGO = "3-months-ago"
    SIX_MONTHS_AGO = "6-months-ago"
    YEAR_ON_YEAR = "year-on-year"
    TWO_YEARS_AGO = "2-years-ago"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ComparisonPreset":
        """Unrecognized or missing presets fall back to DEFAULT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (TypeError, ValueError):
            return cls.DEFAULT


class Budget(BaseModel):
    """
    A budget as far as period alignment is concerned.

    Either boundary may be missing on half-configured budgets.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator('period_start', 'period_end', mode='before')
    @classmethod
    def blank_boundary_is_none(cls, v):
        """An empty boundary is an unset boundary."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Receipt(BaseModel):
    """
    A dated purchase record.

    Only purchase_date matters for period filtering; the rest is payload
    used by spending totals.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    id: Optional[str] = None
    purchase_date: Optional[Union[date, datetime, str]] = None
    total_amount: Optional[Decimal] = None
    category: Optional[str] = None
    supermarket: Optional[str] = None
    household_id: Optional[str] = None


class Period(BaseModel):
    """
    An inclusive date window.

    Serialized as {"from": ..., "to": ...}; from is a keyword in Python,
    hence start/end.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    start: Optional[date] = Field(default=None, alias="from")
    end: Optional[date] = Field(default=None, alias="to")

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None

    def to_response_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class AlignedPeriods(BaseModel):
    """Current budget period plus the optional period it is compared with."""

    current: Optional[Period] = None
    comparison: Optional[Period] = None

    def to_response_dict(self) -> dict:
        return {
            "current": self.current.to_response_dict() if self.current else None,
            "comparison": self.comparison.to_response_dict() if self.comparison else None,
        }


class SpendingComparison(BaseModel):
    """Receipt spending in the current period versus the comparison period."""

    current_total: Decimal = Field(default=Decimal("0"))
    current_count: int = Field(default=0, ge=0)
    comparison_total: Optional[Decimal] = None
    comparison_count: int = Field(default=0, ge=0)
    difference: Optional[Decimal] = None
    percent_change: Optional[float] = None
