"""Budget period alignment and period-based receipt filtering."""

from grocery_tracker.periods.alignment import (
    PRESET_OFFSETS,
    filter_records_by_period,
    get_budget_aligned_periods,
    to_date,
)
from grocery_tracker.periods.spending import compare_period_spending, total_spent

__all__ = [
    "PRESET_OFFSETS",
    "compare_period_spending",
    "filter_records_by_period",
    "get_budget_aligned_periods",
    "to_date",
    "total_spent",
]
