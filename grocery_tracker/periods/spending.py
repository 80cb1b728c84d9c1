"""Receipt spending totals for aligned budget periods."""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from grocery_tracker.models.budget import AlignedPeriods, SpendingComparison
from grocery_tracker.periods.alignment import filter_records_by_period, read_field


def _amount(record: Any) -> Decimal:
    value = read_field(record, "total_amount")
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def total_spent(records: Iterable[Any]) -> Decimal:
    """Sum of total_amount; missing or malformed amounts count as zero."""
    return sum((_amount(r) for r in records), Decimal("0"))


def compare_period_spending(
    records: Optional[Iterable[Any]],
    periods: AlignedPeriods,
) -> SpendingComparison:
    """
    Spending in the current period against the comparison period.

    percent_change is None when there is no comparison period or
    nothing was spent in it.
    """
    records = list(records or [])

    current = filter_records_by_period(records, periods.current)
    result = SpendingComparison(
        current_total=total_spent(current),
        current_count=len(current),
    )
    if periods.comparison is None:
        return result

    previous = filter_records_by_period(records, periods.comparison)
    result.comparison_total = total_spent(previous)
    result.comparison_count = len(previous)
    result.difference = result.current_total - result.comparison_total
    if result.comparison_total:
        change = result.difference / result.comparison_total * 100
        result.percent_change = round(float(change), 2)
    return result
