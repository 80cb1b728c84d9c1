"""
Budget Period Alignment

Budget-to-budget comparisons line up the active budget's period with the
same period shifted back by a preset offset ("month-on-month",
"year-on-year", ...).

DESIGN DECISION: Offsets are calendar months/years via relativedelta,
not fixed day counts. Month subtraction clamps to the last valid day of
the target month: 2024-03-31 minus one month is 2024-02-29. Both
boundaries shift by the same offset, so a well-formed period stays
well-formed.

Everything here fails soft. A missing budget, an unknown preset or an
unparsable date produce None / empty results, never exceptions.

Date strings must be ISO 8601 ("2024-01-15" or "2024-01-15T10:00:00Z").
Free-form dates such as "January 15, 2024" do not parse, so records
carrying them are excluded from every period.
"""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Iterable, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from grocery_tracker.models.budget import (
    AlignedPeriods,
    ComparisonPreset,
    Period,
)


PRESET_OFFSETS: dict[ComparisonPreset, relativedelta] = {
    ComparisonPreset.MONTH_ON_MONTH: relativedelta(months=1),
    ComparisonPreset.THREE_MONTHS_AGO: relativedelta(months=3),
    ComparisonPreset.SIX_MONTHS_AGO: relativedelta(months=6),
    ComparisonPreset.YEAR_ON_YEAR: relativedelta(years=1),
    ComparisonPreset.TWO_YEARS_AGO: relativedelta(years=2),
}


def read_field(obj: Any, name: str) -> Any:
    """Read a field from a model, a plain object or a mapping."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def to_date(value: Any) -> Optional[date]:
    """
    Coerce a date-like value to a calendar date.

    Accepts date, datetime and ISO 8601 strings (date or date-time).
    Anything else, including free-form strings like "January 15, 2024",
    gives None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def _period_bounds(period: Any) -> tuple[Any, Any]:
    if isinstance(period, Period):
        return period.start, period.end
    if isinstance(period, Mapping):
        start = period.get("from", period.get("start"))
        end = period.get("to", period.get("end"))
        return start, end
    return read_field(period, "start"), read_field(period, "end")


def get_budget_aligned_periods(
    budget: Any,
    preset: Optional[str] = ComparisonPreset.DEFAULT,
) -> AlignedPeriods:
    """
    Current budget period plus the comparison period for a preset.

    Args:
        budget: A Budget, mapping or object with period_start/period_end
        preset: A ComparisonPreset value; unknown values mean "default"

    Returns:
        AlignedPeriods; both periods None when the budget is missing or
        either boundary is missing/unparsable, comparison None for the
        default preset
    """
    start = to_date(read_field(budget, "period_start"))
    end = to_date(read_field(budget, "period_end"))
    if start is None or end is None:
        return AlignedPeriods()

    current = Period(start=start, end=end)

    offset = PRESET_OFFSETS.get(ComparisonPreset.parse(preset))
    if offset is None:
        return AlignedPeriods(current=current)

    return AlignedPeriods(
        current=current,
        comparison=Period(start=start - offset, end=end - offset),
    )


def filter_records_by_period(
    records: Optional[Iterable[Any]],
    period: Any,
    date_field: str = "purchase_date",
) -> list:
    """
    Records whose date falls inside period, boundaries included.

    Input order is preserved. Records without a parsable date are left
    out. A missing period, a period missing either boundary or a period
    whose boundaries do not parse yields an empty list.
    """
    if records is None or period is None:
        return []

    raw_start, raw_end = _period_bounds(period)
    start = to_date(raw_start)
    end = to_date(raw_end)
    if start is None or end is None:
        return []

    selected = []
    for record in records:
        record_date = to_date(read_field(record, date_field))
        if record_date is not None and start <= record_date <= end:
            selected.append(record)
    return selected
