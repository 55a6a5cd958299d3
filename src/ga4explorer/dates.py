"""Named date ranges ("last7", "custom", ...) resolved to concrete dates."""

from datetime import date, timedelta

from ga4explorer.models.query import DateRange

# name -> days back from today for the start date (end is today)
RELATIVE_RANGES = {
    "today": 0,
    "last7": 7,
    "last28": 28,
    "last30": 30,
    "last90": 90,
}

RANGE_TYPES = [*RELATIVE_RANGES, "yesterday", "custom"]


def resolve_date_range(
    kind: str,
    start: str | date | None = None,
    end: str | date | None = None,
    today: date | None = None,
) -> DateRange:
    """Turn a range type into a DateRange.

    custom needs both ends. explicit start/end on a named range are ignored.
    """
    today = today or date.today()

    if kind == "custom":
        if start is None or end is None:
            raise ValueError("Custom date range needs both a start and an end date")
        return DateRange(start=_parse(start), end=_parse(end))
    if kind == "yesterday":
        yesterday = today - timedelta(days=1)
        return DateRange(start=yesterday, end=yesterday)
    if kind in RELATIVE_RANGES:
        return DateRange(start=today - timedelta(days=RELATIVE_RANGES[kind]), end=today)

    raise ValueError(f"Unknown date range type: {kind}. Use one of: {', '.join(RANGE_TYPES)}")


def _parse(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)
