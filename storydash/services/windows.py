"""
Date window and period-over-period helpers shared by the dashboard services.

Everything here is pure: callers pass ``now`` explicitly (or get the current
UTC time) and receive concrete naive-UTC bounds.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

TIME_RANGE_DAYS = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "year": 365,
}
TIME_RANGE_ALL = "all"
TIME_RANGE_CUSTOM = "custom"
DEFAULT_TIME_RANGE = "30days"

# "all" is anchored to concrete dates so every window has bounds
ALL_TIME_START = datetime(2000, 1, 1)
ALL_TIME_PREVIOUS_START = datetime(1990, 1, 1)

CHART_MONTHS = 7


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    previous_start: datetime
    previous_end: datetime
    end: datetime


@dataclass(frozen=True)
class MonthBucket:
    name: str
    start: datetime
    end: datetime


def normalize_time_range(time_range: str | None) -> str:
    """Map a caller-supplied token to a known range, defaulting to 30 days."""
    if time_range == TIME_RANGE_ALL or time_range in TIME_RANGE_DAYS:
        return time_range
    return DEFAULT_TIME_RANGE


def resolve_window(time_range: str | None, now: datetime | None = None) -> DateWindow:
    """
    Resolve a time range token into the current and previous periods.

    The previous period has the same length as the current one and ends
    exactly where the current one starts.
    """
    now = now or datetime.utcnow()
    time_range = normalize_time_range(time_range)

    if time_range == TIME_RANGE_ALL:
        return DateWindow(
            start=ALL_TIME_START,
            previous_start=ALL_TIME_PREVIOUS_START,
            previous_end=ALL_TIME_START,
            end=now,
        )

    length = timedelta(days=TIME_RANGE_DAYS[time_range])
    start = now - length
    return DateWindow(
        start=start,
        previous_start=start - length,
        previous_end=start,
        end=now,
    )


def percentage_change(current: float, previous: float) -> float:
    """Percent change from ``previous`` to ``current``, rounded to one decimal."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a first-of-month datetime by a number of calendar months."""
    index = moment.year * 12 + (moment.month - 1) + months
    return moment.replace(year=index // 12, month=index % 12 + 1)


def trailing_months(now: datetime | None = None, count: int = CHART_MONTHS) -> list[MonthBucket]:
    """Calendar month buckets, oldest first, ending with the month of ``now``."""
    current = month_start(now or datetime.utcnow())
    buckets = []
    for offset in range(count - 1, -1, -1):
        start = add_months(current, -offset)
        buckets.append(
            MonthBucket(name=start.strftime("%b"), start=start, end=add_months(start, 1))
        )
    return buckets


def cents_to_amount(cents: int | None) -> float:
    return (cents or 0) / 100
