"""
Pure reduction helpers shared by the dashboard services.
No database access happens here.
"""

from datetime import date, datetime
from decimal import Decimal
from itertools import chain
from operator import attrgetter
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from app.core.utils import as_datetime, percentage, round2, to_decimal

T = TypeVar("T")

Moment = Union[date, datetime]


def merge_recent(
    *streams: Iterable[T],
    limit: int,
    key: Callable[[T], Moment] = attrgetter("timestamp"),
) -> List[T]:
    """
    Merge differently sourced items, newest first, truncated to ``limit``.

    Dates and datetimes compare together (a date counts as midnight).
    Items with equal timestamps keep their concatenation order.
    """
    merged = list(chain.from_iterable(streams))
    merged.sort(key=lambda item: as_datetime(key(item)), reverse=True)
    return merged[:limit]


def time_ago(moment: Moment, now: Optional[datetime] = None) -> str:
    """Human readable age: "3 days ago", "2 hours ago", "1 minute ago"."""
    now = now or datetime.utcnow()
    seconds = max(0, int((now - as_datetime(moment)).total_seconds()))
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)

    if days:
        value, unit = days, "day"
    elif hours:
        value, unit = hours, "hour"
    else:
        value, unit = max(1, remainder // 60), "minute"
    return f"{value} {unit}{'s' if value != 1 else ''} ago"


def month_start(moment: Moment, offset: int = 0) -> date:
    """First day of the month ``offset`` months away from ``moment``."""
    index = moment.year * 12 + (moment.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def monthly_series(
    rows: Iterable[Tuple[Moment, Optional[Decimal]]],
    now: datetime,
    months: int = 12,
) -> List[Dict[str, object]]:
    """
    Bucket (moment, amount) rows into per-month totals.

    Returns ``months`` entries, oldest first, ending with the month of ``now``.
    Rows outside the window are ignored; NULL amounts count as zero.
    """
    buckets = [month_start(now, offset) for offset in range(-(months - 1), 1)]
    totals: Dict[date, Decimal] = {bucket: Decimal("0") for bucket in buckets}
    for moment, amount in rows:
        bucket = month_start(moment)
        if bucket in totals:
            totals[bucket] += to_decimal(amount)
    return [
        {
            "month": bucket.strftime("%Y-%m"),
            "label": bucket.strftime("%b %Y"),
            "amount": totals[bucket],
        }
        for bucket in buckets
    ]


def count_by(items: Iterable[T], key: Callable[[T], object]) -> Dict[object, int]:
    counts: Dict[object, int] = {}
    for item in items:
        bucket = key(item)
        counts[bucket] = counts.get(bucket, 0) + 1
    return counts


def rate_of(items: Sequence[T], predicate: Callable[[T], bool]) -> float:
    """Share of items matching ``predicate`` as a percentage; 0 for no items."""
    return percentage(sum(1 for item in items if predicate(item)), len(items))


def average(values: Iterable[Optional[Union[float, Decimal]]]) -> float:
    """Mean of the non-NULL values rounded to two decimals; 0 when there are none."""
    present = [to_decimal(v) for v in values if v is not None]
    if not present:
        return 0.0
    return round2(sum(present) / len(present))
