"""Core utility functions for the application"""

from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[Decimal, float, int]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Normalize a possibly NULL numeric value to Decimal (NULL counts as zero)."""
    if value is None:
        return Decimal("0")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value


def round2(value: Optional[Number]) -> float:
    """Round half-up to two decimals."""
    return float(to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def ratio_percent(part: Optional[Number], whole: Optional[Number]) -> float:
    """
    part / whole * 100 rounded to two decimals.
    Returns 0 when the denominator is zero or missing. Not clamped.
    """
    whole = to_decimal(whole)
    if whole == 0:
        return 0.0
    return round2(to_decimal(part) / whole * 100)


def percentage(part: Optional[Number], whole: Optional[Number]) -> float:
    """Like ratio_percent but clamped into [0, 100]."""
    return min(100.0, max(0.0, ratio_percent(part, whole)))


def as_datetime(value: Union[date, datetime]) -> datetime:
    """Promote a date to midnight so dates and datetimes sort together."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)
