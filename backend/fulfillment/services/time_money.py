"""Pure time and money helpers shared by the availability, pricing and
booking code.

Weekdays follow the convention stored in ``therapist_availability`` and
``time_pricing_rules``: 0 = Sunday ... 6 = Saturday.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

_CENT = Decimal("0.01")
_SIXTY = Decimal("60")

SATURDAY = 6
SUNDAY = 0
WEEKEND_DAYS = (SUNDAY, SATURDAY)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def day_of_week(value: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return (value.weekday() + 1) % 7


def day_name(value: date) -> str:
    return DAY_NAMES[day_of_week(value)]


def is_weekend(value: date) -> bool:
    return day_of_week(value) in WEEKEND_DAYS


def is_business_hours(value: date, start: time, opening_hour: int, closing_hour: int) -> bool:
    """Weekends are always after-hours; weekdays use [opening, closing)."""
    if is_weekend(value):
        return False
    return opening_hour <= start.hour < closing_hour


def parse_time(value: Any) -> time | None:
    """Accept ``time`` objects and "HH:MM" / "HH:MM:SS" strings."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    parts = str(value).strip().split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
        second = int(parts[2]) if len(parts) > 2 else 0
        return time(hour, minute, second)
    except (ValueError, IndexError) as exc:
        raise ValueError(f"Invalid time value: {value!r}") from exc


def minutes_between(start: time | None, finish: time | None) -> int:
    if start is None or finish is None:
        return 0
    diff = (finish.hour * 60 + finish.minute) - (start.hour * 60 + start.minute)
    return max(0, diff)


def resolve_day_minutes(start: time | None, finish: time | None, stored: int | None) -> int:
    """Stored ``duration_minutes`` wins when positive, else finish - start.

    Days edited by hand often keep a duration that no longer matches the
    start/finish pair; the stored value is the one the client agreed to.
    """
    if stored and stored > 0:
        return int(stored)
    return minutes_between(start, finish)


def combine(day: date, start: time) -> datetime:
    return datetime.combine(day, start)


def intervals_conflict(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
    buffer_minutes: int,
) -> bool:
    """True when the two intervals overlap once padded by ``buffer_minutes``
    on both sides. Touching edges do not conflict.
    """
    pad = timedelta(minutes=buffer_minutes)
    return (a_start - pad) < (b_end + pad) and (a_end + pad) > (b_start - pad)


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def hours_fee(minutes: int, hourly_rate: Any) -> Decimal:
    """(minutes / 60) x rate, rounded to cents."""
    return round_money(Decimal(int(minutes)) / _SIXTY * to_decimal(hourly_rate))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = 6371.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dl / 2) ** 2
    return 2 * r * math.atan2(math.sqrt(a), math.sqrt(1 - a))
