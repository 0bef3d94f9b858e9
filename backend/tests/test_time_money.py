from datetime import date, datetime, time
from decimal import Decimal

import pytest

from fulfillment.services import time_money as tm


def test_day_of_week_uses_sunday_zero():
    assert tm.day_of_week(date(2026, 10, 18)) == 0  # Sunday
    assert tm.day_of_week(date(2026, 10, 19)) == 1  # Monday
    assert tm.day_of_week(date(2026, 10, 24)) == 6  # Saturday
    assert tm.day_name(date(2026, 10, 24)) == "Saturday"


def test_weekend_is_never_business_hours():
    assert tm.is_business_hours(date(2026, 10, 19), time(10, 0), 8, 18)
    assert not tm.is_business_hours(date(2026, 10, 19), time(18, 0), 8, 18)
    assert not tm.is_business_hours(date(2026, 10, 19), time(7, 59), 8, 18)
    assert not tm.is_business_hours(date(2026, 10, 24), time(10, 0), 8, 18)


def test_resolve_day_minutes_prefers_stored_duration():
    assert tm.resolve_day_minutes(time(10, 0), time(13, 0), None) == 180
    assert tm.resolve_day_minutes(time(10, 0), time(13, 0), 0) == 180
    assert tm.resolve_day_minutes(time(10, 0), time(13, 0), 150) == 150
    assert tm.resolve_day_minutes(time(10, 0), None, None) == 0
    assert tm.resolve_day_minutes(time(13, 0), time(10, 0), None) == 0


def test_parse_time_accepts_strings():
    assert tm.parse_time("09:30") == time(9, 30)
    assert tm.parse_time("9") == time(9, 0)
    assert tm.parse_time("") is None
    with pytest.raises(ValueError):
        tm.parse_time("nine")


def _dt(h, m=0):
    return datetime(2026, 10, 19, h, m)


def test_intervals_conflict_is_symmetric_and_padded():
    # 10:00-11:00 and 11:30-12:30 touch once both are padded by 15 minutes
    assert not tm.intervals_conflict(_dt(10), _dt(11), _dt(11, 30), _dt(12, 30), 15)
    assert tm.intervals_conflict(_dt(10), _dt(11), _dt(11, 30), _dt(12, 30), 30)
    assert tm.intervals_conflict(_dt(11, 30), _dt(12, 30), _dt(10), _dt(11), 30)
    assert not tm.intervals_conflict(_dt(10), _dt(11), _dt(11), _dt(12), 0)


def test_money_rounding_is_half_up():
    assert tm.round_money("2.345") == Decimal("2.35")
    assert tm.round_money(None) == Decimal("0.00")
    assert tm.hours_fee(225, 90) == Decimal("337.50")
    assert tm.hours_fee(90, "100") == Decimal("150.00")


def test_haversine_distance():
    # Sydney CBD to Parramatta, roughly 19 km
    km = tm.haversine_km(-33.8688, 151.2093, -33.8150, 151.0011)
    assert 18 < km < 21
