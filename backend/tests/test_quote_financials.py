from datetime import date, time
from decimal import Decimal

import pytest

from fulfillment import models
from fulfillment.models.quote import ServiceArrangement
from fulfillment.schemas.quote import MultiDaySchedule
from fulfillment.services.event_calendar import EventDay
from fulfillment.services.quote_financials import (
    QuoteFinancialCalculator,
    UpliftRule,
    calculate_total,
    extract_gst,
    weekend_uplift,
)
from fulfillment.utils.errors import AssignmentValidationError

MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)

WEEKEND_20 = {6: [UpliftRule(6, Decimal("20"))], 0: [UpliftRule(0, Decimal("20"))]}


def _days():
    return [
        EventDay(1, MONDAY, time(10, 0), time(13, 0)),
        EventDay(2, SATURDAY, time(10, 0), time(13, 0)),
    ]


def test_monday_and_saturday_with_weekend_uplift():
    result = calculate_total(90, _days(), uplift_by_weekday=WEEKEND_20)

    assert [d.amount for d in result.days] == [Decimal("270.00"), Decimal("324.00")]
    assert result.total_amount == Decimal("594.00")
    assert result.base_amount == Decimal("540.00")
    assert result.weekend_uplift_amount == Decimal("54.00")
    assert result.weekend_uplift_percentage == Decimal("10.00")
    assert result.has_weekend_days is True
    assert result.billable_minutes == 360
    assert "Weekend uplift: $54.00" in result.breakdown


def test_no_rule_means_no_uplift():
    result = calculate_total(90, _days(), uplift_by_weekday={})
    assert result.total_amount == Decimal("540.00")
    assert result.has_weekend_days is False


def test_gst_is_extracted_from_inclusive_final():
    result = calculate_total(90, _days(), uplift_by_weekday=WEEKEND_20, discount_amount=44)
    assert result.final_amount == Decimal("550.00")
    assert result.gst_amount == Decimal("50.00")
    assert extract_gst(Decimal("2300"), 10) == Decimal("209.09")
    assert extract_gst(Decimal("115"), 15) == Decimal("15.00")


def test_multiply_scales_after_summation():
    split = calculate_total(90, _days(), uplift_by_weekday=WEEKEND_20, therapists_needed=2)
    multiply = calculate_total(
        90,
        _days(),
        uplift_by_weekday=WEEKEND_20,
        service_arrangement=ServiceArrangement.MULTIPLY,
        therapists_needed=2,
    )
    assert split.total_amount == Decimal("594.00")
    assert multiply.total_amount == Decimal("1188.00")
    assert multiply.billable_minutes == 2 * split.billable_minutes
    assert multiply.weekend_uplift_amount == Decimal("108.00")
    assert multiply.therapist_multiplier == 2


def test_stored_duration_overrides_times():
    days = [EventDay(1, MONDAY, time(10, 0), time(13, 0), stored_minutes=120)]
    assert calculate_total(60, days).total_amount == Decimal("120.00")


def test_days_without_minutes_share_quote_duration():
    days = [EventDay(1, MONDAY, time(10, 0)), EventDay(2, date(2026, 10, 20), time(10, 0))]
    result = calculate_total(60, days, duration_minutes=240)
    assert [d.minutes for d in result.days] == [120, 120]
    assert result.total_amount == Decimal("240.00")


def test_calculation_is_deterministic():
    first = calculate_total(87.5, _days(), uplift_by_weekday=WEEKEND_20, discount_amount=10)
    second = calculate_total(87.5, _days(), uplift_by_weekday=WEEKEND_20, discount_amount=10)
    assert first.model_dump() == second.model_dump()


def test_time_windowed_rule_only_matches_inside_window():
    rules = {6: [UpliftRule(6, Decimal("50"), time(18, 0), time(23, 0))]}
    assert weekend_uplift(rules, 6, time(10, 0)) == Decimal("0")
    assert weekend_uplift(rules, 6, time(19, 0)) == Decimal("50")
    # Sunday falls back to the Saturday rule when it matches
    assert weekend_uplift(rules, 0, time(19, 0)) == Decimal("50")
    assert weekend_uplift(rules, 1, time(19, 0)) == Decimal("0")


def test_calculator_reads_rules_and_gst_from_store(db, settings_cache, make_quote):
    db.add(models.TimePricingRule(day_of_week=6, uplift_percentage=Decimal("20"), is_active=True))
    db.add(models.TimePricingRule(day_of_week=0, uplift_percentage=Decimal("99"), is_active=False))
    db.add(models.SystemSetting(key="gst_rate", value="10"))
    db.commit()
    quote = make_quote(
        days=[(MONDAY, time(10, 0), time(13, 0)), (SATURDAY, time(10, 0), time(13, 0))],
        hourly_rate=Decimal("90"),
        discount_amount=Decimal("0"),
    )

    calc = QuoteFinancialCalculator(db, settings_cache)
    result = calc.apply_to_quote(quote)

    assert result.total_amount == Decimal("594.00")
    db.refresh(quote)
    assert quote.total_amount == Decimal("594.00")
    assert quote.final_amount == Decimal("594.00")
    assert quote.gst_amount == Decimal("54.00")
    assert quote.duration_minutes == 360


def test_calculator_preview_uses_posted_schedule(db, settings_cache):
    calc = QuoteFinancialCalculator(db, settings_cache)
    schedule = MultiDaySchedule(
        days=[
            {"event_date": SUNDAY, "start_time": time(9, 0), "finish_time": time(11, 0)},
        ]
    )
    result = calc.preview(100, schedule)
    assert result.total_amount == Decimal("200.00")
    assert result.tax_rate == Decimal("10.0")


def test_calculator_requires_an_hourly_rate(db, settings_cache, make_quote):
    quote = make_quote(single_event_date=MONDAY, single_start_time=time(10, 0), duration_minutes=60)
    with pytest.raises(AssignmentValidationError):
        QuoteFinancialCalculator(db, settings_cache).calculate_for_quote(quote)
