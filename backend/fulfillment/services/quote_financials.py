"""Quote totals: per-day hours x rate, weekend uplift, staffing multiplier,
discount and GST extraction.

``calculate_total`` is pure and deterministic. ``QuoteFinancialCalculator``
wires it to the pricing rules and system settings in the database.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..models.quote import ServiceArrangement
from ..schemas.financials import DayAmount, QuoteFinancials
from ..schemas.quote import MultiDaySchedule, SingleDaySchedule
from ..utils.errors import AssignmentValidationError, BookingPersistenceError
from .event_calendar import EventDay, event_days, schedule_days
from .settings_cache import SettingsCache
from .time_money import (
    WEEKEND_DAYS,
    day_name,
    day_of_week,
    round_money,
    to_decimal,
)

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_SIXTY = Decimal("60")


@dataclass(frozen=True)
class UpliftRule:
    day_of_week: int
    percentage: Decimal
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def applies_at(self, start: Optional[time]) -> bool:
        if self.start_time is None or self.end_time is None or start is None:
            return True
        return self.start_time <= start < self.end_time


def weekend_uplift(
    uplift_by_weekday: Mapping[int, Sequence[UpliftRule]],
    weekday: int,
    start: Optional[time],
) -> Decimal:
    """Uplift percentage for a weekend day; 0 on weekdays or with no rule.

    A rule for the exact weekday wins; otherwise any weekend rule applies.
    """
    if weekday not in WEEKEND_DAYS:
        return Decimal("0")
    for rule in uplift_by_weekday.get(weekday, ()):
        if rule.applies_at(start):
            return to_decimal(rule.percentage)
    for other in WEEKEND_DAYS:
        for rule in uplift_by_weekday.get(other, ()):
            if rule.applies_at(start):
                return to_decimal(rule.percentage)
    return Decimal("0")


def extract_gst(final_amount: Decimal, tax_rate: Any) -> Decimal:
    """GST contained in a GST-inclusive amount: final - final / (1 + rate%)."""
    divisor = Decimal("1") + to_decimal(tax_rate) / _HUNDRED
    return round_money(final_amount - final_amount / divisor)


def _fmt(value: Decimal) -> str:
    return f"${value:.2f}"


def calculate_total(
    hourly_rate: Any,
    days: Sequence[EventDay],
    *,
    uplift_by_weekday: Optional[Mapping[int, Sequence[UpliftRule]]] = None,
    service_arrangement: Union[ServiceArrangement, str] = ServiceArrangement.SPLIT,
    therapists_needed: Optional[int] = 1,
    discount_amount: Any = 0,
    tax_rate: Any = None,
    duration_minutes: Optional[int] = None,
) -> QuoteFinancials:
    """Compute the GST-inclusive totals for ``days`` at ``hourly_rate``.

    Days with no resolvable minutes share ``duration_minutes`` evenly. Under
    the ``multiply`` arrangement every therapist works the whole schedule, so
    amounts and billable minutes are scaled after the per-day summation.
    """
    rate = to_decimal(hourly_rate)
    rules = uplift_by_weekday or {}
    tax = to_decimal(settings.DEFAULT_GST_RATE if tax_rate is None else tax_rate)
    discount = round_money(discount_amount)
    dated = [d for d in days if d.event_date is not None]

    fallback_minutes = 0
    if duration_minutes and dated:
        fallback_minutes = int(duration_minutes) // len(dated)

    day_amounts: List[DayAmount] = []
    lines: List[str] = []
    total = Decimal("0")
    uplift_total = Decimal("0")
    minutes_total = 0
    for day in dated:
        minutes = day.minutes or fallback_minutes
        hours = Decimal(minutes) / _SIXTY
        base = round_money(hours * rate)
        pct = weekend_uplift(rules, day_of_week(day.event_date), day.start_time)
        amount = round_money(base * (Decimal("1") + pct / _HUNDRED)) if pct else base
        label = f"{day.event_date.isoformat()} ({day_name(day.event_date)})"
        if pct:
            multiplier = Decimal("1") + pct / _HUNDRED
            lines.append(f"{label}: {hours:.1f}h x {_fmt(rate)} x {multiplier.normalize()} = {_fmt(amount)}")
        else:
            lines.append(f"{label}: {hours:.1f}h x {_fmt(rate)} = {_fmt(amount)}")
        day_amounts.append(
            DayAmount(
                event_date=day.event_date.isoformat(),
                day_name=day_name(day.event_date),
                minutes=minutes,
                base_amount=base,
                uplift_percentage=pct,
                uplift_amount=amount - base,
                amount=amount,
            )
        )
        total += amount
        uplift_total += amount - base
        minutes_total += minutes

    base_amount = round_money(Decimal(minutes_total) / _SIXTY * rate)
    uplift_total = round_money(uplift_total)
    uplift_pct = (
        round_money(uplift_total / base_amount * _HUNDRED) if base_amount > 0 else Decimal("0.00")
    )

    arrangement = ServiceArrangement(getattr(service_arrangement, "value", service_arrangement))
    multiplier = 1
    if arrangement == ServiceArrangement.MULTIPLY and therapists_needed and therapists_needed > 1:
        multiplier = int(therapists_needed)

    total_amount = round_money(total * multiplier)
    base_amount = round_money(base_amount * multiplier)
    uplift_total = round_money(uplift_total * multiplier)
    final_amount = max(Decimal("0.00"), round_money(total_amount - discount))
    gst_amount = extract_gst(final_amount, tax)

    breakdown = "Per-day calculation:\n" + "\n".join(lines)
    if multiplier > 1:
        breakdown += f"\n\nMultiplied by {multiplier} therapists"
    if uplift_total > 0:
        breakdown += f"\n\nBase: {_fmt(base_amount)} + Weekend uplift: {_fmt(uplift_total)}"
    breakdown += f"\nTotal: {_fmt(total_amount)}"

    return QuoteFinancials(
        hourly_rate=round_money(rate),
        base_amount=base_amount,
        weekend_uplift_amount=uplift_total,
        weekend_uplift_percentage=uplift_pct,
        total_amount=total_amount,
        discount_amount=discount,
        final_amount=final_amount,
        gst_amount=gst_amount,
        tax_rate=tax,
        total_minutes=minutes_total,
        billable_minutes=minutes_total * multiplier,
        therapist_multiplier=multiplier,
        has_weekend_days=uplift_total > 0,
        days=day_amounts,
        breakdown=breakdown,
    )


class QuoteFinancialCalculator:
    """Loads pricing rules and the GST rate, then delegates to
    :func:`calculate_total`.
    """

    def __init__(self, db: Session, settings_cache: SettingsCache):
        self.db = db
        self.settings_cache = settings_cache

    def uplift_rules(self) -> Dict[int, List[UpliftRule]]:
        rows = (
            self.db.query(models.TimePricingRule)
            .filter(
                models.TimePricingRule.is_active.is_(True),
                models.TimePricingRule.day_of_week.in_(WEEKEND_DAYS),
            )
            .order_by(models.TimePricingRule.id)
            .all()
        )
        grouped: Dict[int, List[UpliftRule]] = defaultdict(list)
        for row in rows:
            grouped[row.day_of_week].append(
                UpliftRule(
                    day_of_week=row.day_of_week,
                    percentage=to_decimal(row.uplift_percentage),
                    start_time=row.start_time,
                    end_time=row.end_time,
                )
            )
        if not grouped:
            logger.info("No active weekend pricing rules; weekend days are not uplifted")
        return dict(grouped)

    def tax_rate(self) -> Decimal:
        return self.settings_cache.get_decimal(self.db, "gst_rate", settings.DEFAULT_GST_RATE)

    def preview(
        self,
        hourly_rate: Any,
        schedule: Union[SingleDaySchedule, MultiDaySchedule],
        *,
        service_arrangement: Union[ServiceArrangement, str] = ServiceArrangement.SPLIT,
        therapists_needed: int = 1,
        discount_amount: Any = 0,
    ) -> QuoteFinancials:
        return calculate_total(
            hourly_rate,
            schedule_days(schedule),
            uplift_by_weekday=self.uplift_rules(),
            service_arrangement=service_arrangement,
            therapists_needed=therapists_needed,
            discount_amount=discount_amount,
            tax_rate=self.tax_rate(),
        )

    def calculate_for_quote(
        self,
        quote: models.Quote,
        *,
        hourly_rate: Any = None,
        discount_amount: Any = None,
    ) -> QuoteFinancials:
        rate = hourly_rate if hourly_rate is not None else quote.hourly_rate
        if rate is None:
            raise AssignmentValidationError("Quote has no hourly rate")
        discount = discount_amount if discount_amount is not None else (quote.discount_amount or 0)
        return calculate_total(
            rate,
            event_days(quote),
            uplift_by_weekday=self.uplift_rules(),
            service_arrangement=quote.service_arrangement or ServiceArrangement.SPLIT,
            therapists_needed=quote.therapists_needed or 1,
            discount_amount=discount,
            tax_rate=self.tax_rate(),
            duration_minutes=quote.duration_minutes,
        )

    def apply_to_quote(
        self,
        quote: models.Quote,
        *,
        hourly_rate: Any = None,
        discount_amount: Any = None,
    ) -> QuoteFinancials:
        """Calculate and persist the quote's money fields."""
        result = self.calculate_for_quote(
            quote, hourly_rate=hourly_rate, discount_amount=discount_amount
        )
        quote.hourly_rate = result.hourly_rate
        quote.total_amount = result.total_amount
        quote.discount_amount = result.discount_amount
        quote.final_amount = result.final_amount
        quote.gst_amount = result.gst_amount
        if not quote.duration_minutes and result.total_minutes:
            quote.duration_minutes = result.total_minutes
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise BookingPersistenceError(f"Failed to save totals for quote {quote.id}") from exc
        self.db.refresh(quote)
        logger.info(
            "Quote %s totals: total=%s final=%s gst=%s",
            quote.id,
            result.total_amount,
            result.final_amount,
            result.gst_amount,
        )
        return result
