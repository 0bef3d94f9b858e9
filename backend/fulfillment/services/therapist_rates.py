from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Tuple

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from .settings_cache import SettingsCache
from .time_money import is_business_hours, round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDefaults:
    daytime_rate: Decimal
    afterhours_rate: Decimal
    opening_hour: int
    closing_hour: int


def load_rate_defaults(db: Session, settings_cache: SettingsCache) -> RateDefaults:
    """Business hours and fallback therapist rates from ``system_settings``."""
    return RateDefaults(
        daytime_rate=settings_cache.get_decimal(
            db, "therapist_daytime_hourly_rate", settings.DEFAULT_DAYTIME_RATE
        ),
        afterhours_rate=settings_cache.get_decimal(
            db, "therapist_afterhours_hourly_rate", settings.DEFAULT_AFTERHOURS_RATE
        ),
        opening_hour=settings_cache.get_hour(db, "business_opening_time", settings.BUSINESS_OPENING_HOUR),
        closing_hour=settings_cache.get_hour(db, "business_closing_time", settings.BUSINESS_CLOSING_HOUR),
    )


def therapist_rates(
    therapist: models.TherapistProfile, defaults: RateDefaults
) -> Tuple[Decimal, Decimal]:
    """Return (hourly, after-hours) for a therapist, falling back to the
    system-wide rates when the profile leaves one unset or zero.
    """
    hourly = to_decimal(therapist.hourly_rate)
    afterhours = to_decimal(therapist.afterhours_rate)
    if hourly <= 0:
        logger.warning(
            "Therapist %s has no hourly rate; using system rate %s",
            therapist.id,
            defaults.daytime_rate,
        )
        hourly = defaults.daytime_rate
    if afterhours <= 0:
        logger.warning(
            "Therapist %s has no after-hours rate; using system rate %s",
            therapist.id,
            defaults.afterhours_rate,
        )
        afterhours = defaults.afterhours_rate
    return round_money(hourly), round_money(afterhours)


def applied_rate(
    therapist: models.TherapistProfile,
    defaults: RateDefaults,
    event_date: date,
    start: time,
) -> Tuple[bool, Decimal, Decimal, Decimal]:
    """(is_afterhours, hourly, afterhours, rate that applies to this slot)."""
    hourly, afterhours = therapist_rates(therapist, defaults)
    business = is_business_hours(event_date, start, defaults.opening_hour, defaults.closing_hour)
    return (not business), hourly, afterhours, (hourly if business else afterhours)
