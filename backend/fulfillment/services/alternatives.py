from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import TYPE_CHECKING, List, Optional

from ..core.config import settings

if TYPE_CHECKING:
    from .availability import AvailabilityChecker

logger = logging.getLogger(__name__)


def format_alternative(day: date, start: time) -> str:
    """``October 20, 2026 at 10:00``"""
    return f"{day.strftime('%B %d, %Y')} at {start.strftime('%H:%M')}"


def suggest_alternatives(
    checker: "AvailabilityChecker",
    original_date: date,
    start: time,
    duration_minutes: int,
    therapists_required: int,
    days_to_check: Optional[int] = None,
    limit: Optional[int] = None,
    *,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    exclude_quote_id: Optional[int] = None,
) -> List[str]:
    """Probe the following calendar days at the same time of day and return
    up to ``limit`` dates where enough therapists are free. Bookings of
    ``exclude_quote_id`` do not count against the quote itself.
    """
    days_to_check = settings.ALTERNATIVE_PROBE_DAYS if days_to_check is None else days_to_check
    limit = settings.MAX_ALTERNATIVES if limit is None else limit
    if days_to_check <= 0 or limit <= 0:
        return []

    candidates = [original_date + timedelta(days=i) for i in range(1, days_to_check + 1)]
    per_slot = checker.check_slots(
        [(d, start) for d in candidates],
        duration_minutes,
        latitude=latitude,
        longitude=longitude,
        exclude_quote_id=exclude_quote_id,
    )
    found: List[str] = []
    for candidate, results in zip(candidates, per_slot):
        if sum(1 for r in results if r.is_available) >= therapists_required:
            found.append(format_alternative(candidate, start))
            if len(found) >= limit:
                break
    logger.debug(
        "Alternatives for %s %s: %d found in %d days",
        original_date,
        start,
        len(found),
        days_to_check,
    )
    return found
