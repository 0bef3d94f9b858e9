"""Per-day therapist availability for a quote.

Every active therapist is checked against three constraints, in a fixed
order that stops at the first failure:

1. weekly coverage (``therapist_availability``)
2. approved time off (``therapist_time_off``)
3. overlapping bookings, padded by a buffer on both sides

The checker reads everything it needs for a quote in a handful of batch
queries and evaluates the slots in memory. It never writes.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..models.booking_status import BookingStatus
from ..schemas.availability import (
    AvailabilitySummary,
    DayAvailability,
    QuoteAvailabilityResult,
    TherapistAvailability,
)
from ..utils.errors import QuoteNotFoundError
from .alternatives import suggest_alternatives
from .event_calendar import EventDay, resolvable_days
from .settings_cache import SettingsCache
from .therapist_rates import RateDefaults, applied_rate, load_rate_defaults
from .time_money import combine, day_of_week, haversine_km, intervals_conflict

logger = logging.getLogger(__name__)

REASON_SCHEDULE = "Not available on this day/time"
REASON_TIME_OFF = "On time off"
REASON_BOOKING = "Existing booking conflict"

AVAILABLE = "available"
PARTIAL = "partial"
UNAVAILABLE = "unavailable"


def _to_booking_statuses(values: Iterable) -> List[BookingStatus]:
    out: List[BookingStatus] = []
    for value in values:
        try:
            out.append(value if isinstance(value, BookingStatus) else BookingStatus(str(value).strip().lower()))
        except ValueError:
            logger.warning("Ignoring unknown booking status %r in blocking statuses", value)
    return out


def required_therapists(quote: models.Quote, days: Sequence[EventDay]) -> int:
    """``therapists_needed`` when set; otherwise 2 for engagements longer
    than four hours and 1 for anything shorter.
    """
    if quote.therapists_needed and quote.therapists_needed > 0:
        return int(quote.therapists_needed)
    if quote.total_sessions and quote.session_duration_minutes:
        minutes = int(quote.total_sessions) * int(quote.session_duration_minutes)
    else:
        minutes = sum(d.minutes for d in days) or int(quote.duration_minutes or 0)
    return 2 if minutes / 60 > 4 else 1


def day_status(available: int, required: int) -> str:
    if available >= required:
        return AVAILABLE
    if available > 0:
        return PARTIAL
    return UNAVAILABLE


def overall_status(statuses: Sequence[str]) -> str:
    """All days available (vacuously so for no days) gives available."""
    if all(s == AVAILABLE for s in statuses):
        return AVAILABLE
    if any(s in (AVAILABLE, PARTIAL) for s in statuses):
        return PARTIAL
    return UNAVAILABLE


@dataclass
class _Snapshot:
    """Rows for a set of therapists over a date window, grouped per therapist."""

    therapists: List[models.TherapistProfile]
    weekly: Dict[int, List[models.TherapistAvailability]] = field(default_factory=dict)
    time_off: Dict[int, List[models.TherapistTimeOff]] = field(default_factory=dict)
    bookings: Dict[int, List[models.Booking]] = field(default_factory=dict)


class AvailabilityChecker:
    def __init__(
        self,
        db: Session,
        settings_cache: SettingsCache,
        *,
        buffer_minutes: Optional[int] = None,
        blocking_statuses: Optional[Iterable] = None,
    ):
        self.db = db
        self.settings_cache = settings_cache
        self.buffer_minutes = int(
            settings.BOOKING_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes
        )
        self.blocking_statuses = _to_booking_statuses(
            settings.AVAILABILITY_BLOCKING_STATUSES if blocking_statuses is None else blocking_statuses
        )
        self._rates: Optional[RateDefaults] = None

    @property
    def rate_defaults(self) -> RateDefaults:
        if self._rates is None:
            self._rates = load_rate_defaults(self.db, self.settings_cache)
        return self._rates

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _active_therapists(
        self, latitude: Optional[float] = None, longitude: Optional[float] = None
    ) -> List[models.TherapistProfile]:
        therapists = (
            self.db.query(models.TherapistProfile)
            .filter(models.TherapistProfile.is_active.is_(True))
            .order_by(models.TherapistProfile.id)
            .all()
        )
        if latitude is None or longitude is None:
            return therapists
        in_range = []
        for t in therapists:
            if t.latitude is None or t.longitude is None or t.service_radius_km is None:
                logger.debug("Therapist %s has no location data; excluded from radius filter", t.id)
                continue
            if haversine_km(latitude, longitude, t.latitude, t.longitude) <= t.service_radius_km:
                in_range.append(t)
        logger.info("Radius filter kept %d of %d therapists", len(in_range), len(therapists))
        return in_range

    def _snapshot(
        self,
        therapists: List[models.TherapistProfile],
        first_day: date,
        last_day: date,
        exclude_quote_id: Optional[int] = None,
    ) -> _Snapshot:
        snap = _Snapshot(therapists=therapists)
        ids = [t.id for t in therapists]
        if not ids:
            return snap

        weekly = defaultdict(list)
        for row in (
            self.db.query(models.TherapistAvailability)
            .filter(models.TherapistAvailability.therapist_id.in_(ids))
            .all()
        ):
            weekly[row.therapist_id].append(row)

        time_off = defaultdict(list)
        for row in (
            self.db.query(models.TherapistTimeOff)
            .filter(
                models.TherapistTimeOff.therapist_id.in_(ids),
                models.TherapistTimeOff.is_active.is_(True),
                models.TherapistTimeOff.start_date <= last_day,
                models.TherapistTimeOff.end_date >= first_day,
            )
            .all()
        ):
            time_off[row.therapist_id].append(row)

        # Bookings starting the day before may still run into the first slot
        window_start = datetime.combine(first_day - timedelta(days=1), time.min)
        window_end = datetime.combine(last_day + timedelta(days=1), time.min) + timedelta(
            minutes=self.buffer_minutes
        )
        bookings = defaultdict(list)
        if self.blocking_statuses:
            query = self.db.query(models.Booking).filter(
                models.Booking.therapist_id.in_(ids),
                models.Booking.status.in_(self.blocking_statuses),
                models.Booking.booking_time >= window_start,
                models.Booking.booking_time <= window_end,
            )
            if exclude_quote_id is not None:
                query = query.filter(
                    (models.Booking.parent_quote_id.is_(None))
                    | (models.Booking.parent_quote_id != exclude_quote_id)
                )
            for row in query.all():
                bookings[row.therapist_id].append(row)

        snap.weekly = dict(weekly)
        snap.time_off = dict(time_off)
        snap.bookings = dict(bookings)
        return snap

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _covers(rows: List[models.TherapistAvailability], event_date: date, start: time) -> bool:
        dow = day_of_week(event_date)
        return any(r.day_of_week == dow and r.start_time <= start < r.end_time for r in rows)

    @staticmethod
    def _on_time_off(rows: List[models.TherapistTimeOff], event_date: date) -> bool:
        return any(r.start_date <= event_date <= r.end_date for r in rows)

    def _booking_conflict(
        self, rows: List[models.Booking], start: datetime, end: datetime
    ) -> bool:
        for b in rows:
            b_end = b.booking_time + timedelta(minutes=int(b.duration_minutes or 0))
            if intervals_conflict(start, end, b.booking_time, b_end, self.buffer_minutes):
                return True
        return False

    def _check_therapist(
        self,
        therapist: models.TherapistProfile,
        snap: _Snapshot,
        event_date: date,
        start: time,
        minutes: int,
    ) -> TherapistAvailability:
        reason: Optional[str] = None
        slot_start = combine(event_date, start)
        slot_end = slot_start + timedelta(minutes=minutes)
        if not self._covers(snap.weekly.get(therapist.id, []), event_date, start):
            reason = REASON_SCHEDULE
        elif self._on_time_off(snap.time_off.get(therapist.id, []), event_date):
            reason = REASON_TIME_OFF
        elif self._booking_conflict(snap.bookings.get(therapist.id, []), slot_start, slot_end):
            reason = REASON_BOOKING

        is_afterhours, hourly, afterhours, rate = applied_rate(
            therapist, self.rate_defaults, event_date, start
        )
        return TherapistAvailability(
            therapist_id=therapist.id,
            therapist_name=therapist.full_name,
            therapist_email=therapist.email,
            gender=therapist.gender,
            rating=therapist.rating or 0,
            is_available=reason is None,
            conflict_reason=reason,
            hourly_rate=hourly,
            afterhours_rate=afterhours,
            is_afterhours=is_afterhours,
            applied_rate=rate,
        )

    def _evaluate(
        self, snap: _Snapshot, event_date: date, start: time, minutes: int
    ) -> List[TherapistAvailability]:
        return [self._check_therapist(t, snap, event_date, start, minutes) for t in snap.therapists]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check_slot(
        self,
        event_date: date,
        start: time,
        duration_minutes: int,
        *,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        exclude_quote_id: Optional[int] = None,
    ) -> List[TherapistAvailability]:
        """Every active therapist's result for one slot, available or not."""
        therapists = self._active_therapists(latitude, longitude)
        snap = self._snapshot(therapists, event_date, event_date, exclude_quote_id)
        return self._evaluate(snap, event_date, start, duration_minutes)

    def check_slots(
        self,
        slots: Sequence[tuple],
        duration_minutes: int,
        *,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        exclude_quote_id: Optional[int] = None,
    ) -> List[List[TherapistAvailability]]:
        """Results for several (date, start) slots sharing one batch of reads."""
        if not slots:
            return []
        therapists = self._active_therapists(latitude, longitude)
        dates = [d for d, _ in slots]
        snap = self._snapshot(therapists, min(dates), max(dates), exclude_quote_id)
        return [self._evaluate(snap, d, s, duration_minutes) for d, s in slots]

    def check_quote(
        self,
        quote_id: int,
        *,
        include_alternatives: bool = False,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        sequence: Optional[int] = None,
    ) -> QuoteAvailabilityResult:
        quote = self.db.query(models.Quote).filter(models.Quote.id == quote_id).first()
        if quote is None:
            raise QuoteNotFoundError(quote_id)

        days = resolvable_days(quote)
        required = required_therapists(quote, days)

        day_results: List[DayAvailability] = []
        if days:
            therapists = self._active_therapists(latitude, longitude)
            snap = self._snapshot(
                therapists,
                min(d.event_date for d in days),
                max(d.event_date for d in days),
                exclude_quote_id=quote.id,
            )
            for day in days:
                minutes = day.minutes or int(quote.session_duration_minutes or 0)
                results = self._evaluate(snap, day.event_date, day.start_time, minutes)
                available = [r for r in results if r.is_available]
                status = day_status(len(available), required)
                day_results.append(
                    DayAvailability(
                        day_number=day.day_number,
                        date=day.event_date,
                        start_time=day.start_time,
                        sessions_count=day.sessions_count,
                        duration_minutes=minutes,
                        therapists_required=required,
                        therapists_available=len(available),
                        available_therapists=results,
                        can_fulfill=status == AVAILABLE,
                        status=status,
                    )
                )
        else:
            logger.info("Quote %s has no resolvable event days", quote_id)

        if include_alternatives:
            for day in day_results:
                if day.status != AVAILABLE:
                    day.alternatives = suggest_alternatives(
                        self,
                        day.date,
                        day.start_time,
                        day.duration_minutes,
                        required,
                        latitude=latitude,
                        longitude=longitude,
                        exclude_quote_id=quote.id,
                    )

        statuses = [d.status for d in day_results]
        overall = overall_status(statuses)
        reasons = sorted(
            {
                r.conflict_reason
                for d in day_results
                for r in d.available_therapists
                if r.conflict_reason
            }
        )
        arrangement = getattr(quote.service_arrangement, "value", quote.service_arrangement)
        result = QuoteAvailabilityResult(
            quote_id=quote.id,
            sequence=sequence,
            can_fulfill_completely=overall == AVAILABLE,
            overall_status=overall,
            duration_minutes=int(quote.duration_minutes or sum(d.duration_minutes for d in day_results)),
            service_arrangement=str(arrangement),
            days=day_results,
            summary=AvailabilitySummary(
                total_days=len(day_results),
                available_days=statuses.count(AVAILABLE),
                partial_days=statuses.count(PARTIAL),
                unavailable_days=statuses.count(UNAVAILABLE),
            ),
            conflict_reasons=reasons,
        )
        logger.info(
            "Availability for quote %s: %s (%d days, %d required per day)",
            quote_id,
            overall,
            len(day_results),
            required,
        )
        return result
