"""Read and write a quote's event schedule.

A quote is either a single-day event (schedule held on the quote row) or a
multi-day event (one ``QuoteDate`` row per day). Callers work with the flat
``EventDay`` list and never branch on ``event_structure`` themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..models.quote import EventStructure, QuoteStatus
from ..schemas.quote import DayScheduleIn, MultiDaySchedule, SingleDaySchedule
from ..utils.errors import BookingPersistenceError
from .time_money import resolve_day_minutes

logger = logging.getLogger(__name__)

# Statuses whose bookings no longer match the schedule once it changes
SCHEDULE_LOCKED_STATUSES = (QuoteStatus.SENT, QuoteStatus.ACCEPTED)


@dataclass(frozen=True)
class EventDay:
    day_number: int
    event_date: Optional[date]
    start_time: Optional[time]
    finish_time: Optional[time] = None
    stored_minutes: Optional[int] = None
    sessions_count: Optional[int] = None

    @property
    def minutes(self) -> int:
        return resolve_day_minutes(self.start_time, self.finish_time, self.stored_minutes)

    @property
    def is_resolvable(self) -> bool:
        return self.event_date is not None and self.start_time is not None


def _structure(quote: models.Quote) -> EventStructure:
    value = quote.event_structure
    if isinstance(value, EventStructure):
        return value
    return EventStructure(str(value or EventStructure.SINGLE_DAY.value).lower())


def event_days(quote: models.Quote) -> List[EventDay]:
    """Flatten the quote's schedule into ordered ``EventDay`` records.

    A multi-day quote without ``quote_dates`` rows yields no days.
    """
    if _structure(quote) == EventStructure.MULTI_DAY:
        rows = sorted(quote.quote_dates or [], key=lambda r: (r.day_number or 0, r.id or 0))
        return [
            EventDay(
                day_number=row.day_number or idx,
                event_date=row.event_date,
                start_time=row.start_time,
                finish_time=row.finish_time,
                stored_minutes=row.duration_minutes,
                sessions_count=row.sessions_count,
            )
            for idx, row in enumerate(rows, start=1)
        ]
    return [
        EventDay(
            day_number=1,
            event_date=quote.single_event_date,
            start_time=quote.single_start_time,
            finish_time=quote.single_finish_time,
            stored_minutes=quote.duration_minutes,
            sessions_count=quote.total_sessions,
        )
    ]


def resolvable_days(quote: models.Quote) -> List[EventDay]:
    return [d for d in event_days(quote) if d.is_resolvable]


def _day_in(day: EventDay) -> DayScheduleIn:
    return DayScheduleIn(
        event_date=day.event_date,
        start_time=day.start_time,
        finish_time=day.finish_time,
        duration_minutes=day.stored_minutes,
        sessions_count=day.sessions_count,
    )


def event_schedule(quote: models.Quote) -> Union[SingleDaySchedule, MultiDaySchedule, None]:
    """Return the quote's schedule as the tagged schema, skipping days that
    lack a date or start time. ``None`` for a single-day quote with no date.
    """
    days = resolvable_days(quote)
    if _structure(quote) == EventStructure.MULTI_DAY:
        return MultiDaySchedule(days=[_day_in(d) for d in days])
    if not days:
        return None
    return SingleDaySchedule(**_day_in(days[0]).model_dump())


def schedule_days(schedule: Union[SingleDaySchedule, MultiDaySchedule]) -> List[EventDay]:
    """``EventDay`` list for a posted schedule that is not persisted yet."""
    if isinstance(schedule, MultiDaySchedule):
        entries = list(schedule.days)
    else:
        entries = [schedule]
    return [
        EventDay(
            day_number=idx,
            event_date=entry.event_date,
            start_time=entry.start_time,
            finish_time=entry.finish_time,
            stored_minutes=entry.duration_minutes,
            sessions_count=entry.sessions_count,
        )
        for idx, entry in enumerate(entries, start=1)
    ]


def _signature(days: List[EventDay]) -> list:
    return [(d.event_date, d.start_time, d.minutes) for d in days]


def replace_schedule(
    db: Session,
    quote: models.Quote,
    schedule: Union[SingleDaySchedule, MultiDaySchedule],
) -> bool:
    """Write ``schedule`` onto ``quote`` and commit.

    Returns True when the effective schedule changed. If the quote was already
    sent or accepted, its bookings are deleted in the same transaction and the
    quote goes back to ``availability_checking``.
    """
    before = _signature(event_days(quote))
    new_days = schedule_days(schedule)

    if isinstance(schedule, MultiDaySchedule):
        quote.event_structure = EventStructure.MULTI_DAY
        quote.single_event_date = None
        quote.single_start_time = None
        quote.single_finish_time = None
        quote.quote_dates = [
            models.QuoteDate(
                event_date=d.event_date,
                start_time=d.start_time,
                finish_time=d.finish_time,
                duration_minutes=d.stored_minutes,
                sessions_count=d.sessions_count,
                day_number=d.day_number,
            )
            for d in new_days
        ]
    else:
        day = new_days[0]
        quote.event_structure = EventStructure.SINGLE_DAY
        quote.single_event_date = day.event_date
        quote.single_start_time = day.start_time
        quote.single_finish_time = day.finish_time
        quote.quote_dates = []
        if day.sessions_count is not None:
            quote.total_sessions = day.sessions_count
    quote.duration_minutes = sum(d.minutes for d in new_days)

    changed = before != _signature(new_days)
    try:
        if changed and quote.status in SCHEDULE_LOCKED_STATUSES:
            deleted = (
                db.query(models.Booking)
                .filter(models.Booking.parent_quote_id == quote.id)
                .delete(synchronize_session=False)
            )
            logger.info(
                "Schedule of quote %s changed after sending; removed %s bookings",
                quote.id,
                deleted,
            )
            quote.status = QuoteStatus.AVAILABILITY_CHECKING
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise BookingPersistenceError(f"Failed to save schedule for quote {quote.id}") from exc
    db.refresh(quote)
    return changed
