"""Turn a quote plus therapist assignments into persisted bookings.

Planning (:func:`plan_bookings`) is pure: it validates input, numbers the
days, splits duration and money and builds the customer snapshot. Writing
(:func:`materialize`) locks the therapists involved, re-checks for
double-booking against other quotes and inside the batch, and inserts the
rows in the caller's transaction.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..models.booking_status import BookingStatus, PaymentStatus
from ..models.quote import ServiceArrangement
from ..schemas.booking import MaterializeResult, TherapistAssignment
from ..utils.errors import (
    AssignmentValidationError,
    BookingConflictError,
    BookingPersistenceError,
)
from .event_calendar import event_days
from .time_money import combine, hours_fee, intervals_conflict, round_money, to_decimal

logger = logging.getLogger(__name__)

CORPORATE_BOOKING_TYPE = "Corporate Event/Office"
INDIVIDUAL_BOOKING_TYPE = "Hotel/Accommodation"


@dataclass
class PlannedBooking:
    booking_id: str
    parent_quote_id: int
    quote_day_number: int
    therapist_id: int
    responding_therapist_id: int
    booking_time: datetime
    duration_minutes: int
    price: Decimal
    therapist_fee: Decimal
    net_price: Decimal
    discount_amount: Decimal
    tax_rate_amount: Decimal
    gift_card_amount: Decimal
    customer_email: str
    customer_phone: Optional[str]
    booker_name: str
    business_name: Optional[str]
    first_name: str
    last_name: str
    discount_code: Optional[str]
    gift_card_code: Optional[str]
    payment_method: Optional[str]
    address: Optional[str]
    service_id: Optional[str]
    booking_type: str
    is_split_booking: bool
    latitude: Optional[float]
    longitude: Optional[float]
    notes: Optional[str]

    @property
    def ends_at(self) -> datetime:
        return self.booking_time + timedelta(minutes=self.duration_minutes)

    def to_model(self) -> models.Booking:
        return models.Booking(
            **asdict(self),
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING.value,
        )


def _customer_snapshot(quote: models.Quote) -> dict:
    """Corporate contact details win over personal ones for company quotes."""
    corporate = bool(quote.company_name)
    if corporate:
        email = quote.corporate_contact_email or quote.customer_email
        phone = quote.corporate_contact_phone or quote.customer_phone
        booker = quote.corporate_contact_name or quote.customer_name
    else:
        email = quote.customer_email
        phone = quote.customer_phone
        booker = quote.customer_name
    parts = (booker or "").split(" ")
    return {
        "customer_email": email or "",
        "customer_phone": phone,
        "booker_name": booker or "",
        "business_name": quote.company_name,
        "first_name": parts[0] if parts else "",
        "last_name": " ".join(parts[1:]),
        "booking_type": CORPORATE_BOOKING_TYPE if corporate else INDIVIDUAL_BOOKING_TYPE,
    }


def _notes(quote: models.Quote, assignment: TherapistAssignment) -> Optional[str]:
    parts = []
    if quote.setup_requirements:
        parts.append(f"Setup: {quote.setup_requirements}")
    if quote.special_requirements:
        parts.append(f"Special: {quote.special_requirements}")
    if quote.po_number:
        parts.append(f"PO: {quote.po_number}")
    if quote.notes:
        parts.append(quote.notes)
    if assignment.is_override and assignment.override_reason:
        parts.append(f"Override: {assignment.override_reason}")
    return " | ".join(parts) if parts else None


def _minutes_by_date(quote: models.Quote) -> Dict:
    out = {}
    for day in event_days(quote):
        if day.event_date is not None and day.minutes > 0:
            out.setdefault(day.event_date, day.minutes)
    return out


def plan_bookings(
    quote: models.Quote,
    assignments: Sequence[TherapistAssignment],
    *,
    split_divisor: Optional[str] = None,
) -> List[PlannedBooking]:
    """Build the booking rows for ``assignments`` without touching the store.

    Day numbers follow the first appearance of each distinct date in the
    input. Money is split flat across all assignments; duration follows the
    service arrangement.
    """
    if not assignments:
        raise AssignmentValidationError("No therapist assignments provided")
    if not quote.total_amount or not quote.duration_minutes:
        raise AssignmentValidationError("Quote missing required financial or duration data")

    divisor_mode = (split_divisor or settings.SPLIT_DURATION_DIVISOR).lower()
    if divisor_mode not in ("day", "quote"):
        raise AssignmentValidationError(f"Unknown split divisor '{divisor_mode}'")

    count = len(assignments)
    per_date = Counter(a.date for a in assignments)
    multiply = (
        ServiceArrangement(getattr(quote.service_arrangement, "value", quote.service_arrangement))
        == ServiceArrangement.MULTIPLY
    )

    price = round_money(to_decimal(quote.total_amount) / count)
    discount = round_money(to_decimal(quote.discount_amount) / count)
    gst = round_money(to_decimal(quote.gst_amount) / count)
    gift_card = round_money(to_decimal(quote.gift_card_amount) / count)
    net_price = round_money(price - discount)

    minutes_by_date = _minutes_by_date(quote)
    if minutes_by_date:
        fallback_minutes = sum(minutes_by_date.values()) // len(minutes_by_date)
    else:
        fallback_minutes = int(quote.duration_minutes)

    snapshot = _customer_snapshot(quote)
    day_numbers: Dict = {}
    planned: List[PlannedBooking] = []
    for index, assignment in enumerate(assignments, start=1):
        if assignment.date not in day_numbers:
            day_numbers[assignment.date] = len(day_numbers) + 1
        day_number = day_numbers[assignment.date]

        day_minutes = minutes_by_date.get(assignment.date)
        if day_minutes is None:
            if minutes_by_date:
                logger.warning(
                    "Assignment date %s is not on quote %s schedule; using %s minutes",
                    assignment.date,
                    quote.id,
                    fallback_minutes,
                )
            day_minutes = fallback_minutes

        if multiply:
            duration = day_minutes
        else:
            divisor = per_date[assignment.date] if divisor_mode == "day" else count
            duration = day_minutes // max(1, divisor)

        rate = to_decimal(assignment.hourly_rate)
        if rate <= 0:
            logger.warning(
                "Therapist %s (%s) has no hourly rate on quote %s; fee will be 0",
                assignment.therapist_name,
                assignment.therapist_id,
                quote.id,
            )
        planned.append(
            PlannedBooking(
                booking_id=f"BK-{quote.id}-{day_number}-{index}",
                parent_quote_id=quote.id,
                quote_day_number=day_number,
                therapist_id=assignment.therapist_id,
                responding_therapist_id=assignment.therapist_id,
                booking_time=combine(assignment.date, assignment.start_time),
                duration_minutes=int(duration),
                price=price,
                therapist_fee=hours_fee(duration, rate),
                net_price=net_price,
                discount_amount=discount,
                tax_rate_amount=gst,
                gift_card_amount=gift_card,
                discount_code=quote.discount_code,
                gift_card_code=quote.gift_card_code,
                payment_method=quote.payment_method,
                address=quote.event_location,
                service_id=quote.service_id,
                is_split_booking=count > 1,
                latitude=quote.latitude,
                longitude=quote.longitude,
                notes=_notes(quote, assignment),
                **snapshot,
            )
        )
    return planned


def _conflict(a: PlannedBooking, therapist_id: int, start: datetime, end: datetime, code: str) -> dict:
    return {
        "therapist_id": therapist_id,
        "booking_id": a.booking_id,
        "booking_time": a.booking_time.isoformat(),
        "conflicts_with": code,
        "conflicts_with_time": start.isoformat(),
        "conflicts_with_end": end.isoformat(),
    }


def _batch_conflicts(plans: Sequence[PlannedBooking], buffer_minutes: int) -> List[dict]:
    """Same therapist twice in the batch without the travel buffer between slots."""
    conflicts = []
    by_therapist = defaultdict(list)
    for p in plans:
        by_therapist[p.therapist_id].append(p)
    for therapist_id, rows in by_therapist.items():
        for i, a in enumerate(rows):
            for b in rows[i + 1:]:
                if intervals_conflict(a.booking_time, a.ends_at, b.booking_time, b.ends_at, buffer_minutes):
                    conflicts.append(_conflict(a, therapist_id, b.booking_time, b.ends_at, b.booking_id))
    return conflicts


def _store_conflicts(
    db: Session,
    quote_id: int,
    plans: Sequence[PlannedBooking],
    statuses: Iterable,
    buffer_minutes: int,
) -> List[dict]:
    """Overlaps with other quotes' bookings that already hold the therapist."""
    blocking = [s if isinstance(s, BookingStatus) else BookingStatus(str(s).lower()) for s in statuses]
    if not blocking:
        return []
    ids = sorted({p.therapist_id for p in plans})
    lo = min(p.booking_time for p in plans) - timedelta(days=1)
    hi = max(p.ends_at for p in plans) + timedelta(minutes=buffer_minutes)
    existing = (
        db.query(models.Booking)
        .filter(
            models.Booking.therapist_id.in_(ids),
            models.Booking.status.in_(blocking),
            models.Booking.booking_time >= lo,
            models.Booking.booking_time <= hi,
            (models.Booking.parent_quote_id.is_(None)) | (models.Booking.parent_quote_id != quote_id),
        )
        .all()
    )
    conflicts = []
    for p in plans:
        for b in existing:
            if b.therapist_id != p.therapist_id:
                continue
            b_end = b.booking_time + timedelta(minutes=int(b.duration_minutes or 0))
            if intervals_conflict(p.booking_time, p.ends_at, b.booking_time, b_end, buffer_minutes):
                conflicts.append(_conflict(p, b.therapist_id, b.booking_time, b_end, b.booking_id))
    return conflicts


def _write(
    db: Session,
    quote: models.Quote,
    plans: Sequence[PlannedBooking],
    replace: bool,
) -> List[models.Booking]:
    ids = sorted({p.therapist_id for p in plans})
    # Serialize concurrent writers for the same therapists
    locked = (
        db.query(models.TherapistProfile)
        .filter(models.TherapistProfile.id.in_(ids))
        .with_for_update()
        .all()
    )
    missing = set(ids) - {t.id for t in locked}
    if missing:
        raise AssignmentValidationError(
            f"Unknown therapist id(s): {', '.join(str(i) for i in sorted(missing))}"
        )

    if replace:
        removed = (
            db.query(models.Booking)
            .filter(models.Booking.parent_quote_id == quote.id)
            .delete(synchronize_session=False)
        )
        logger.info("Removed %s existing bookings for quote %s", removed, quote.id)

    conflicts = _batch_conflicts(plans, settings.BOOKING_BUFFER_MINUTES) + _store_conflicts(
        db,
        quote.id,
        plans,
        settings.COMMIT_BLOCKING_STATUSES,
        settings.BOOKING_BUFFER_MINUTES,
    )
    if conflicts:
        raise BookingConflictError(
            f"{len(conflicts)} assignment(s) would double-book a therapist", conflicts
        )

    rows = [p.to_model() for p in plans]
    db.add_all(rows)
    quote.total_therapist_fees = round_money(sum((p.therapist_fee for p in plans), Decimal("0")))
    db.flush()
    return rows


def materialize(
    db: Session,
    quote: models.Quote,
    assignments: Sequence[TherapistAssignment],
    *,
    replace: bool = False,
    commit: bool = True,
    split_divisor: Optional[str] = None,
) -> MaterializeResult:
    """Insert bookings for ``assignments``.

    With ``replace`` every existing booking of the quote is deleted first, in
    the same transaction. With ``commit=False`` the caller owns the commit;
    the session is still rolled back here on failure.
    """
    try:
        plans = plan_bookings(quote, assignments, split_divisor=split_divisor)
        rows = _write(db, quote, plans, replace)
        if commit:
            db.commit()
    except (AssignmentValidationError, BookingConflictError):
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        if "booking_id" in str(exc.orig):
            raise BookingConflictError(
                f"Booking codes for quote {quote.id} already exist; recreate the bookings to replace them"
            ) from exc
        raise BookingConflictError(
            f"Bookings for quote {quote.id} clash with an existing therapist slot"
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise BookingPersistenceError(f"Failed to create bookings for quote {quote.id}") from exc

    logger.info(
        "Created %d pending bookings for quote %s: %s",
        len(rows),
        quote.id,
        ", ".join(r.booking_id for r in rows),
    )
    return MaterializeResult(
        quote_id=quote.id,
        booking_ids=[r.id for r in rows],
        booking_codes=[r.booking_id for r in rows],
    )


def recreate_bookings(
    db: Session,
    quote: models.Quote,
    assignments: Sequence[TherapistAssignment],
    *,
    commit: bool = True,
    split_divisor: Optional[str] = None,
) -> MaterializeResult:
    """Delete the quote's bookings and insert the new batch atomically."""
    return materialize(
        db,
        quote,
        assignments,
        replace=True,
        commit=commit,
        split_divisor=split_divisor,
    )
