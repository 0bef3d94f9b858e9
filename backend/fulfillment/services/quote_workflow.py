"""Quote status transitions and the booking side effects that go with them.

Each action names the statuses it may start from and the status it ends in.
Anything else raises :class:`InvalidTransitionError` before the store is
touched. Side effects and the status change commit together.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..models.base import utcnow
from ..models.booking_status import BookingStatus, PaymentStatus
from ..models.quote import QuoteStatus
from ..schemas.booking import TherapistAssignment
from ..utils.errors import (
    AssignmentValidationError,
    BookingPersistenceError,
    InvalidTransitionError,
)
from .booking_materializer import recreate_bookings

logger = logging.getLogger(__name__)

S = QuoteStatus

ACTIONS: Dict[str, Tuple[FrozenSet[QuoteStatus], QuoteStatus]] = {
    "start_availability_check": (
        frozenset({S.NEW, S.AVAILABILITY_DECLINED, S.AVAILABILITY_CONFIRMED}),
        S.AVAILABILITY_CHECKING,
    ),
    "confirm_availability": (frozenset({S.AVAILABILITY_CHECKING}), S.AVAILABILITY_CONFIRMED),
    "decline_availability": (frozenset({S.AVAILABILITY_CHECKING}), S.AVAILABILITY_DECLINED),
    "send": (frozenset({S.AVAILABILITY_CONFIRMED}), S.SENT),
    "resend": (frozenset({S.SENT, S.ACCEPTED}), S.SENT),
    "accept": (frozenset({S.SENT}), S.ACCEPTED),
    "decline": (frozenset({S.SENT, S.ACCEPTED, S.INVOICED}), S.DECLINED),
    "restore": (frozenset({S.DECLINED}), S.AVAILABILITY_CONFIRMED),
    "invoice": (frozenset({S.ACCEPTED}), S.INVOICED),
    "pay": (frozenset({S.INVOICED}), S.PAID),
    "complete": (frozenset({S.PAID}), S.COMPLETED),
}


def _allowed_transitions() -> Dict[QuoteStatus, FrozenSet[QuoteStatus]]:
    table: Dict[QuoteStatus, set] = {s: set() for s in QuoteStatus}
    for sources, target in ACTIONS.values():
        for source in sources:
            table[source].add(target)
    return {k: frozenset(v) for k, v in table.items()}


ALLOWED_TRANSITIONS = _allowed_transitions()


def _status(quote: models.Quote) -> QuoteStatus:
    value = quote.status
    return value if isinstance(value, QuoteStatus) else QuoteStatus(str(value).lower())


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _begin(quote: models.Quote, action: str) -> QuoteStatus:
    sources, target = ACTIONS[action]
    current = _status(quote)
    if current not in sources:
        raise InvalidTransitionError(quote.id, current.value, target.value)
    return target


def _bookings(db: Session, quote: models.Quote):
    return db.query(models.Booking).filter(models.Booking.parent_quote_id == quote.id)


def _commit(db: Session, quote: models.Quote, action: str) -> models.Quote:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise BookingPersistenceError(f"Failed to {action} quote {quote.id}") from exc
    db.refresh(quote)
    logger.info("Quote %s %s -> %s", quote.id, action, _status(quote).value)
    return quote


def _simple(db: Session, quote: models.Quote, action: str) -> models.Quote:
    quote.status = _begin(quote, action)
    return _commit(db, quote, action)


def start_availability_check(db: Session, quote: models.Quote) -> models.Quote:
    return _simple(db, quote, "start_availability_check")


def confirm_availability(db: Session, quote: models.Quote) -> models.Quote:
    return _simple(db, quote, "confirm_availability")


def decline_availability(db: Session, quote: models.Quote) -> models.Quote:
    return _simple(db, quote, "decline_availability")


def send_quote(
    db: Session, quote: models.Quote, assignments: Sequence[TherapistAssignment]
) -> models.Quote:
    """Materialize pending bookings for ``assignments`` and mark the quote sent."""
    target = _begin(quote, "send")
    recreate_bookings(db, quote, assignments, commit=False)
    quote.status = target
    quote.quote_sent_at = utcnow()
    return _commit(db, quote, "send")


def resend_quote(
    db: Session, quote: models.Quote, assignments: Sequence[TherapistAssignment]
) -> models.Quote:
    """Rebuild the bookings from ``assignments`` and send a new version.

    Previously accepted bookings are replaced by pending ones; the client has
    to accept the new version again.
    """
    target = _begin(quote, "resend")
    recreate_bookings(db, quote, assignments, commit=False)
    quote.status = target
    quote.quote_sent_at = utcnow()
    quote.quote_accepted_at = None
    quote.quote_declined_at = None
    quote.quote_version = (quote.quote_version or 1) + 1
    return _commit(db, quote, "resend")


def accept_quote(db: Session, quote: models.Quote) -> models.Quote:
    target = _begin(quote, "accept")
    updated = _bookings(db, quote).update(
        {models.Booking.status: BookingStatus.CONFIRMED}, synchronize_session=False
    )
    logger.info("Confirming %s bookings for quote %s", updated, quote.id)
    quote.status = target
    quote.quote_accepted_at = utcnow()
    return _commit(db, quote, "accept")


def decline_quote(db: Session, quote: models.Quote) -> models.Quote:
    """Decline the quote and release every therapist slot it held."""
    target = _begin(quote, "decline")
    removed = _bookings(db, quote).delete(synchronize_session=False)
    logger.info("Released %s bookings for declined quote %s", removed, quote.id)
    quote.status = target
    quote.quote_declined_at = utcnow()
    return _commit(db, quote, "decline")


def restore_quote(db: Session, quote: models.Quote) -> models.Quote:
    """Bring a declined quote back; bookings are rebuilt by the next send."""
    quote.status = _begin(quote, "restore")
    quote.quote_declined_at = None
    return _commit(db, quote, "restore")


def mark_invoiced(db: Session, quote: models.Quote) -> models.Quote:
    quote.status = _begin(quote, "invoice")
    quote.invoice_sent_at = utcnow()
    return _commit(db, quote, "invoice")


def mark_paid(db: Session, quote: models.Quote) -> models.Quote:
    target = _begin(quote, "pay")
    _bookings(db, quote).update(
        {models.Booking.payment_status: PaymentStatus.PAID.value}, synchronize_session=False
    )
    quote.status = target
    quote.payment_status = PaymentStatus.PAID.value
    quote.paid_date = utcnow()
    return _commit(db, quote, "pay")


def mark_completed(db: Session, quote: models.Quote) -> models.Quote:
    target = _begin(quote, "complete")
    _bookings(db, quote).update(
        {models.Booking.status: BookingStatus.COMPLETED}, synchronize_session=False
    )
    quote.status = target
    return _commit(db, quote, "complete")


def run_action(
    db: Session,
    quote: models.Quote,
    action: str,
    assignments: Optional[List[TherapistAssignment]] = None,
) -> models.Quote:
    """Dispatch a named action; ``send`` and ``resend`` need assignments."""
    if action not in ACTIONS:
        raise AssignmentValidationError(f"Unknown quote action '{action}'")
    if action == "send":
        return send_quote(db, quote, assignments or [])
    if action == "resend":
        return resend_quote(db, quote, assignments or [])
    handler = {
        "start_availability_check": start_availability_check,
        "confirm_availability": confirm_availability,
        "decline_availability": decline_availability,
        "accept": accept_quote,
        "decline": decline_quote,
        "restore": restore_quote,
        "invoice": mark_invoiced,
        "pay": mark_paid,
        "complete": mark_completed,
    }[action]
    return handler(db, quote)
