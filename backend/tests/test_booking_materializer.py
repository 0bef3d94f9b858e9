from datetime import date, datetime, time
from decimal import Decimal

import pytest

from fulfillment import models
from fulfillment.core.config import settings
from fulfillment.models.quote import ServiceArrangement
from fulfillment.schemas.booking import TherapistAssignment
from fulfillment.services.booking_materializer import (
    CORPORATE_BOOKING_TYPE,
    INDIVIDUAL_BOOKING_TYPE,
    materialize,
    plan_bookings,
    recreate_bookings,
)
from fulfillment.utils.errors import (
    AssignmentValidationError,
    BookingConflictError,
    BookingPersistenceError,
)

MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)


def _assign(therapist_id, day=MONDAY, start=time(10, 0), rate="90", **kwargs):
    return TherapistAssignment(
        date=day,
        start_time=start,
        therapist_id=therapist_id,
        therapist_name=f"Therapist {therapist_id}",
        hourly_rate=Decimal(rate),
        **kwargs,
    )


def _two_day_quote(make_quote, **fields):
    fields.setdefault("total_amount", Decimal("594"))
    fields.setdefault("duration_minutes", 360)
    return make_quote(
        days=[(MONDAY, time(10, 0), time(13, 0)), (SATURDAY, time(10, 0), time(13, 0))],
        **fields,
    )


def test_original_fixture_amounts(make_quote):
    # $2400 over 4 bookings, 900 minutes, no per-day rows
    quote = make_quote(
        total_amount=Decimal("2400"),
        discount_amount=Decimal("100"),
        gst_amount=Decimal("209.09"),
        duration_minutes=900,
    )
    assignments = [_assign(i, start=time(9 + i, 0)) for i in range(1, 5)]

    plans = plan_bookings(quote, assignments, split_divisor="quote")

    for p in plans:
        assert p.price == Decimal("600.00")
        assert p.discount_amount == Decimal("25.00")
        assert p.tax_rate_amount == Decimal("52.27")
        assert p.net_price == Decimal("575.00")
        assert p.duration_minutes == 225
        assert p.therapist_fee == Decimal("337.50")
        assert p.is_split_booking is True


def test_split_divides_each_day_between_its_therapists(make_quote):
    quote = _two_day_quote(make_quote)
    assignments = [
        _assign(1, MONDAY),
        _assign(2, MONDAY),
        _assign(1, SATURDAY),
        _assign(2, SATURDAY),
    ]

    plans = plan_bookings(quote, assignments)

    assert [p.duration_minutes for p in plans] == [90, 90, 90, 90]
    assert all(p.therapist_fee == Decimal("135.00") for p in plans)
    assert [p.price for p in plans] == [Decimal("148.50")] * 4


def test_quote_wide_divisor(make_quote):
    quote = _two_day_quote(make_quote)
    assignments = [_assign(1, MONDAY), _assign(2, MONDAY), _assign(1, SATURDAY), _assign(2, SATURDAY)]
    plans = plan_bookings(quote, assignments, split_divisor="quote")
    assert [p.duration_minutes for p in plans] == [45, 45, 45, 45]


def test_multiply_gives_each_therapist_the_full_day(make_quote):
    quote = _two_day_quote(make_quote, service_arrangement=ServiceArrangement.MULTIPLY, therapists_needed=2)
    assignments = [_assign(1, MONDAY), _assign(2, MONDAY)]

    plans = plan_bookings(quote, assignments)

    assert [p.duration_minutes for p in plans] == [180, 180]
    assert sum(p.duration_minutes for p in plans) == 2 * 180
    assert all(p.therapist_fee == Decimal("270.00") for p in plans)


def test_day_numbers_follow_first_seen_dates(make_quote):
    quote = _two_day_quote(make_quote)
    assignments = [_assign(1, SATURDAY), _assign(2, MONDAY), _assign(3, SATURDAY)]

    plans = plan_bookings(quote, assignments)

    assert [p.quote_day_number for p in plans] == [1, 2, 1]
    assert [p.booking_id for p in plans] == [
        f"BK-{quote.id}-1-1",
        f"BK-{quote.id}-2-2",
        f"BK-{quote.id}-1-3",
    ]
    assert plans[0].booking_time == datetime(2026, 10, 24, 10, 0)


def test_planning_is_deterministic(make_quote):
    quote = _two_day_quote(make_quote)
    assignments = [_assign(1, MONDAY), _assign(2, SATURDAY)]
    assert plan_bookings(quote, assignments) == plan_bookings(quote, assignments)


def test_corporate_contact_and_notes(make_quote):
    quote = _two_day_quote(
        make_quote,
        company_name="Acme Pty Ltd",
        corporate_contact_name="Robin van Dijk",
        corporate_contact_email="robin@acme.test",
        setup_requirements="Quiet room",
        po_number="PO-77",
        notes="Lift access",
    )
    plans = plan_bookings(
        quote, [_assign(1, is_override=True, override_reason="Client request")]
    )
    p = plans[0]
    assert p.customer_email == "robin@acme.test"
    assert p.booker_name == "Robin van Dijk"
    assert (p.first_name, p.last_name) == ("Robin", "van Dijk")
    assert p.business_name == "Acme Pty Ltd"
    assert p.booking_type == CORPORATE_BOOKING_TYPE
    assert p.notes == "Setup: Quiet room | PO: PO-77 | Lift access | Override: Client request"
    assert p.is_split_booking is False


def test_individual_quote_uses_personal_contact(make_quote):
    quote = _two_day_quote(make_quote)
    p = plan_bookings(quote, [_assign(1)])[0]
    assert p.customer_email == "jamie@example.com"
    assert p.booking_type == INDIVIDUAL_BOOKING_TYPE
    assert p.notes is None


def test_zero_rate_gives_zero_fee(make_quote, caplog):
    quote = _two_day_quote(make_quote)
    with caplog.at_level("WARNING"):
        p = plan_bookings(quote, [_assign(1, rate="0")])[0]
    assert p.therapist_fee == Decimal("0.00")
    assert "no hourly rate" in caplog.text


def test_unknown_date_uses_average_day(make_quote, caplog):
    quote = make_quote(
        days=[(MONDAY, time(10, 0), time(13, 0)), (SATURDAY, time(10, 0), time(11, 0))],
        total_amount=Decimal("300"),
        duration_minutes=240,
    )
    with caplog.at_level("WARNING"):
        p = plan_bookings(quote, [_assign(1, date(2026, 10, 21))])[0]
    assert p.duration_minutes == 120
    assert "not on quote" in caplog.text


def test_rejects_empty_assignments(make_quote):
    quote = _two_day_quote(make_quote)
    with pytest.raises(AssignmentValidationError, match="No therapist assignments provided"):
        plan_bookings(quote, [])


def test_rejects_quote_without_totals(make_quote):
    quote = make_quote(duration_minutes=60)
    with pytest.raises(AssignmentValidationError, match="missing required financial"):
        plan_bookings(quote, [_assign(1)])


def test_materialize_persists_pending_bookings(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    b = make_therapist(first_name="Bea")
    quote = _two_day_quote(make_quote)

    result = materialize(db, quote, [_assign(a.id, MONDAY), _assign(b.id, SATURDAY)])

    rows = db.query(models.Booking).order_by(models.Booking.id).all()
    assert [r.id for r in rows] == result.booking_ids
    assert [r.booking_id for r in rows] == result.booking_codes
    assert all(r.status == models.BookingStatus.PENDING for r in rows)
    assert all(r.payment_status == "pending" for r in rows)
    assert sum(r.price for r in rows) == quote.total_amount
    db.refresh(quote)
    assert quote.total_therapist_fees == Decimal("540.00")


def test_recreate_is_idempotent(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    b = make_therapist(first_name="Bea")
    quote = _two_day_quote(make_quote)
    assignments = [_assign(a.id, MONDAY), _assign(b.id, MONDAY)]

    recreate_bookings(db, quote, assignments)
    first = [
        (r.booking_id, r.therapist_id, r.booking_time, r.duration_minutes, r.price)
        for r in db.query(models.Booking).order_by(models.Booking.booking_id)
    ]
    recreate_bookings(db, quote, assignments)
    second = [
        (r.booking_id, r.therapist_id, r.booking_time, r.duration_minutes, r.price)
        for r in db.query(models.Booking).order_by(models.Booking.booking_id)
    ]

    assert first == second
    assert db.query(models.Booking).count() == 2


def test_conflict_with_another_quote_rolls_back(db, make_quote, make_therapist, make_booking):
    a = make_therapist(first_name="Ann")
    other = _two_day_quote(make_quote)
    make_booking(
        a,
        datetime(2026, 10, 19, 11, 0),
        status=models.BookingStatus.PENDING,
        parent_quote_id=other.id,
    )
    quote = _two_day_quote(make_quote)
    before = db.query(models.Booking).count()

    with pytest.raises(BookingConflictError) as exc:
        recreate_bookings(db, quote, [_assign(a.id, MONDAY)])

    assert exc.value.conflicts[0]["therapist_id"] == a.id
    assert db.query(models.Booking).count() == before


def test_override_does_not_bypass_booking_conflicts(db, make_quote, make_therapist, make_booking):
    a = make_therapist(first_name="Ann")
    make_booking(a, datetime(2026, 10, 19, 10, 0))
    quote = _two_day_quote(make_quote)
    with pytest.raises(BookingConflictError):
        materialize(db, quote, [_assign(a.id, MONDAY, is_override=True, override_reason="VIP")])


def test_same_therapist_twice_in_batch_conflicts(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    quote = _two_day_quote(make_quote)
    with pytest.raises(BookingConflictError):
        materialize(db, quote, [_assign(a.id, MONDAY), _assign(a.id, MONDAY)])
    assert db.query(models.Booking).count() == 0


def test_failed_recreate_keeps_previous_bookings(db, make_quote, make_therapist, make_booking):
    a = make_therapist(first_name="Ann")
    b = make_therapist(first_name="Bea")
    quote = _two_day_quote(make_quote)
    recreate_bookings(db, quote, [_assign(a.id, MONDAY)])
    make_booking(b, datetime(2026, 10, 24, 10, 0))

    with pytest.raises(BookingConflictError):
        recreate_bookings(db, quote, [_assign(b.id, SATURDAY)])

    codes = [r.booking_id for r in db.query(models.Booking).filter_by(parent_quote_id=quote.id)]
    assert codes == [f"BK-{quote.id}-1-1"]


def test_unknown_therapist_is_rejected(db, make_quote):
    quote = _two_day_quote(make_quote)
    with pytest.raises(AssignmentValidationError, match="Unknown therapist"):
        materialize(db, quote, [_assign(404, MONDAY)])


def test_store_failure_is_wrapped(db, make_quote, make_therapist, monkeypatch):
    from sqlalchemy.exc import OperationalError

    a = make_therapist()
    quote = _two_day_quote(make_quote)

    def boom(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "flush", boom)
    with pytest.raises(BookingPersistenceError):
        materialize(db, quote, [_assign(a.id, MONDAY)])


def test_split_divisor_setting_is_used(make_quote, monkeypatch):
    monkeypatch.setattr(settings, "SPLIT_DURATION_DIVISOR", "quote")
    quote = _two_day_quote(make_quote)
    plans = plan_bookings(quote, [_assign(1, MONDAY), _assign(2, SATURDAY)])
    assert [p.duration_minutes for p in plans] == [90, 90]


def test_same_therapist_back_to_back_in_batch_needs_the_buffer(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    quote = _two_day_quote(make_quote)

    # Two 90 minute halves of Monday: 10:00-11:30 then 11:30-13:00
    with pytest.raises(BookingConflictError) as exc:
        materialize(db, quote, [_assign(a.id, MONDAY), _assign(a.id, MONDAY, start=time(11, 30))])

    assert exc.value.conflicts[0]["therapist_id"] == a.id
    assert db.query(models.Booking).count() == 0


def test_same_therapist_in_batch_with_full_buffer_gap(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    quote = _two_day_quote(make_quote)

    # 11:30 end + 30 min buffer meets 12:30 start - 30 min buffer
    result = materialize(
        db, quote, [_assign(a.id, MONDAY), _assign(a.id, MONDAY, start=time(12, 30))]
    )

    assert len(result.booking_ids) == 2


def test_cancelled_booking_does_not_hold_the_slot(db, make_quote, make_therapist, make_booking):
    a = make_therapist(first_name="Ann")
    other = _two_day_quote(make_quote)
    make_booking(
        a,
        datetime(2026, 10, 19, 10, 0),
        status=models.BookingStatus.CANCELLED,
        parent_quote_id=other.id,
    )
    quote = _two_day_quote(make_quote)

    result = recreate_bookings(db, quote, [_assign(a.id, MONDAY)])

    assert result.booking_codes == [f"BK-{quote.id}-1-1"]
    assert db.query(models.Booking).filter_by(therapist_id=a.id).count() == 2


def test_store_rejects_two_active_bookings_in_one_slot(db, make_therapist, make_booking):
    from sqlalchemy.exc import IntegrityError

    a = make_therapist(first_name="Ann")
    when = datetime(2026, 10, 19, 10, 0)
    make_booking(a, when, status=models.BookingStatus.PENDING, booking_id="EXT-1")

    with pytest.raises(IntegrityError):
        make_booking(a, when, status=models.BookingStatus.CONFIRMED, booking_id="EXT-2")
    db.rollback()


def test_materializing_twice_reports_existing_booking_codes(db, make_quote, make_therapist):
    a = make_therapist(first_name="Ann")
    b = make_therapist(first_name="Bea")
    quote = _two_day_quote(make_quote)
    materialize(db, quote, [_assign(a.id, MONDAY)])

    with pytest.raises(BookingConflictError, match="Booking codes .* already exist"):
        materialize(db, quote, [_assign(b.id, MONDAY)])

    rows = db.query(models.Booking).filter_by(parent_quote_id=quote.id).all()
    assert [(r.booking_id, r.therapist_id) for r in rows] == [(f"BK-{quote.id}-1-1", a.id)]


def test_schedule_read_failure_is_wrapped(db, make_quote, monkeypatch):
    from sqlalchemy.exc import OperationalError

    import fulfillment.services.booking_materializer as materializer

    quote = _two_day_quote(make_quote)

    def broken_schedule(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(materializer, "plan_bookings", broken_schedule)
    with pytest.raises(BookingPersistenceError):
        materialize(db, quote, [_assign(1, MONDAY)])
