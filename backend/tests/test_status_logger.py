from datetime import datetime

from fulfillment import models
from fulfillment.models.quote import QuoteStatus
from fulfillment.utils.status_logger import register_status_listeners

LOGGER = "fulfillment.utils.status_logger"


def test_quote_status_change_is_logged(db, make_quote, caplog):
    register_status_listeners()
    quote = make_quote()
    with caplog.at_level("INFO", logger=LOGGER):
        quote.status = QuoteStatus.AVAILABILITY_CHECKING
        db.commit()
    assert f"Quote {quote.id} status new -> availability_checking" in caplog.text


def test_booking_label_includes_quote(db, make_quote, make_therapist, make_booking, caplog):
    register_status_listeners()
    quote = make_quote()
    booking = make_booking(
        make_therapist(),
        datetime(2026, 10, 19, 10, 0),
        status=models.BookingStatus.PENDING,
        parent_quote_id=quote.id,
        booking_id="BK-1-1-1",
    )
    with caplog.at_level("INFO", logger=LOGGER):
        booking.status = models.BookingStatus.CONFIRMED
    assert f"Booking BK-1-1-1 (quote {quote.id}) status pending -> confirmed" in caplog.text


def test_registering_twice_logs_once(db, make_quote, caplog):
    register_status_listeners()
    register_status_listeners()
    quote = make_quote()
    with caplog.at_level("INFO", logger=LOGGER):
        quote.status = QuoteStatus.AVAILABILITY_CHECKING
        quote.status = QuoteStatus.AVAILABILITY_CHECKING
    assert caplog.text.count("-> availability_checking") == 1
