from typing import List

from sqlalchemy.orm import Session

from .. import models


def get_bookings_for_quote(db: Session, quote_id: int) -> List[models.Booking]:
    return (
        db.query(models.Booking)
        .filter(models.Booking.parent_quote_id == quote_id)
        .order_by(models.Booking.quote_day_number, models.Booking.booking_id)
        .all()
    )
