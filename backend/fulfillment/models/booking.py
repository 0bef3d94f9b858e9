# backend/fulfillment/models/booking.py

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus
from .types import LowercaseEnum

SLOT_HOLDING_CLAUSE = "status IN ('pending', 'requested', 'confirmed')"


class Booking(BaseModel):
    """Billable unit materialized from a quote and its therapist assignments."""

    __tablename__ = "bookings"
    __table_args__ = (
        # Store-level backstop against double-booking the same start slot;
        # cancelled and completed rows keep their history without holding it
        Index(
            "uq_bookings_therapist_slot",
            "therapist_id",
            "booking_time",
            unique=True,
            postgresql_where=text(SLOT_HOLDING_CLAUSE),
            sqlite_where=text(SLOT_HOLDING_CLAUSE),
        ),
    )

    id              = Column(Integer, primary_key=True, index=True)
    booking_id      = Column(String, nullable=False, unique=True, index=True)
    parent_quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=True, index=True)
    quote_day_number = Column(Integer, nullable=True)
    therapist_id    = Column(Integer, ForeignKey("therapist_profiles.id"), nullable=False, index=True)
    responding_therapist_id = Column(Integer, nullable=True)
    booking_time    = Column(DateTime, nullable=False, index=True)  # naive UTC
    duration_minutes = Column(Integer, nullable=False)
    status          = Column(
        LowercaseEnum(BookingStatus, name="bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Financial shares
    price            = Column(Numeric(10, 2), nullable=False, default=0)
    therapist_fee    = Column(Numeric(10, 2), nullable=False, default=0)
    net_price        = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount  = Column(Numeric(10, 2), nullable=False, default=0)
    tax_rate_amount  = Column(Numeric(10, 2), nullable=False, default=0)
    gift_card_amount = Column(Numeric(10, 2), nullable=False, default=0)

    # Customer snapshot
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    booker_name    = Column(String, nullable=True)
    business_name  = Column(String, nullable=True)
    first_name     = Column(String, nullable=True)
    last_name      = Column(String, nullable=True)

    discount_code  = Column(String, nullable=True)
    gift_card_code = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_status = Column(String, nullable=False, default="pending")
    address        = Column(String, nullable=True)
    service_id     = Column(String, nullable=True)
    booking_type   = Column(String, nullable=True)
    is_split_booking = Column(Boolean, nullable=False, default=False)
    latitude       = Column(Float, nullable=True)
    longitude      = Column(Float, nullable=True)
    notes          = Column(Text, nullable=True)

    quote     = relationship("Quote", back_populates="bookings")
    therapist = relationship("TherapistProfile")
