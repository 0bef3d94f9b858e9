import enum
from sqlalchemy import (
    Column,
    Integer,
    ForeignKey,
    Numeric,
    String,
    Date,
    Time,
    DateTime,
    Float,
    Text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import LowercaseEnum


class QuoteStatus(str, enum.Enum):
    NEW = "new"
    AVAILABILITY_CHECKING = "availability_checking"
    AVAILABILITY_CONFIRMED = "availability_confirmed"
    AVAILABILITY_DECLINED = "availability_declined"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    INVOICED = "invoiced"
    PAID = "paid"
    COMPLETED = "completed"


class EventStructure(str, enum.Enum):
    SINGLE_DAY = "single_day"
    MULTI_DAY = "multi_day"


class ServiceArrangement(str, enum.Enum):
    """Whether multiple therapists divide a day's hours or each work all of it."""
    SPLIT = "split"
    MULTIPLY = "multiply"


class Quote(BaseModel):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)

    # Customer / corporate contact
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    company_name = Column(String, nullable=True)
    corporate_contact_name = Column(String, nullable=True)
    corporate_contact_email = Column(String, nullable=True)
    corporate_contact_phone = Column(String, nullable=True)

    # Event details
    event_name = Column(String, nullable=True)
    event_location = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    event_structure = Column(
        LowercaseEnum(EventStructure, name="eventstructure"),
        nullable=False,
        default=EventStructure.SINGLE_DAY,
    )
    # Single-day schedule; multi-day quotes use quote_dates instead
    single_event_date = Column(Date, nullable=True)
    single_start_time = Column(Time, nullable=True)
    single_finish_time = Column(Time, nullable=True)

    total_sessions = Column(Integer, nullable=True)
    session_duration_minutes = Column(Integer, nullable=True)
    # Total engagement minutes across all days
    duration_minutes = Column(Integer, nullable=True)

    therapists_needed = Column(Integer, nullable=True)
    service_arrangement = Column(
        LowercaseEnum(ServiceArrangement, name="servicearrangement"),
        nullable=False,
        default=ServiceArrangement.SPLIT,
    )

    # Money (GST inclusive)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=True)
    total_therapist_fees = Column(Numeric(10, 2), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=True)
    discount_code = Column(String, nullable=True)
    gift_card_code = Column(String, nullable=True)
    gift_card_amount = Column(Numeric(10, 2), nullable=True)
    gst_amount = Column(Numeric(10, 2), nullable=True)
    final_amount = Column(Numeric(10, 2), nullable=True)

    payment_method = Column(String, nullable=True)
    payment_status = Column(String, nullable=False, default="pending")
    service_id = Column(String, nullable=True)

    po_number = Column(String, nullable=True)
    setup_requirements = Column(Text, nullable=True)
    special_requirements = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(
        LowercaseEnum(QuoteStatus, name="quotestatus"),
        nullable=False,
        default=QuoteStatus.NEW,
        index=True,
    )
    quote_version = Column(Integer, nullable=False, default=1)
    quote_sent_at = Column(DateTime, nullable=True)
    quote_accepted_at = Column(DateTime, nullable=True)
    quote_declined_at = Column(DateTime, nullable=True)
    invoice_sent_at = Column(DateTime, nullable=True)
    paid_date = Column(DateTime, nullable=True)

    quote_dates = relationship(
        "QuoteDate",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteDate.day_number",
    )
    bookings = relationship("Booking", back_populates="quote")


class QuoteDate(BaseModel):
    """One calendar day of a multi-day quote."""

    __tablename__ = "quote_dates"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    event_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    finish_time = Column(Time, nullable=True)
    # Authoritative when > 0, otherwise derived from start/finish
    duration_minutes = Column(Integer, nullable=True)
    sessions_count = Column(Integer, nullable=True)
    day_number = Column(Integer, nullable=False, default=1)

    quote = relationship("Quote", back_populates="quote_dates")
