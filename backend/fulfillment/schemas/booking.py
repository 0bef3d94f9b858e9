from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.booking_status import BookingStatus


class TherapistAssignment(BaseModel):
    """Working-set row the admin edits before bookings are materialized."""

    date: dt.date
    start_time: dt.time
    therapist_id: int
    therapist_name: Optional[str] = None
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    is_override: bool = False
    override_reason: Optional[str] = None


class AssignmentBatch(BaseModel):
    assignments: List[TherapistAssignment] = Field(default_factory=list)


class MaterializeResult(BaseModel):
    quote_id: int
    booking_ids: List[int] = Field(default_factory=list)
    booking_codes: List[str] = Field(default_factory=list)


class BookingRead(BaseModel):
    id: int
    booking_id: str
    parent_quote_id: Optional[int] = None
    quote_day_number: Optional[int] = None
    therapist_id: int
    booking_time: dt.datetime
    duration_minutes: int
    status: BookingStatus
    price: Decimal
    therapist_fee: Decimal
    net_price: Decimal
    discount_amount: Decimal
    tax_rate_amount: Decimal
    gift_card_amount: Decimal
    customer_email: Optional[str] = None
    booker_name: Optional[str] = None
    business_name: Optional[str] = None
    payment_status: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
