from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.quote import ServiceArrangement
from .quote import EventSchedule


class DayAmount(BaseModel):
    event_date: str
    day_name: str
    minutes: int
    base_amount: Decimal
    uplift_percentage: Decimal = Decimal("0")
    uplift_amount: Decimal = Decimal("0")
    amount: Decimal


class QuoteFinancials(BaseModel):
    hourly_rate: Decimal
    base_amount: Decimal
    weekend_uplift_amount: Decimal
    weekend_uplift_percentage: Decimal
    total_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    gst_amount: Decimal
    tax_rate: Decimal
    total_minutes: int
    billable_minutes: int
    therapist_multiplier: int = 1
    has_weekend_days: bool
    days: List[DayAmount] = Field(default_factory=list)
    breakdown: str


class FinancialsPreviewRequest(BaseModel):
    hourly_rate: Decimal = Field(ge=0)
    schedule: EventSchedule
    service_arrangement: ServiceArrangement = ServiceArrangement.SPLIT
    therapists_needed: int = Field(default=1, ge=1)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)


class QuoteFinancialsUpdate(BaseModel):
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
