from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

DayStatus = Literal["available", "partial", "unavailable"]


class TherapistAvailability(BaseModel):
    therapist_id: int
    therapist_name: str
    therapist_email: Optional[str] = None
    gender: Optional[str] = None
    rating: float = 0
    is_available: bool
    conflict_reason: Optional[str] = None
    hourly_rate: Decimal = Decimal("0")
    afterhours_rate: Decimal = Decimal("0")
    is_afterhours: bool = False
    applied_rate: Decimal = Decimal("0")


class DayAvailability(BaseModel):
    day_number: int
    date: dt.date
    start_time: dt.time
    sessions_count: Optional[int] = None
    duration_minutes: int
    therapists_required: int
    therapists_available: int
    available_therapists: List[TherapistAvailability] = Field(default_factory=list)
    can_fulfill: bool
    status: DayStatus
    alternatives: Optional[List[str]] = None


class AvailabilitySummary(BaseModel):
    total_days: int
    available_days: int
    partial_days: int
    unavailable_days: int


class QuoteAvailabilityResult(BaseModel):
    quote_id: int
    sequence: Optional[int] = None
    can_fulfill_completely: bool
    overall_status: DayStatus
    duration_minutes: int
    service_arrangement: str
    days: List[DayAvailability] = Field(default_factory=list)
    summary: AvailabilitySummary
    conflict_reasons: List[str] = Field(default_factory=list)


class AlternativesRequest(BaseModel):
    date: dt.date
    start_time: dt.time
    duration_minutes: int = Field(gt=0)
    therapists_required: int = Field(default=1, ge=1)
    days_to_check: Optional[int] = Field(default=None, ge=1, le=31)
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AlternativesResponse(BaseModel):
    alternatives: List[str] = Field(default_factory=list)
