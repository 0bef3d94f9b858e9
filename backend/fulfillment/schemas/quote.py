from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.quote import EventStructure, QuoteStatus, ServiceArrangement


class DayScheduleIn(BaseModel):
    """One event day as entered in the schedule editor."""

    event_date: date
    start_time: time
    finish_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    sessions_count: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def finish_after_start(self) -> "DayScheduleIn":
        if self.finish_time is not None and self.finish_time <= self.start_time:
            if not self.duration_minutes:
                raise ValueError("finish_time must be after start_time")
        return self


class SingleDaySchedule(DayScheduleIn):
    event_structure: Literal["single_day"] = "single_day"


class MultiDaySchedule(BaseModel):
    event_structure: Literal["multi_day"] = "multi_day"
    days: List[DayScheduleIn] = Field(default_factory=list)

    @field_validator("days")
    def unique_dates(cls, v: List[DayScheduleIn]) -> List[DayScheduleIn]:
        seen = set()
        for day in v:
            if day.event_date in seen:
                raise ValueError(f"duplicate event_date {day.event_date.isoformat()}")
            seen.add(day.event_date)
        return v


EventSchedule = Annotated[
    Union[SingleDaySchedule, MultiDaySchedule],
    Field(discriminator="event_structure"),
]


class ScheduleUpdate(BaseModel):
    schedule: EventSchedule


class QuoteDateRead(BaseModel):
    id: int
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    finish_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    sessions_count: Optional[int] = None
    day_number: int

    model_config = {"from_attributes": True}


class QuoteRead(BaseModel):
    id: int
    status: QuoteStatus
    event_structure: EventStructure
    service_arrangement: ServiceArrangement
    therapists_needed: Optional[int] = None
    hourly_rate: Optional[Decimal] = None
    duration_minutes: Optional[int] = None
    total_amount: Optional[Decimal] = None
    total_therapist_fees: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    gst_amount: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None
    payment_status: str
    quote_version: int
    quote_sent_at: Optional[datetime] = None
    quote_accepted_at: Optional[datetime] = None
    quote_declined_at: Optional[datetime] = None
    invoice_sent_at: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    quote_dates: List[QuoteDateRead] = Field(default_factory=list)

    model_config = {"from_attributes": True}
