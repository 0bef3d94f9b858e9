from .quote import (
    DayScheduleIn,
    SingleDaySchedule,
    MultiDaySchedule,
    EventSchedule,
    ScheduleUpdate,
    QuoteDateRead,
    QuoteRead,
)
from .availability import (
    TherapistAvailability,
    DayAvailability,
    AvailabilitySummary,
    QuoteAvailabilityResult,
    AlternativesRequest,
    AlternativesResponse,
)
from .financials import DayAmount, QuoteFinancials, FinancialsPreviewRequest, QuoteFinancialsUpdate
from .booking import TherapistAssignment, AssignmentBatch, MaterializeResult, BookingRead
from .settings import SystemSettingRead, SystemSettingUpdate

__all__ = [
    "DayScheduleIn",
    "SingleDaySchedule",
    "MultiDaySchedule",
    "EventSchedule",
    "ScheduleUpdate",
    "QuoteDateRead",
    "QuoteRead",
    "TherapistAvailability",
    "DayAvailability",
    "AvailabilitySummary",
    "QuoteAvailabilityResult",
    "AlternativesRequest",
    "AlternativesResponse",
    "DayAmount",
    "QuoteFinancials",
    "FinancialsPreviewRequest",
    "QuoteFinancialsUpdate",
    "TherapistAssignment",
    "AssignmentBatch",
    "MaterializeResult",
    "BookingRead",
    "SystemSettingRead",
    "SystemSettingUpdate",
]
