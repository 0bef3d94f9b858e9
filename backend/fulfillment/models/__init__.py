from .quote import Quote, QuoteDate, QuoteStatus, EventStructure, ServiceArrangement
from .therapist import TherapistProfile, TherapistAvailability, TherapistTimeOff
from .booking import Booking
from .booking_status import BookingStatus, PaymentStatus
from .pricing import TimePricingRule, SystemSetting

__all__ = [
    "Quote",
    "QuoteDate",
    "QuoteStatus",
    "EventStructure",
    "ServiceArrangement",
    "TherapistProfile",
    "TherapistAvailability",
    "TherapistTimeOff",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "TimePricingRule",
    "SystemSetting",
]
