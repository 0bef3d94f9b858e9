from . import crud_quote
from . import crud_booking
from . import crud_settings
from .crud_quote import get_quote
from .crud_booking import get_bookings_for_quote
