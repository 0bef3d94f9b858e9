from .errors import (
    error_response,
    http_error_for,
    FulfillmentError,
    AssignmentValidationError,
    QuoteNotFoundError,
    InvalidTransitionError,
    BookingConflictError,
    BookingPersistenceError,
)
