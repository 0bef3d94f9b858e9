from typing import Dict
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class FulfillmentError(Exception):
    """Base class for errors raised by the fulfillment engine."""


class AssignmentValidationError(FulfillmentError, ValueError):
    """Input rejected before any store I/O; the message is user-actionable."""


class QuoteNotFoundError(FulfillmentError, LookupError):
    def __init__(self, quote_id: int):
        super().__init__(f"Quote {quote_id} not found")
        self.quote_id = quote_id


class InvalidTransitionError(FulfillmentError):
    def __init__(self, quote_id: int, current: str, target: str):
        super().__init__(f"Quote {quote_id} cannot move from '{current}' to '{target}'")
        self.quote_id = quote_id
        self.current = current
        self.target = target


class BookingConflictError(FulfillmentError):
    """A therapist would be double-booked by the batch being committed."""

    def __init__(self, message: str, conflicts: list[dict] | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class BookingPersistenceError(FulfillmentError):
    """The store rejected a read or write; wraps the original exception."""


# Starlette renamed its 422 constant between releases
UNPROCESSABLE_STATUS = 422


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = UNPROCESSABLE_STATUS,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


def http_error_for(exc: FulfillmentError) -> HTTPException:
    """Map an engine error to the API's error_response shape."""
    if isinstance(exc, QuoteNotFoundError):
        return error_response(str(exc), {"quote_id": "not_found"}, status.HTTP_404_NOT_FOUND)
    if isinstance(exc, InvalidTransitionError):
        return error_response(str(exc), {"status": exc.current}, status.HTTP_409_CONFLICT)
    if isinstance(exc, BookingConflictError):
        field_errors = {
            c["booking_id"]: f"conflicts with {c['conflicts_with']}" for c in exc.conflicts
        } or {"assignments": "conflict"}
        return error_response(str(exc), field_errors, status.HTTP_409_CONFLICT)
    if isinstance(exc, BookingPersistenceError):
        return error_response(str(exc), {}, status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, AssignmentValidationError):
        return error_response(str(exc), {"assignments": str(exc)})
    return error_response(str(exc), {}, status.HTTP_400_BAD_REQUEST)
