import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from .. import crud
from ..models import Quote
from ..schemas.booking import AssignmentBatch, BookingRead, MaterializeResult
from ..schemas.financials import FinancialsPreviewRequest, QuoteFinancials, QuoteFinancialsUpdate
from ..schemas.quote import QuoteRead, ScheduleUpdate
from ..services import quote_workflow
from ..services.booking_materializer import recreate_bookings
from ..services.event_calendar import replace_schedule
from ..services.quote_financials import QuoteFinancialCalculator
from ..services.settings_cache import SettingsCache
from ..utils import error_response
from ..utils.errors import FulfillmentError, http_error_for
from .dependencies import get_db, get_settings_cache

router = APIRouter(tags=["quotes"])
logger = logging.getLogger(__name__)


def _load_quote(db: Session, quote_id: int) -> Quote:
    quote = crud.get_quote(db, quote_id)
    if quote is None:
        raise error_response(
            f"Quote {quote_id} not found",
            {"quote_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return quote


@router.post("/quotes/financials/preview", response_model=QuoteFinancials)
def preview_financials(
    body: FinancialsPreviewRequest,
    db: Session = Depends(get_db),
    settings_cache: SettingsCache = Depends(get_settings_cache),
):
    """Totals for a schedule that has not been saved; nothing is persisted."""
    calculator = QuoteFinancialCalculator(db, settings_cache)
    return calculator.preview(
        body.hourly_rate,
        body.schedule,
        service_arrangement=body.service_arrangement,
        therapists_needed=body.therapists_needed,
        discount_amount=body.discount_amount,
    )


@router.post("/quotes/{quote_id}/financials", response_model=QuoteFinancials)
def apply_financials(
    quote_id: int,
    body: Optional[QuoteFinancialsUpdate] = Body(None),
    db: Session = Depends(get_db),
    settings_cache: SettingsCache = Depends(get_settings_cache),
):
    quote = _load_quote(db, quote_id)
    body = body or QuoteFinancialsUpdate()
    calculator = QuoteFinancialCalculator(db, settings_cache)
    try:
        return calculator.apply_to_quote(
            quote,
            hourly_rate=body.hourly_rate,
            discount_amount=body.discount_amount,
        )
    except FulfillmentError as exc:
        raise http_error_for(exc)


@router.put("/quotes/{quote_id}/schedule", response_model=QuoteRead)
def update_schedule(
    quote_id: int,
    body: ScheduleUpdate,
    db: Session = Depends(get_db),
):
    quote = _load_quote(db, quote_id)
    try:
        replace_schedule(db, quote, body.schedule)
    except FulfillmentError as exc:
        raise http_error_for(exc)
    return quote


@router.get("/quotes/{quote_id}/bookings", response_model=List[BookingRead])
def list_quote_bookings(quote_id: int, db: Session = Depends(get_db)):
    _load_quote(db, quote_id)
    return crud.get_bookings_for_quote(db, quote_id)


@router.post("/quotes/{quote_id}/bookings", response_model=MaterializeResult)
def materialize_bookings(
    quote_id: int,
    body: AssignmentBatch,
    db: Session = Depends(get_db),
):
    """Replace the quote's bookings with one per assignment."""
    quote = _load_quote(db, quote_id)
    try:
        return recreate_bookings(db, quote, body.assignments)
    except FulfillmentError as exc:
        raise http_error_for(exc)


@router.post("/quotes/{quote_id}/status/{action}", response_model=QuoteRead)
def change_status(
    quote_id: int,
    action: str,
    body: Optional[AssignmentBatch] = Body(None),
    db: Session = Depends(get_db),
):
    if action not in quote_workflow.ACTIONS:
        raise error_response(
            f"Unknown quote action '{action}'",
            {"action": "invalid"},
            status.HTTP_404_NOT_FOUND,
        )
    quote = _load_quote(db, quote_id)
    assignments = body.assignments if body else None
    try:
        return quote_workflow.run_action(db, quote, action, assignments)
    except FulfillmentError as exc:
        raise http_error_for(exc)
