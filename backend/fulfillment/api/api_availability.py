import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..schemas.availability import (
    AlternativesRequest,
    AlternativesResponse,
    QuoteAvailabilityResult,
)
from ..services.alternatives import suggest_alternatives
from ..services.availability import AvailabilityChecker
from ..services.settings_cache import SettingsCache
from ..utils.errors import FulfillmentError, http_error_for
from .dependencies import get_db, get_settings_cache

router = APIRouter(tags=["availability"])
logger = logging.getLogger(__name__)


@router.get("/quotes/{quote_id}/availability", response_model=QuoteAvailabilityResult)
def check_quote_availability(
    quote_id: int,
    include_alternatives: bool = Query(False),
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    sequence: Optional[int] = Query(None, description="Echoed back so callers can drop stale results"),
    db: Session = Depends(get_db),
    settings_cache: SettingsCache = Depends(get_settings_cache),
):
    checker = AvailabilityChecker(db, settings_cache)
    try:
        return checker.check_quote(
            quote_id,
            include_alternatives=include_alternatives,
            latitude=latitude,
            longitude=longitude,
            sequence=sequence,
        )
    except FulfillmentError as exc:
        raise http_error_for(exc)


@router.post("/availability/alternatives", response_model=AlternativesResponse)
def alternatives(
    body: AlternativesRequest,
    db: Session = Depends(get_db),
    settings_cache: SettingsCache = Depends(get_settings_cache),
):
    checker = AvailabilityChecker(db, settings_cache)
    found = suggest_alternatives(
        checker,
        body.date,
        body.start_time,
        body.duration_minutes,
        body.therapists_required,
        body.days_to_check,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    return AlternativesResponse(alternatives=found)
