import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud import crud_settings
from ..schemas.settings import SystemSettingRead, SystemSettingUpdate
from ..services.settings_cache import SettingsCache
from .dependencies import get_db, get_settings_cache

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/system-settings", response_model=List[SystemSettingRead])
def list_system_settings(db: Session = Depends(get_db)):
    return crud_settings.list_settings(db)


@router.put("/system-settings/{key}", response_model=SystemSettingRead)
def update_system_setting(
    key: str,
    body: SystemSettingUpdate,
    db: Session = Depends(get_db),
    settings_cache: SettingsCache = Depends(get_settings_cache),
):
    """Write a setting and drop the cached snapshot so readers see it."""
    row = crud_settings.upsert_setting(db, key, body.value, body.description)
    settings_cache.invalidate()
    return row
