import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def list_settings(db: Session) -> List[models.SystemSetting]:
    return db.query(models.SystemSetting).order_by(models.SystemSetting.key).all()


def get_setting(db: Session, key: str) -> Optional[models.SystemSetting]:
    return db.query(models.SystemSetting).filter(models.SystemSetting.key == key).first()


def upsert_setting(
    db: Session, key: str, value: str, description: Optional[str] = None
) -> models.SystemSetting:
    row = get_setting(db, key)
    if row is None:
        row = models.SystemSetting(key=key, value=value, description=description)
        db.add(row)
    else:
        row.value = value
        if description is not None:
            row.description = description
    db.commit()
    db.refresh(row)
    logger.info("System setting %s updated", key)
    return row
