from typing import Optional

from sqlalchemy.orm import Session, selectinload

from .. import models


def get_quote(db: Session, quote_id: int) -> Optional[models.Quote]:
    return (
        db.query(models.Quote)
        .options(selectinload(models.Quote.quote_dates))
        .filter(models.Quote.id == quote_id)
        .first()
    )
