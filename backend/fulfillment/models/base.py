from datetime import datetime, timezone

from sqlalchemy import Column, DateTime

from ..database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class BaseModel(TimestampMixin, Base):
    __abstract__ = True
