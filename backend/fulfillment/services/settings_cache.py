from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import redis
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..utils.json import dumps, loads
from .time_money import parse_time, to_decimal

logger = logging.getLogger(__name__)

SETTINGS_CACHE_KEY = "system_settings:all"


class SettingsCache:
    """Redis-backed snapshot of the ``system_settings`` table.

    The whole table is cached as one JSON blob with a TTL; writers call
    :meth:`invalidate` so the next read goes back to the database. When Redis
    is unreachable every read falls through to the database.
    """

    def __init__(self, redis_client: Any, ttl_seconds: Optional[int] = None):
        self.redis = redis_client
        self.ttl_seconds = int(
            ttl_seconds if ttl_seconds is not None else settings.SETTINGS_CACHE_TTL_SECONDS
        )

    def _read_cached(self) -> Optional[Dict[str, Optional[str]]]:
        try:
            raw = self.redis.get(SETTINGS_CACHE_KEY)
        except redis.exceptions.RedisError as exc:
            logger.warning("Settings cache read failed: %s", exc)
            return None
        if not raw:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return loads(raw)

    def _write_cached(self, values: Dict[str, Optional[str]]) -> None:
        if self.ttl_seconds <= 0:
            return
        try:
            self.redis.setex(SETTINGS_CACHE_KEY, self.ttl_seconds, dumps(values))
        except redis.exceptions.RedisError as exc:
            logger.warning("Settings cache write failed: %s", exc)

    def get_all(self, db: Session) -> Dict[str, Optional[str]]:
        cached = self._read_cached()
        if cached is not None:
            return cached
        rows = db.query(models.SystemSetting).all()
        values = {row.key: row.value for row in rows}
        self._write_cached(values)
        logger.debug("Loaded %d system settings from the database", len(values))
        return values

    def get(self, db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_all(db).get(key)
        if value is None or str(value).strip() == "":
            return default
        return value

    def get_decimal(self, db: Session, key: str, default: Any) -> Decimal:
        fallback = to_decimal(default)
        return to_decimal(self.get(db, key), fallback)

    def get_hour(self, db: Session, key: str, default: int) -> int:
        """Read an hour-of-day setting stored as "9", "09:00" or "09:00:00"."""
        raw = self.get(db, key)
        if raw is None:
            return default
        try:
            parsed = parse_time(raw)
        except ValueError:
            logger.warning("Ignoring malformed hour setting %s=%r", key, raw)
            return default
        return parsed.hour if parsed else default

    def invalidate(self) -> None:
        try:
            self.redis.delete(SETTINGS_CACHE_KEY)
        except redis.exceptions.RedisError as exc:
            logger.warning("Settings cache invalidation failed: %s", exc)
