from ..database import get_db  # noqa: F401 - re-exported for routers
from ..core.config import settings
from ..services.settings_cache import SettingsCache
from ..utils.redis_cache import get_redis_client


def get_settings_cache() -> SettingsCache:
    return SettingsCache(get_redis_client(), settings.SETTINGS_CACHE_TTL_SECONDS)
