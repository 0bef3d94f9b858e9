from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Annotated, Any, ClassVar, Literal
import json
from pathlib import Path
import os


def _split_list(v: Any) -> Any:
    """Parse comma-separated or JSON list values from the environment."""
    if isinstance(v, str):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return parsed
        except json.JSONDecodeError:
            pass
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # Database URL
    # Use an absolute path so running the service from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'fulfillment.db'}"

    # Redis connection URL for the system settings cache. Empty/"disabled"
    # turns the cache into a pass-through.
    REDIS_URL: str = "redis://localhost:6379/0"

    LOG_LEVEL: str = "INFO"

    # CORS origins for the admin frontend
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Safety margin added on both sides of a booking when checking conflicts
    BOOKING_BUFFER_MINUTES: int = 30
    # Booking statuses that make a therapist unavailable during an
    # availability check (advisory read)
    AVAILABILITY_BLOCKING_STATUSES: Annotated[list[str], NoDecode] = ["confirmed", "requested"]
    # Booking statuses re-validated right before bookings are committed
    COMMIT_BLOCKING_STATUSES: Annotated[list[str], NoDecode] = ["pending", "requested", "confirmed"]

    # System settings cache lifetime (seconds)
    SETTINGS_CACHE_TTL_SECONDS: int = 300

    # Fallbacks used when the matching system_settings row is missing
    DEFAULT_GST_RATE: float = 10.0  # percent, GST-inclusive pricing
    BUSINESS_OPENING_HOUR: int = 8
    BUSINESS_CLOSING_HOUR: int = 18
    DEFAULT_DAYTIME_RATE: float = 90.0
    DEFAULT_AFTERHOURS_RATE: float = 105.0

    # Alternative-date suggestions
    ALTERNATIVE_PROBE_DAYS: int = 7
    MAX_ALTERNATIVES: int = 3

    # How a "split" arrangement divides a day's minutes between assignments:
    # "day"   -> by the number of assignments on that date
    # "quote" -> by the number of assignments on the whole quote
    SPLIT_DURATION_DIVISOR: Literal["day", "quote"] = "day"

    @field_validator(
        "CORS_ORIGINS",
        "AVAILABILITY_BLOCKING_STATUSES",
        "COMMIT_BLOCKING_STATUSES",
        mode="before",
    )
    def split_lists(cls, v: Any) -> Any:
        return _split_list(v)

    @field_validator("SPLIT_DURATION_DIVISOR", mode="before")
    def normalize_divisor(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("BOOKING_BUFFER_MINUTES", "ALTERNATIVE_PROBE_DAYS", "MAX_ALTERNATIVES")
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )


def _env_file() -> str:
    return os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env"))


def load_settings() -> "Settings":
    return Settings(_env_file=_env_file())


settings = load_settings()
