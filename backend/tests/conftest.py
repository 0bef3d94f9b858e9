import os
from datetime import time
from decimal import Decimal
from pathlib import Path

import fakeredis
import pytest
from dotenv import load_dotenv

# Load environment variables for tests before the app settings are built
load_dotenv(Path(__file__).resolve().parents[1] / ".env.test")
os.environ.setdefault("PYTEST_RUN", "1")
os.environ.setdefault("REDIS_URL", "disabled")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from fulfillment import models  # noqa: E402
from fulfillment.models.base import BaseModel  # noqa: E402
from fulfillment.services.settings_cache import SettingsCache  # noqa: E402


def setup_db():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    BaseModel.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    return Session()


@pytest.fixture
def db():
    session = setup_db()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeStrictRedis(decode_responses=True)


@pytest.fixture
def settings_cache(fake_redis):
    return SettingsCache(fake_redis, ttl_seconds=300)


WEEKDAYS = range(0, 7)


@pytest.fixture
def make_therapist(db):
    """Create an active therapist available every day 08:00-20:00 unless told otherwise."""

    def _make(
        first_name="Alex",
        last_name="Smith",
        hourly_rate=Decimal("90"),
        afterhours_rate=Decimal("105"),
        windows=None,
        **kwargs,
    ):
        therapist = models.TherapistProfile(
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}@example.com",
            hourly_rate=hourly_rate,
            afterhours_rate=afterhours_rate,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        if windows is None:
            windows = [(dow, time(8, 0), time(20, 0)) for dow in WEEKDAYS]
        for dow, start, end in windows:
            therapist.availability.append(
                models.TherapistAvailability(day_of_week=dow, start_time=start, end_time=end)
            )
        db.add(therapist)
        db.commit()
        db.refresh(therapist)
        return therapist

    return _make


@pytest.fixture
def make_quote(db):
    """Create a quote; ``days`` is a list of (date, start, finish) for multi-day quotes."""

    def _make(days=None, **fields):
        fields.setdefault("customer_name", "Jamie Lee")
        fields.setdefault("customer_email", "jamie@example.com")
        fields.setdefault("therapists_needed", 1)
        quote = models.Quote(**fields)
        if days is not None:
            quote.event_structure = models.EventStructure.MULTI_DAY
            for idx, (day, start, finish) in enumerate(days, start=1):
                quote.quote_dates.append(
                    models.QuoteDate(
                        event_date=day, start_time=start, finish_time=finish, day_number=idx
                    )
                )
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    return _make


@pytest.fixture
def make_booking(db):
    def _make(therapist, when, duration_minutes=60, status=models.BookingStatus.CONFIRMED, **fields):
        fields.setdefault("booking_id", f"EXT-{therapist.id}-{when.isoformat()}")
        booking = models.Booking(
            therapist_id=therapist.id,
            booking_time=when,
            duration_minutes=duration_minutes,
            status=status,
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make

