from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class TherapistProfile(BaseModel):
    __tablename__ = "therapist_profiles"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    afterhours_rate = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    service_radius_km = Column(Float, nullable=True)

    availability = relationship(
        "TherapistAvailability", back_populates="therapist", cascade="all, delete-orphan"
    )
    time_off = relationship(
        "TherapistTimeOff", back_populates="therapist", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class TherapistAvailability(BaseModel):
    """Recurring weekly coverage window. day_of_week: 0 = Sunday ... 6 = Saturday."""

    __tablename__ = "therapist_availability"

    id = Column(Integer, primary_key=True, index=True)
    therapist_id = Column(
        Integer, ForeignKey("therapist_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(Integer, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    therapist = relationship("TherapistProfile", back_populates="availability")


class TherapistTimeOff(BaseModel):
    """Inclusive date-range blackout."""

    __tablename__ = "therapist_time_off"

    id = Column(Integer, primary_key=True, index=True)
    therapist_id = Column(
        Integer, ForeignKey("therapist_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    reason = Column(String, nullable=True)

    therapist = relationship("TherapistProfile", back_populates="time_off")
