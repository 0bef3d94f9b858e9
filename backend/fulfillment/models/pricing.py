from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text, Time

from .base import BaseModel


class TimePricingRule(BaseModel):
    """Percentage uplift applied to a weekday, optionally within a time window."""

    __tablename__ = "time_pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False, index=True)  # 0 = Sunday
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    uplift_percentage = Column(Numeric(6, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    label = Column(String, nullable=True)


class SystemSetting(BaseModel):
    __tablename__ = "system_settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
    description = Column(String, nullable=True)
