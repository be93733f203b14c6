"""
Provider Schedule Models

Weekly availability windows, one-off unavailability blocks and the
holidays a provider chooses to take off.
day_of_week follows the SQL convention: 0 = Sunday ... 6 = Saturday.
"""
from sqlalchemy import Column, String, Boolean, Date, DateTime, Time, ForeignKey, Integer, Index, UniqueConstraint
from datetime import datetime
from homecare.database import Base
import uuid


class ProviderAvailability(Base):
    __tablename__ = "provider_availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    buffer_min = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index('idx_availability_provider_day', 'provider_id', 'day_of_week'),
    )

    def __repr__(self):
        return f"<ProviderAvailability dow={self.day_of_week} {self.start_time}-{self.end_time}>"


class ProviderUnavailability(Base):
    __tablename__ = "provider_unavailability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Holiday(Base):
    """Seeded calendar of US federal holidays."""
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('name', 'date', name='uq_holiday_name_date'),
    )

    def __repr__(self):
        return f"<Holiday {self.name} {self.date}>"


class ProviderHolidayPreference(Base):
    __tablename__ = "provider_holiday_preferences"

    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), primary_key=True)
    holiday_id = Column(Integer, ForeignKey("holidays.id", ondelete="CASCADE"), primary_key=True)
    blocks_availability = Column(Boolean, default=True, nullable=False)
