"""
Booking Model

A homeowner's reservation of a provider time slot.
Lifecycle: pending -> confirmed -> completed, or cancelled from pending/confirmed.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base
import uuid

ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")
FINAL_BOOKING_STATUSES = ("cancelled", "completed")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    homeowner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True)
    service_type_id = Column(Integer, ForeignKey("service_types.id", ondelete="SET NULL"), nullable=True)

    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)

    description = Column(Text, nullable=True)
    homeowner_notes = Column(Text, nullable=True)
    provider_notes = Column(Text, nullable=True)
    images = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    provider = relationship("ProviderProfile")

    __table_args__ = (
        Index('idx_booking_provider_start', 'provider_id', 'start_ts'),
    )

    def __repr__(self):
        return f"<Booking {self.id} {self.start_ts} ({self.status})>"
