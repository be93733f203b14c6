"""
Review Model

One review per completed booking.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer
from datetime import datetime
from homecare.database import Base
import uuid


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Review {self.rating}/5 provider={self.provider_id}>"
