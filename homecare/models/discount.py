"""
Discount Code Model

Codes issued by founding providers to their own customers.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from datetime import datetime
from homecare.database import Base
import uuid


class DiscountCode(Base):
    __tablename__ = "discount_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(50), nullable=False, unique=True, index=True)
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    percent_off = Column(Integer, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    usage_limit = Column(Integer, default=1, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<DiscountCode {self.code} {self.usage_count}/{self.usage_limit}>"

    def is_expired(self, now: datetime = None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at

    @property
    def is_used_up(self) -> bool:
        return self.usage_count >= self.usage_limit
