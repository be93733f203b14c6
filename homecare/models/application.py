"""
Provider Application Model

The short-form path to becoming a provider: a single application
reviewed by an admin.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, JSON, Index
from datetime import datetime
from homecare.database import Base
import uuid


class ProviderApplication(Base):
    __tablename__ = "provider_applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    business_name = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    zip_code = Column(String(20), nullable=False)
    service_type_ids = Column(JSON, default=list, nullable=False)
    years_experience = Column(Integer, nullable=True)
    license_number = Column(String(100), nullable=True)
    insurance_provider = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    agreements_signed = Column(JSON, default=list, nullable=False)

    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, approved, rejected
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_application_user_status', 'user_id', 'status'),
    )

    def __repr__(self):
        return f"<ProviderApplication {self.business_name} ({self.status})>"
