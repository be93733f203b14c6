"""
Provider Models

ProviderProfile is the public face of a service provider. It is created
by the onboarding flow (status draft -> pending -> approved/rejected) or
by an admin approving a provider application.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, Float, ForeignKey, Integer, JSON, Index,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base
import uuid


class ServiceType(Base):
    __tablename__ = "service_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    is_custom = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    def __repr__(self):
        return f"<ServiceType {self.name}>"


class ProviderProfile(Base):
    __tablename__ = "provider_profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    full_name = Column(String(255), nullable=False)
    business_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True, index=True)
    radius_miles = Column(Integer, nullable=True)
    other_services = Column(Text, nullable=True)

    bio = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)
    portfolio = Column(JSON, default=list, nullable=False)
    social_links = Column(JSON, default=list, nullable=False)

    background_check_consent = Column(Boolean, default=False, nullable=False)

    # draft, pending, approved, rejected
    onboarding_status = Column(String(20), default="draft", nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_founding_provider = Column(Boolean, default=False, nullable=False)

    avg_rating = Column(Float, nullable=True)
    review_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="provider_profile")
    services = relationship("ProviderService", cascade="all, delete-orphan", passive_deletes=True)
    external_reviews = relationship("ExternalReview", cascade="all, delete-orphan", passive_deletes=True)
    agreements = relationship("ProviderAgreement", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_provider_status_active', 'onboarding_status', 'is_active'),
    )

    def __repr__(self):
        return f"<ProviderProfile {self.business_name or self.full_name} ({self.onboarding_status})>"

    @property
    def is_bookable(self) -> bool:
        return self.onboarding_status == "approved" and self.is_active

    @property
    def service_type_ids(self) -> list[int]:
        return [s.service_type_id for s in self.services]


class ProviderService(Base):
    __tablename__ = "provider_services"

    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), primary_key=True)
    service_type_id = Column(Integer, ForeignKey("service_types.id", ondelete="CASCADE"), primary_key=True)

    service_type = relationship("ServiceType")


class ExternalReview(Base):
    __tablename__ = "provider_external_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)  # google, yelp, angi, bbb, facebook, other
    url = Column(String(500), nullable=False)
    testimonial = Column(Text, nullable=True)


class ProviderAgreement(Base):
    __tablename__ = "provider_agreements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(36), ForeignKey("provider_profiles.id", ondelete="CASCADE"), nullable=False)
    agreement_type = Column(String(100), nullable=False)
    signed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('provider_id', 'agreement_type', name='uq_provider_agreement'),
    )


class ProviderDocument(Base):
    __tablename__ = "provider_documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doc_type = Column(String(20), nullable=False)  # license, insurance, other, logo
    file_name = Column(String(255), nullable=False)
    storage_path = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ProviderDocument {self.doc_type}: {self.file_name}>"
