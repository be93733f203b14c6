"""
Onboarding Progress Models

UserOnboarding tracks the homeowner wizard, ProviderOnboarding the
seven-step provider flow. Both are one row per user and resumable.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, JSON
from datetime import datetime
from homecare.database import Base


class UserOnboarding(Base):
    __tablename__ = "user_onboarding"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    current_step = Column(Integer, default=1, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True)
    newsletter_opt_in = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<UserOnboarding user={self.user_id} step={self.current_step}>"


class ProviderOnboarding(Base):
    __tablename__ = "provider_onboarding"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    current_step = Column(Integer, default=1, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    # {"1": true, "2": true, ...}; JSON object keys are strings
    steps_completed = Column(JSON, default=dict, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ProviderOnboarding user={self.user_id} step={self.current_step}>"
