"""
Subscription Plan Models

Plans are reference data (Free, Core, Premium). UserPlan links a user
to a plan and mirrors the Stripe customer/subscription state.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base

FREE_PLAN_ID = 1
CORE_PLAN_ID = 2
PREMIUM_PLAN_ID = 3


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(50), nullable=False)
    slug = Column(String(50), nullable=False, unique=True)  # free, core, rivopro
    price_cents = Column(Integer, default=0, nullable=False)

    # None means unlimited
    max_homes = Column(Integer, nullable=True)
    unlimited_reminders = Column(Boolean, default=False, nullable=False)
    report_access = Column(Boolean, default=False, nullable=False)
    priority_support = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Plan {self.slug}>"


class UserPlan(Base):
    __tablename__ = "user_plans"

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    plan_id = Column(Integer, ForeignKey("plans.id"), default=FREE_PLAN_ID, nullable=False)

    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)
    # free, active, past_due, canceled, trialing, incomplete ...
    subscription_status = Column(String(50), default="free", nullable=False)
    current_period_end = Column(DateTime, nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="plan")
    plan = relationship("Plan")

    def __repr__(self):
        return f"<UserPlan user={self.user_id} plan={self.plan_id} status={self.subscription_status}>"


class ReportDownload(Base):
    """One-off report purchases recorded from payment-mode checkouts."""
    __tablename__ = "report_downloads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=True, index=True)
    report_id = Column(String(255), nullable=False)
    stripe_session_id = Column(String(255), nullable=True, unique=True)
    amount_paid = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
