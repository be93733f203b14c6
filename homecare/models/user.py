"""
User Model

A single accounts table for homeowners, service providers and admins.
The role decides which parts of the API a user can reach.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from homecare.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """
    User roles.

    HOMEOWNER: Manages properties, tasks, bookings and billing
    PROVIDER: Onboards, manages schedule and bookings
    ADMIN: Reviews applications and providers, sees everything
    """
    HOMEOWNER = "homeowner"
    PROVIDER = "provider"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)

    role = Column(
        SQLEnum(UserRole),
        default=UserRole.HOMEOWNER,
        nullable=False,
        index=True
    )

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships (cascade on account deletion)
    properties = relationship("Property", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    plan = relationship("UserPlan", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    provider_profile = relationship("ProviderProfile", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    notifications = relationship("Notification", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_user_role_active', 'role', 'is_active'),
    )

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else None})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
