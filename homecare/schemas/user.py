"""
User Schemas

Request/response models for user operations.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from homecare.models.user import UserRole
from homecare.schemas.plan import PlanResponse


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    full_name: Optional[str] = None


class UserUpdate(BaseModel):
    """Self-service profile update. All fields optional."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    zip_code: Optional[str] = Field(None, max_length=20)


class AdminUserUpdate(BaseModel):
    """Admin changes to another account."""
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """User response schema (excludes sensitive data)."""
    id: str
    role: UserRole
    phone: Optional[str] = None
    zip_code: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeResponse(UserResponse):
    plan: PlanResponse
    subscription_status: str


class UserListResponse(BaseModel):
    """Paginated list of users."""
    users: list[UserResponse]
    total: int
    page: int
    page_size: int
