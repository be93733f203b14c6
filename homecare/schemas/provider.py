"""
Provider, Application and Admin Review Schemas
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Any, Literal, Optional
from datetime import datetime


class ServiceTypeResponse(BaseModel):
    id: int
    name: str
    is_custom: bool

    class Config:
        from_attributes = True


class ProviderProfileResponse(BaseModel):
    id: str
    user_id: str
    full_name: str
    business_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    zip_code: Optional[str] = None
    radius_miles: Optional[int] = None
    bio: Optional[str] = None
    logo_url: Optional[str] = None
    portfolio: list[Any] = []
    social_links: list[Any] = []
    service_type_ids: list[int] = []
    onboarding_status: str
    is_active: bool
    is_founding_provider: bool
    avg_rating: Optional[float] = None
    review_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class ProviderListResponse(BaseModel):
    providers: list[ProviderProfileResponse]
    total: int
    page: int
    page_size: int


class ApplicationCreate(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=50)
    zip_code: str = Field(..., pattern=r"^\d{5}(-\d{4})?$")
    service_type_ids: list[int] = Field(..., min_length=1)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    license_number: Optional[str] = Field(None, max_length=100)
    insurance_provider: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    agreements: list[str]


class ApplicationResponse(BaseModel):
    id: str
    user_id: str
    business_name: str
    full_name: str
    email: str
    phone: str
    zip_code: str
    service_type_ids: list[int]
    years_experience: Optional[int] = None
    license_number: Optional[str] = None
    insurance_provider: Optional[str] = None
    description: Optional[str] = None
    agreements_signed: list[str]
    status: str
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ApplicationReview(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = Field(None, max_length=2000)


class ProviderStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]
    reason: Optional[str] = Field(None, max_length=2000)


class FoundingUpdate(BaseModel):
    is_founding_provider: bool


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[str] = None
    action: str
    target_type: str
    target_id: Optional[str] = None
    details: dict
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class AnalyticsResponse(BaseModel):
    users_by_role: dict[str, int]
    providers_by_status: dict[str, int]
    bookings_by_status: dict[str, int]
    active_subscriptions_by_plan: dict[str, int]
    pending_applications: int
