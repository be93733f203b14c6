"""
Notification and Discount Code Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)
    type: str = Field("info", max_length=30)
    link: Optional[str] = Field(None, max_length=500)
    user_id: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    link: Optional[str] = None
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkReadRequest(BaseModel):
    notification_id: Optional[str] = None
    notification_ids: Optional[list[str]] = None
    mark_all: bool = False


class MarkReadResponse(BaseModel):
    updated: int


class DiscountCodeCreate(BaseModel):
    code: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    percent_off: int = Field(..., ge=1, le=100)
    expires_in_days: int = Field(..., ge=1, le=3650)
    usage_limit: int = Field(1, ge=1)


class DiscountCodeResponse(BaseModel):
    id: str
    code: str
    provider_id: str
    percent_off: int
    expires_at: datetime
    usage_limit: int
    usage_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class RedeemRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class DiscountValidation(BaseModel):
    valid: bool
    code: str
    percent_off: int
    is_expired: bool
    is_used_up: bool
