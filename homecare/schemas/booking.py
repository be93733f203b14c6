"""
Scheduling, Booking and Review Schemas
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, Optional
from datetime import date, datetime, time

from homecare.schemas.common import to_naive_utc


# ---------------------------------------------------------------------------
# Provider schedule
# ---------------------------------------------------------------------------

class AvailabilityWindow(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")
    start_time: time
    end_time: time
    buffer_min: int = Field(0, ge=0, le=240)

    @model_validator(mode="after")
    def check_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    class Config:
        from_attributes = True


class AvailabilityUpdate(BaseModel):
    windows: list[AvailabilityWindow]


class AvailabilityResponse(BaseModel):
    provider_id: str
    windows: list[AvailabilityWindow]


class UnavailabilityCreate(BaseModel):
    start_ts: datetime
    end_ts: datetime
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("start_ts", "end_ts")
    @classmethod
    def normalize(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class UnavailabilityResponse(BaseModel):
    id: str
    provider_id: str
    start_ts: datetime
    end_ts: datetime
    reason: Optional[str] = None

    class Config:
        from_attributes = True


class HolidayResponse(BaseModel):
    id: int
    name: str
    date: date
    blocks_availability: bool = False


class HolidayPreference(BaseModel):
    holiday_id: int
    blocks_availability: bool


class HolidayPreferencesUpdate(BaseModel):
    holiday_preferences: list[HolidayPreference]


class Slot(BaseModel):
    start_ts: datetime
    end_ts: datetime


class SlotsResponse(BaseModel):
    provider_id: str
    slot_mins: int
    total_slots: int
    slots_by_date: dict[str, list[Slot]]


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

class BookingCreate(BaseModel):
    provider_id: str
    start_ts: datetime
    end_ts: datetime
    property_id: Optional[str] = None
    service_type_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=5000)
    homeowner_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_ts", "end_ts")
    @classmethod
    def normalize(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class BookingUpdate(BaseModel):
    status: Optional[Literal["pending", "confirmed", "cancelled", "completed"]] = None
    provider_notes: Optional[str] = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    id: str
    homeowner_id: str
    provider_id: str
    property_id: Optional[str] = None
    service_type_id: Optional[int] = None
    start_ts: datetime
    end_ts: datetime
    status: str
    description: Optional[str] = None
    homeowner_notes: Optional[str] = None
    provider_notes: Optional[str] = None
    images: list[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class ReviewCreate(BaseModel):
    booking_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)


class ReviewResponse(BaseModel):
    id: str
    booking_id: str
    provider_id: str
    reviewer_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
