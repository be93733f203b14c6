"""
Onboarding Schemas

Homeowner wizard and provider onboarding step payloads.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from datetime import datetime

from homecare.schemas.property import RegionName


# ---------------------------------------------------------------------------
# Homeowner wizard
# ---------------------------------------------------------------------------

class OnboardingState(BaseModel):
    current_step: int
    completed: bool
    plan_id: Optional[int] = None
    property_id: Optional[str] = None
    newsletter_opt_in: bool = False
    checkout_url: Optional[str] = None

    class Config:
        from_attributes = True


class PlanChoice(BaseModel):
    plan: Literal["free", "core", "rivopro"]


class OnboardingProperty(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)
    property_type: str = Field(..., min_length=1, max_length=50)
    year_built: Optional[int] = Field(None, ge=1600, le=2100)


class RegionConfirmation(BaseModel):
    region: Optional[RegionName] = None


class OnboardingFinish(BaseModel):
    newsletter_opt_in: bool = False


# ---------------------------------------------------------------------------
# Provider onboarding
# ---------------------------------------------------------------------------

class ProviderStepStatus(BaseModel):
    step: int
    path: str
    title: str
    completed: bool
    accessible: bool


class ProviderProgress(BaseModel):
    current_step: int
    completed: bool
    next_step_path: Optional[str] = None
    completion_percentage: int
    steps: list[ProviderStepStatus]
    onboarding_status: Optional[str] = None


class BasicInfo(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    business_name: Optional[str] = Field(None, max_length=255)
    phone: str = Field(..., min_length=7, max_length=50)
    zip_code: str = Field(..., pattern=r"^\d{5}(-\d{4})?$")
    email: EmailStr


class ServicesOffered(BaseModel):
    service_type_ids: list[int] = []
    other_services: Optional[str] = Field(None, max_length=1000)
    radius_miles: int = Field(25, ge=1, le=500)


class SocialLink(BaseModel):
    platform: str = Field(..., min_length=1, max_length=50)
    url: str = Field(..., min_length=1, max_length=500)


class BusinessProfile(BaseModel):
    bio: str = Field(..., min_length=1, max_length=5000)
    logo_url: Optional[str] = Field(None, max_length=500)
    portfolio: list[str] = []
    social_links: list[SocialLink] = []


class ExternalReviews(BaseModel):
    google_url: Optional[str] = None
    google_testimonial: Optional[str] = None
    yelp_url: Optional[str] = None
    yelp_testimonial: Optional[str] = None
    angi_url: Optional[str] = None
    angi_testimonial: Optional[str] = None
    bbb_url: Optional[str] = None
    bbb_testimonial: Optional[str] = None
    facebook_url: Optional[str] = None
    facebook_testimonial: Optional[str] = None
    other_url: Optional[str] = None
    other_testimonial: Optional[str] = None


class BackgroundCheckConsent(BaseModel):
    consent: bool


class AgreementsPayload(BaseModel):
    agreements: list[str]


class ProviderDocumentResponse(BaseModel):
    id: str
    doc_type: str
    file_name: str
    storage_path: str
    content_type: Optional[str] = None
    size_bytes: int
    uploaded_at: datetime

    class Config:
        from_attributes = True
