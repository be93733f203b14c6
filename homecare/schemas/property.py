"""
Property Schemas
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime

from homecare.services.regions import REGIONS

RegionName = Literal[tuple(REGIONS)]


class PropertyBase(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)
    property_type: str = Field(..., min_length=1, max_length=50)
    year_built: Optional[int] = Field(None, ge=1600, le=2100)


class PropertyCreate(PropertyBase):
    nickname: Optional[str] = Field(None, max_length=255)
    zip_code: Optional[str] = Field(None, max_length=20)
    square_feet: Optional[int] = Field(None, gt=0)
    region: Optional[RegionName] = None


class PropertyUpdate(BaseModel):
    """All fields optional."""
    nickname: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    property_type: Optional[str] = Field(None, min_length=1, max_length=50)
    year_built: Optional[int] = Field(None, ge=1600, le=2100)
    zip_code: Optional[str] = Field(None, max_length=20)
    square_feet: Optional[int] = Field(None, gt=0)
    region: Optional[RegionName] = None


class PropertyResponse(PropertyBase):
    id: str
    user_id: str
    nickname: str
    zip_code: Optional[str] = None
    square_feet: Optional[int] = None
    region: str
    created_at: datetime

    class Config:
        from_attributes = True
