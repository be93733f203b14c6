"""
Authentication Schemas

Request/response models for authentication endpoints.
"""
from typing import Literal
from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(..., min_length=8)


class RegisterRequest(BaseModel):
    """User registration request. Admin accounts can't self-register."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: Literal["homeowner", "provider"] = "homeowner"

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@example.com",
                "password": "securepassword123",
                "full_name": "Jane Homeowner",
                "role": "homeowner"
            }
        }
