"""Authentication Schemas.

Defines request/response models for email/password login.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .user import UserResponse


class LoginRequest(BaseModel):
    """Request schema for password login."""

    email: EmailStr = Field(..., description="Account email", examples=["reception@smiledental.example"])
    password: str = Field(..., min_length=1, max_length=128, description="Account password")


class TokenResponse(BaseModel):
    """Response schema after a successful login."""

    access_token: str = Field(..., description="JWT access token with claims (sub, role, clinic_id)")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserResponse

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "access_token": "<jwt-token-with-claims>",
            "token_type": "bearer",
            "expires_in": 1800,
            "user": {
                "id": 7,
                "email": "reception@smiledental.example",
                "full_name": "Front Desk",
                "role": "receptionist",
                "clinic_id": 1,
                "is_active": True,
            },
        }
    })
