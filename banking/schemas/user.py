"""
Pydantic schemas for user registration, login and profile.
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    """Schema for registering a new user."""
    username: str = Field(..., min_length=1, max_length=50, description="Unique login name")
    password: str = Field(..., min_length=1, description="Plaintext password, hashed before storage")
    email: str = Field(..., min_length=3, max_length=255, description="Unique email address")
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "alice",
                "password": "correct horse battery",
                "email": "alice@example.com",
                "phone": "+1 555 0100",
                "address": "1 Main Street"
            }
        }
    )


class LoginRequest(BaseModel):
    """Schema for logging in."""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    """Schema for changing the caller's password."""
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Schema for editing the caller's profile."""
    email: str = Field(..., min_length=3, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    """Schema for user response. Never carries the password hash."""
    id: int
    username: str
    email: str
    phone: Optional[str]
    address: Optional[str]
    created_date: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """Schema for a successful login."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
