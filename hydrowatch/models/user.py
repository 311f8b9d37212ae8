"""
User models for authentication and user management.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from hydrowatch.models.base import CamelModel


class UserRole(str, Enum):
    CITIZEN = "citizen"
    ADMIN = "admin"


def _name_not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    return v


class SignupRequest(CamelModel):
    """Model for creating a new account."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Login email, unique across users")
    password: str = Field(..., min_length=6, max_length=128, description="At least 6 characters")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _name_not_blank(v)


class LoginRequest(CamelModel):
    # Plain str: a malformed email must fail like any other bad credential
    email: str
    password: str


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: str = Field(..., min_length=6, max_length=128)


class ProfileUpdateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _name_not_blank(v)


class UserProfile(CamelModel):
    """Profile summary returned to the owner of the account."""
    id: str = Field(..., description="Firestore document ID")
    name: str
    email: str
    role: UserRole = UserRole.CITIZEN
    created_at: Optional[datetime] = None


class SignupResponse(CamelModel):
    message: str
    token: str


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserProfile
