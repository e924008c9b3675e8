"""
EventHub Backend — User & Auth Schemas
========================================

Request bodies for registration and login, and the public projections of a
user. Password hashes and confirmation tokens never appear in any response
model.
"""

from typing import Optional

from pydantic import EmailStr, Field

from eventhub.schemas.common import CamelModel, UTCDateTime


class UserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    role: Optional[str] = Field(default=None, description="'user' (default) or 'admin'")


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: str
    email_confirmed: bool
    created_at: UTCDateTime


class UserSummary(CamelModel):
    """Compact user embedded in booking and review listings."""
    id: int
    name: str
    email: str


class RegisterResponse(CamelModel):
    message: str = Field(
        default="Registration successful. Please check your email to confirm your account."
    )
    user: UserResponse


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(CamelModel):
    id: int
    name: str
    email: str
    role: str
    token: str = Field(description="Bearer token, valid for 7 days")


class TokenClaims(CamelModel):
    """Identity carried by a verified bearer token."""
    user_id: int
    email: str
    role: str
