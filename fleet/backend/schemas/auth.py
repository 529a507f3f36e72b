# fleet/backend/schemas/auth.py

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from .common import ApiModel, check_password_strength


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., max_length=72)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class AuthResponse(ApiModel):
    token: str
    username: str
    email: str
    is_admin: bool
    require_password_change: bool
    expires_at: datetime


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ChangePasswordRequest(ApiModel):
    # omitted by the forced-change screen after a reset
    current_password: str | None = Field(None, max_length=72)
    new_password: str = Field(..., max_length=72)

    @field_validator("new_password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        return check_password_strength(v)
