# fleet/backend/schemas/users.py

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from .common import ApiModel


class UserDto(ApiModel):
    id: int
    email: str
    username: str
    is_admin: bool
    require_password_change: bool
    created_at: datetime
    last_login_at: datetime | None = None


class CreateUserRequest(ApiModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=8, max_length=72)
    is_admin: bool = False


class UpdateUserRequest(ApiModel):
    email: EmailStr | None = None
    username: str | None = Field(None, max_length=50)
    password: str | None = Field(None, min_length=8, max_length=72)
    is_admin: bool | None = None

    @field_validator("email", "username", "password", mode="before")
    @classmethod
    def _blank_means_unchanged(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v
