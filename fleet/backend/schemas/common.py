# fleet/backend/schemas/common.py

from __future__ import annotations

import re

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

# at least one lower, one upper, one digit; 8+ characters from the allowed set
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[A-Za-z\d@$!%*?&]{8,}$")
PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, and one digit"
)


def check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


class ApiModel(BaseModel):
    """
    Base for every request/response body: camelCase on the wire,
    snake_case in Python, readable straight from ORM objects.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(ApiModel):
    message: str
