# fleet/backend/services/security.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from jose import JWTError, jwt

from fleet.backend.config import Settings
from fleet.backend.db.models import User

from .errors import AuthenticationFailedError


class PasswordHasher:
    """
    Salted bcrypt hashes. The salt and cost live inside the hash string.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
        except ValueError:
            # malformed hash in the db or password over bcrypt's 72-byte limit
            return False


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass
class TokenClaims:
    user_id: int
    username: str
    email: str
    role: str
    is_admin: bool
    token_id: str


class TokenService:
    """
    Issues and validates the HS256 bearer tokens.

    Claims: sub (user id), name, email, role (Admin/User), IsAdmin,
    jti, iss, aud, iat, exp. Expiry is checked with zero leeway.
    """

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.jwt_secret_key
        self._algorithm = settings.jwt_algorithm
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._ttl = timedelta(hours=settings.jwt_ttl_hours)

    def issue(self, user: User) -> IssuedToken:
        now = datetime.now(timezone.utc)
        expires_at = now + self._ttl
        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "name": user.username,
            "email": user.email,
            "role": "Admin" if user.is_admin else "User",
            "IsAdmin": bool(user.is_admin),
            "jti": str(uuid.uuid4()),
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def decode(self, token: str) -> TokenClaims:
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"leeway": 0},
            )
        except JWTError:
            # crypto details are not exposed to the caller
            raise AuthenticationFailedError("Invalid or expired token.")

        try:
            user_id = int(data["sub"])
            email = str(data["email"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationFailedError("Invalid token payload.")

        return TokenClaims(
            user_id=user_id,
            username=str(data.get("name", "")),
            email=email,
            role=str(data.get("role", "User")),
            is_admin=data.get("IsAdmin") is True,
            token_id=str(data.get("jti", "")),
        )
