# fleet/backend/services/auth_service.py

"""
auth_service.py

Registration, login and the password-reset flow.

  API  <--->  AuthService  <--->  UserRepository + PasswordHasher + TokenService
                                  + EmailSender + EmailValidator

Forgot-password answers with the same message whether or not the account
exists. For an existing account the new temporary password is only committed
once the email carrying it has been handed to the mail server.
"""

from __future__ import annotations

import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleet.backend.db.models import User, utcnow
from fleet.backend.db.session import unit_of_work
from fleet.backend.repositories.user_repository import UserRepository
from fleet.backend.schemas.auth import AuthResponse
from fleet.backend.schemas.common import MessageResponse

from .email_service import EmailSender, render_password_reset_email, render_welcome_email
from .email_validation import EmailValidator
from .errors import AuthenticationFailedError, DomainValidationError, EmailDeliveryError
from .security import PasswordHasher, TokenService

logger = logging.getLogger(__name__)

ALLOWED_EMAIL_DOMAIN = "@rigaku.com"
RESET_SENT_MESSAGE = "If an account with this email exists, a password reset has been sent."
PASSWORD_CHANGED_MESSAGE = "Password changed successfully."
TEMPORARY_PASSWORD_LENGTH = 12


def username_from_email(email: str) -> str:
    """
    "john.smith@rigaku.com" -> "John Smith"
    """
    local = email.split("@", 1)[0]
    parts = [p[:1].upper() + p[1:].lower() if p else p for p in local.split(".")]
    return " ".join(parts)


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """
    Random password with at least one uppercase letter, one lowercase letter
    and one digit; the rest drawn from all three, then shuffled.
    """
    upper = string.ascii_uppercase
    lower = string.ascii_lowercase
    digits = string.digits
    alphabet = upper + lower + digits

    chars = [
        secrets.choice(upper),
        secrets.choice(lower),
        secrets.choice(digits),
    ]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


class AuthService:
    def __init__(
        self,
        session: Session,
        *,
        hasher: PasswordHasher,
        tokens: TokenService,
        email_sender: EmailSender,
        email_validator: EmailValidator,
    ) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._hasher = hasher
        self._tokens = tokens
        self._email = email_sender
        self._email_validator = email_validator

    # ---- public operations ----

    def register(self, email: str, password: str) -> AuthResponse:
        email = email.strip()

        if not email.lower().endswith(ALLOWED_EMAIL_DOMAIN):
            raise DomainValidationError("Only Rigaku email addresses (@rigaku.com) are allowed.")

        if self._users.exists_by_email(email):
            raise DomainValidationError("User with this email already exists.")

        if not self._email_validator.is_valid_email(email):
            raise DomainValidationError("Email address is invalid or cannot receive mail.")

        try:
            with unit_of_work(self._session):
                user = self._users.create(
                    email=email,
                    username=username_from_email(email),
                    password_hash=self._hasher.hash(password),
                )
        except IntegrityError:
            # lost a race with a concurrent registration of the same address
            raise DomainValidationError("User with this email already exists.")

        self._send_welcome(user)
        return self._auth_response(user)

    def login(self, email: str, password: str) -> AuthResponse:
        user = self._users.get_by_email(email.strip())
        if user is None or not self._hasher.verify(password, user.password_hash):
            raise AuthenticationFailedError("Invalid email or password.")

        with unit_of_work(self._session):
            user.last_login_at = utcnow()

        return self._auth_response(user)

    def forgot_password(self, email: str) -> MessageResponse:
        user = self._users.get_by_email(email.strip())
        if user is None:
            logger.info("Password reset requested for unknown email")
            return MessageResponse(message=RESET_SENT_MESSAGE)

        temporary_password = generate_temporary_password()
        subject, body = render_password_reset_email(user.username, temporary_password)

        # EmailDeliveryError rolls the new hash back: the old password keeps working
        with unit_of_work(self._session):
            user.password_hash = self._hasher.hash(temporary_password)
            user.require_password_change = True
            self._session.flush()
            self._email.send_email(user.email, subject, body)

        return MessageResponse(message=RESET_SENT_MESSAGE)

    def change_password(
        self,
        email: str,
        current_password: str | None,
        new_password: str,
    ) -> MessageResponse:
        user = self._users.get_by_email(email)
        if user is None:
            raise AuthenticationFailedError("User not found.")

        # after a reset the temporary password is not asked for again
        if not user.require_password_change:
            if not current_password or not self._hasher.verify(current_password, user.password_hash):
                raise AuthenticationFailedError("Current password is incorrect.")
            if current_password == new_password:
                raise DomainValidationError("New password must be different from the current password.")

        with unit_of_work(self._session):
            user.password_hash = self._hasher.hash(new_password)
            user.require_password_change = False

        return MessageResponse(message=PASSWORD_CHANGED_MESSAGE)

    # ---- helpers ----

    def _auth_response(self, user: User) -> AuthResponse:
        issued = self._tokens.issue(user)
        return AuthResponse(
            token=issued.token,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
            require_password_change=user.require_password_change,
            expires_at=issued.expires_at,
        )

    def _send_welcome(self, user: User) -> None:
        subject, body = render_welcome_email(user.username)
        try:
            self._email.send_email(user.email, subject, body)
        except EmailDeliveryError:
            logger.warning("Welcome email to %s was not delivered", user.email)
