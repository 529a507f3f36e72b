# fleet/backend/services/user_management_service.py

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleet.backend.db.models import User
from fleet.backend.db.session import unit_of_work
from fleet.backend.repositories.user_repository import UserRepository
from fleet.backend.schemas.users import CreateUserRequest, UpdateUserRequest, UserDto

from .errors import DomainValidationError
from .security import PasswordHasher


class UserManagementService:
    """
    Admin CRUD over user accounts.
    The "admin may not delete himself" rule is enforced by the router, not here.
    """

    def __init__(self, session: Session, *, hasher: PasswordHasher) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._hasher = hasher

    def list_users(self) -> list[UserDto]:
        return [self._to_dto(u) for u in self._users.get_all()]

    def get_user(self, user_id: int) -> Optional[UserDto]:
        user = self._users.get_by_id(user_id)
        return self._to_dto(user) if user is not None else None

    def create_user(self, body: CreateUserRequest) -> UserDto:
        if self._users.exists_by_email(body.email):
            raise DomainValidationError("User with this email already exists.")

        try:
            with unit_of_work(self._session):
                user = self._users.create(
                    email=body.email,
                    username=body.username,
                    password_hash=self._hasher.hash(body.password),
                    is_admin=body.is_admin,
                )
        except IntegrityError:
            raise DomainValidationError("User with this email already exists.")

        return self._to_dto(user)

    def update_user(self, user_id: int, body: UpdateUserRequest) -> Optional[UserDto]:
        user = self._users.get_by_id(user_id)
        if user is None:
            return None

        new_email = body.email.lower() if body.email is not None else None
        if new_email is not None and new_email != user.email:
            if self._users.exists_by_email(new_email, exclude_id=user.id):
                raise DomainValidationError("A user with this email already exists.")

        try:
            with unit_of_work(self._session):
                if new_email is not None:
                    user.email = new_email
                if body.username is not None:
                    user.username = body.username
                if body.password is not None:
                    user.password_hash = self._hasher.hash(body.password)
                if body.is_admin is not None:
                    user.is_admin = body.is_admin
        except IntegrityError:
            raise DomainValidationError("A user with this email already exists.")

        return self._to_dto(user)

    def delete_user(self, user_id: int) -> bool:
        user = self._users.get_by_id(user_id)
        if user is None:
            return False

        with unit_of_work(self._session):
            self._users.delete(user)
        return True

    @staticmethod
    def _to_dto(user: User) -> UserDto:
        return UserDto(
            id=user.id,
            email=user.email,
            username=user.username,
            is_admin=user.is_admin,
            require_password_change=user.require_password_change,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )
