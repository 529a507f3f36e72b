# fleet/backend/repositories/user_repository.py

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from fleet.backend.db.models import User


class UserRepository:
    """
    Data access for the users table.
    Emails are compared lowercased. Commit is done outside.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ---- reads ----

    def get_all(self) -> list[User]:
        return list(self._session.query(User).order_by(User.email).all())

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self._session
            .query(User)
            .filter(User.email == email.lower())
            .one_or_none()
        )

    def exists_by_email(self, email: str, exclude_id: int | None = None) -> bool:
        q = self._session.query(User.id).filter(User.email == email.lower())
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        return q.first() is not None

    # ---- writes ----

    def create(
        self,
        *,
        email: str,
        username: str,
        password_hash: str,
        is_admin: bool = False,
        require_password_change: bool = False,
    ) -> User:
        user = User(
            email=email.lower(),
            username=username,
            password_hash=password_hash,
            is_admin=is_admin,
            require_password_change=require_password_change,
        )
        self._session.add(user)
        self._session.flush()
        return user

    def delete(self, user: User) -> None:
        self._session.delete(user)
