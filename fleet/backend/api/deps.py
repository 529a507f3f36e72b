# fleet/backend/api/deps.py

from __future__ import annotations

from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fleet.backend.services.auth_service import AuthService
from fleet.backend.services.errors import PermissionDeniedError
from fleet.backend.services.machine_service import MachineService
from fleet.backend.services.security import PasswordHasher, TokenClaims, TokenService
from fleet.backend.services.user_management_service import UserManagementService

bearer_scheme = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    One SQLAlchemy session per request, closed when the request finishes.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


# ---- authentication / authorization ----

def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # AuthenticationFailedError from decode() becomes a 401 in the app handlers
    return tokens.decode(credentials.credentials)


def require_admin(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    if not claims.is_admin:
        raise PermissionDeniedError("Administrator access required.")
    return claims


# ---- services ----

def get_auth_service(
    request: Request,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(
        db,
        hasher=hasher,
        tokens=tokens,
        email_sender=request.app.state.email_sender,
        email_validator=request.app.state.email_validator,
    )


def get_machine_service(db: Session = Depends(get_db)) -> MachineService:
    return MachineService(db)


def get_user_management_service(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserManagementService:
    return UserManagementService(db, hasher=hasher)
