# fleet/backend/api/routers/auth.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from fleet.backend.api.deps import get_auth_service, get_current_claims
from fleet.backend.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
)
from fleet.backend.schemas.common import MessageResponse
from fleet.backend.services.auth_service import AuthService
from fleet.backend.services.security import TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse)
def register(
    body: RegisterRequest,
    svc: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Create an account for a @rigaku.com address and sign it in.
    """
    response = svc.register(body.email, body.password)
    logger.info("User registered successfully: %s", response.email)
    return response


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    svc: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    response = svc.login(body.email, body.password)
    logger.info("User logged in successfully: %s", response.email)
    return response


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    svc: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """
    Same answer for known and unknown addresses.
    """
    response = svc.forgot_password(body.email)
    logger.info("Password reset requested for email: %s", body.email)
    return response


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    claims: TokenClaims = Depends(get_current_claims),
    svc: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    response = svc.change_password(claims.email, body.current_password, body.new_password)
    logger.info("Password changed successfully for user: %s", claims.email)
    return response
