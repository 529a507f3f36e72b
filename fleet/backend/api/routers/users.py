# fleet/backend/api/routers/users.py

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from fleet.backend.api.deps import get_user_management_service, require_admin
from fleet.backend.schemas.users import CreateUserRequest, UpdateUserRequest, UserDto
from fleet.backend.services.security import TokenClaims
from fleet.backend.services.user_management_service import UserManagementService

logger = logging.getLogger(__name__)

# admin only: non-admin tokens get 403
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[UserDto])
def list_users(svc: UserManagementService = Depends(get_user_management_service)) -> list[UserDto]:
    return svc.list_users()


@router.get("/{user_id}", response_model=UserDto)
def get_user(
    user_id: int,
    svc: UserManagementService = Depends(get_user_management_service),
) -> UserDto:
    user = svc.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("", response_model=UserDto, status_code=201)
def create_user(
    body: CreateUserRequest,
    svc: UserManagementService = Depends(get_user_management_service),
) -> UserDto:
    user = svc.create_user(body)
    logger.info("User %s created by an administrator", user.email)
    return user


@router.put("/{user_id}", response_model=UserDto)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    svc: UserManagementService = Depends(get_user_management_service),
) -> UserDto:
    user = svc.update_user(user_id, body)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    admin: TokenClaims = Depends(require_admin),
    svc: UserManagementService = Depends(get_user_management_service),
) -> None:
    if admin.user_id == user_id:
        logger.warning("Administrator %s tried to delete their own account", admin.email)
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    if not svc.delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("User %s deleted by %s", user_id, admin.email)
