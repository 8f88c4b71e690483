"""
User-management business logic.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from auth import security
from auth.schemas import UserResponse
from core import ids
from core.ids import ADMIN_USER_ID

from . import repository, schemas
from .permissions import Permission, Principal

ADMIN_NAME = "admin"
ADMIN_EMAIL = "admin@localhost"

logger = logging.getLogger(__name__)


def _ensure_self_or_manager(current: Principal, user_id: str) -> None:
    if not current.can_manage and current.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No sufficient permissions",
        )


async def list_users() -> list[UserResponse]:
    return [UserResponse.from_row(row) for row in await repository.list_users()]


async def get_user(user_id: str, *, current: Principal) -> UserResponse:
    _ensure_self_or_manager(current, user_id)
    row = await repository.get_user_by_id(user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.from_row(row)


async def create_user(payload: schemas.CreateUserRequest) -> UserResponse:
    try:
        permissions = Permission.from_names(payload.descriptor)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if await repository.get_user_by_email(payload.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already registered",
        )

    row = await repository.create_user(
        user_id=ids.new_id(),
        name=payload.name.strip(),
        email=payload.email,
        password_hash=security.hash_password(payload.password),
        descriptor=int(permissions),
        avatar=payload.avatar,
    )
    logger.info("user_created user_id=%s permissions=%s", row["id"], int(permissions))
    return UserResponse.from_row(row)


async def remove_user(user_id: str, *, current: Principal | None) -> UserResponse:
    # The admin account is never removable, whoever asks.
    if user_id == ADMIN_USER_ID:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot remove root user",
        )
    if current is None or current.temporary:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    _ensure_self_or_manager(current, user_id)
    row = await repository.get_user_by_id(user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    await repository.remove_user(user_id)
    logger.info("user_removed user_id=%s by=%s", user_id, current.user_id)
    return UserResponse.from_row(row)


async def bootstrap_admin() -> str | None:
    """
    Create the built-in admin user on first start. Returns its generated password.
    """
    if await repository.admin_user_exists():
        return None
    password = ids.random_password()
    await repository.create_user(
        user_id=ADMIN_USER_ID,
        name=ADMIN_NAME,
        email=ADMIN_EMAIL,
        password_hash=security.hash_password(password),
        descriptor=int(Permission.all()),
    )
    logger.warning("admin_created email=%s password=%s", ADMIN_EMAIL, password)
    return password


async def reset_admin_password() -> str:
    password = ids.random_password()
    row = await repository.change_user_password(ADMIN_USER_ID, security.hash_password(password))
    if row is None:
        raise RuntimeError("Admin user does not exist. Start the service once to create it.")
    logger.info("admin_password_reset")
    return password
