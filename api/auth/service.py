"""
Auth business logic: login, logout and session cookies.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Response, status

from core.settings import Settings
from users import repository as users_repository

from . import schemas, security
from .tokens import TOKEN_LIFETIME, TokenStore

logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=security.COOKIE_NAME,
        value=security.encode_session_cookie(session_id, settings.cookie_key),
        max_age=int(TOKEN_LIFETIME.total_seconds()),
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=security.COOKIE_NAME, path="/")


async def login(payload: schemas.LoginRequest, *, store: TokenStore) -> tuple[schemas.UserResponse, str]:
    user_row = await users_repository.get_user_by_email(payload.email)
    is_valid = user_row is not None and security.verify_password(
        payload.password, str(user_row.get("password") or "")
    )
    if not is_valid:
        logger.info("login_failed email=%s", users_repository.normalize_email(payload.email))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid email or password",
        )

    session_id = store.issue(str(user_row["id"]))
    logger.info("login_ok user_id=%s", user_row["id"])
    return schemas.UserResponse.from_row(user_row), session_id


def logout(session_id: str | None, *, store: TokenStore) -> bool:
    return store.remove(session_id) is not None


async def user_info(user_id: str) -> schemas.UserResponse:
    user_row = await users_repository.get_user_by_id(user_id)
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return schemas.UserResponse.from_row(user_row)
