"""
Auth dependencies for protected FastAPI routes.

The session lives in the signed `token` cookie; the token store and the
settings are owned by the application (`app.state`), not by module globals.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from core.files import FileAccessor
from core.settings import Settings
from users import repository as users_repository
from users.permissions import Principal

from . import security
from .tokens import TokenStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.tokens


def get_files(request: Request) -> FileAccessor:
    return request.app.state.files


def session_id_from_request(request: Request) -> str | None:
    settings: Settings = request.app.state.settings
    return security.decode_session_cookie(request.cookies.get(security.COOKIE_NAME), settings.cookie_key)


async def resolve_principal(request: Request) -> Principal | None:
    store = get_token_store(request)
    token = store.get(session_id_from_request(request))
    if token is None:
        return None
    if token.temporary:
        return Principal.guest(token.user_id)

    user_row = await users_repository.get_user_by_id(token.user_id)
    if user_row is None:
        return None
    return Principal.from_user(user_row)


async def get_optional_principal(request: Request) -> Principal | None:
    return await resolve_principal(request)


async def get_current_principal(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return principal


async def get_current_user(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Like `get_current_principal`, but guest (temporary) sessions are rejected.
    """
    if principal.temporary:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return principal


async def get_manager(principal: Principal = Depends(get_current_user)) -> Principal:
    if not principal.can_manage:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permission",
        )
    return principal
