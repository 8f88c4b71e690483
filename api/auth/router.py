"""
Session API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core import responses
from core.settings import Settings
from users.permissions import Principal

from . import dependencies, schemas, service
from .tokens import TokenStore

router = APIRouter(prefix="/api")


@router.post("/login")
async def login(
    payload: schemas.LoginRequest,
    settings: Settings = Depends(dependencies.get_settings),
    store: TokenStore = Depends(dependencies.get_token_store),
) -> JSONResponse:
    user, session_id = await service.login(payload, store=store)
    response = responses.ok_response(user)
    service.set_session_cookie(response, session_id, settings)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    store: TokenStore = Depends(dependencies.get_token_store),
) -> JSONResponse:
    removed = service.logout(dependencies.session_id_from_request(request), store=store)
    response = responses.ok_response({"logged_out": removed})
    service.clear_session_cookie(response)
    return response


@router.get("/user-info")
async def user_info(current: Principal = Depends(dependencies.get_current_user)) -> dict:
    return responses.ok(await service.user_info(current.user_id))
