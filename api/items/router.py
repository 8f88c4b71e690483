"""
Item write and listing endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from auth import dependencies as auth_dependencies
from auth import service as auth_service
from auth.tokens import TokenStore
from core import responses
from core.files import FileAccessor
from core.settings import Settings
from delivery.service import client_ip
from users.permissions import Principal

from . import schemas, service

router = APIRouter(prefix="/api")


@router.post("/item/{short_path}")
async def create_item(
    request: Request,
    short_path: str,
    payload: schemas.CreateItemRequest,
    turnstile_token: str | None = Query(default=None, alias="turnstile-token"),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
    settings: Settings = Depends(auth_dependencies.get_settings),
    files: FileAccessor = Depends(auth_dependencies.get_files),
    store: TokenStore = Depends(auth_dependencies.get_token_store),
) -> JSONResponse:
    item, guest_session = await service.create_item(
        short_path,
        payload,
        principal=principal,
        settings=settings,
        files=files,
        store=store,
        turnstile_token=turnstile_token,
        remote_ip=client_ip(request),
    )
    response = responses.ok_response(item)
    if guest_session is not None:
        auth_service.set_session_cookie(response, guest_session, settings)
    return response


@router.api_route("/file/{short_path}", methods=["PUT", "POST"])
async def upload_file(
    request: Request,
    short_path: str,
    file: UploadFile | None = File(default=None),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
    settings: Settings = Depends(auth_dependencies.get_settings),
    files: FileAccessor = Depends(auth_dependencies.get_files),
    store: TokenStore = Depends(auth_dependencies.get_token_store),
) -> JSONResponse:
    session_id = auth_dependencies.session_id_from_request(request)
    item = await service.upload_file(
        short_path,
        file,
        principal=principal,
        session_id=session_id,
        settings=settings,
        files=files,
        store=store,
        remote_ip=client_ip(request),
    )
    response = responses.ok_response(item)
    if principal is not None and principal.temporary:
        auth_service.clear_session_cookie(response)
    return response


@router.delete("/item/{short_path}")
async def delete_item(
    short_path: str,
    current: Principal = Depends(auth_dependencies.get_current_user),
    files: FileAccessor = Depends(auth_dependencies.get_files),
) -> dict:
    return responses.ok(await service.delete_item(short_path, principal=current, files=files))


@router.get("/items")
async def list_items(
    user: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current: Principal = Depends(auth_dependencies.get_current_user),
) -> dict:
    return responses.ok(await service.list_items(current, user=user, limit=limit, offset=offset))


@router.get("/items/img")
async def list_image_items(
    user: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current: Principal = Depends(auth_dependencies.get_current_user),
) -> dict:
    return responses.ok(await service.list_image_items(current, user=user, limit=limit, offset=offset))


@router.get("/items/all")
async def list_all_items(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(auth_dependencies.get_manager),
) -> dict:
    return responses.ok(await service.list_all_items(limit=limit, offset=offset))
