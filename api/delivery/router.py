"""
Read-side endpoints.

`api_router` serves item metadata and code content as JSON; `page_router`
is the catch-all `/{short_path}` resolver and must be mounted last.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Query, Request
from starlette.responses import Response

from auth import dependencies as auth_dependencies
from core import responses
from core.files import FileAccessor
from items.schemas import AccessLogResponse
from users.permissions import Principal

from . import service

api_router = APIRouter(prefix="/api")
page_router = APIRouter()


@api_router.get("/item/{short_path}")
async def get_item(
    short_path: str,
    detailed: bool = Query(default=False),
    password: str | None = Query(default=None),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
) -> dict:
    item = await service.item_info(short_path, principal=principal, password=password, detailed=detailed)
    return responses.ok(item)


@api_router.get("/code-content/{short_path}")
async def get_code_content(
    short_path: str,
    password: str | None = Query(default=None),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
    files: FileAccessor = Depends(auth_dependencies.get_files),
) -> dict:
    return responses.ok(
        await service.code_content(short_path, principal=principal, password=password, files=files)
    )


@api_router.get("/item/{short_path}/logs")
async def get_access_logs(
    short_path: str,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    current: Principal = Depends(auth_dependencies.get_current_user),
) -> dict:
    rows = await service.access_logs(short_path, principal=current, limit=limit, offset=offset)
    return responses.ok([AccessLogResponse.from_row(r) for r in rows])


def _reserved(short_path: str) -> bool:
    return short_path == "api" or short_path.startswith("api/")


@page_router.get("/{short_path:path}", include_in_schema=False)
async def resolve_get(
    request: Request,
    short_path: str,
    password: str | None = Query(default=None),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
    files: FileAccessor = Depends(auth_dependencies.get_files),
) -> Response:
    if _reserved(short_path):
        return responses.fail_response(404, "Not found")
    return await service.resolve(request, short_path, principal=principal, password=password, files=files)


@page_router.post("/{short_path:path}", include_in_schema=False)
async def resolve_post(
    request: Request,
    short_path: str,
    password: str | None = Form(default=None),
    query_password: str | None = Query(default=None, alias="password"),
    principal: Principal | None = Depends(auth_dependencies.get_optional_principal),
    files: FileAccessor = Depends(auth_dependencies.get_files),
) -> Response:
    if _reserved(short_path):
        return responses.fail_response(404, "Not found")
    return await service.resolve(
        request,
        short_path,
        principal=principal,
        password=password if password is not None else query_password,
        files=files,
    )
