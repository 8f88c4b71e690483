"""
User-management API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from auth import dependencies as auth_dependencies
from core import responses

from . import schemas, service
from .permissions import Principal

router = APIRouter(prefix="/api")


@router.get("/users")
async def get_users(_: Principal = Depends(auth_dependencies.get_manager)) -> dict:
    return responses.ok(await service.list_users())


@router.post("/users")
async def create_user(
    payload: schemas.CreateUserRequest,
    _: Principal = Depends(auth_dependencies.get_manager),
) -> JSONResponse:
    user = await service.create_user(payload)
    return responses.ok_response(user, status_code=status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def get_user(
    user_id: str,
    current: Principal = Depends(auth_dependencies.get_current_user),
) -> dict:
    return responses.ok(await service.get_user(user_id, current=current))


@router.delete("/user/{user_id}")
async def remove_user(
    user_id: str,
    current: Principal | None = Depends(auth_dependencies.get_optional_principal),
) -> dict:
    return responses.ok(await service.remove_user(user_id, current=current))
