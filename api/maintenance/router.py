"""
Manual maintenance trigger.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies
from core import responses
from core.files import FileAccessor
from users.permissions import Principal

from . import service

router = APIRouter(prefix="/api")


@router.get("/db-refresh")
async def db_refresh(
    _: Principal = Depends(auth_dependencies.get_manager),
    files: FileAccessor = Depends(auth_dependencies.get_files),
) -> dict:
    report = await service.refresh_items(files)
    return responses.ok(asdict(report))
