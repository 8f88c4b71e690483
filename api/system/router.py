"""
Service metadata endpoints.
"""

from __future__ import annotations

import platform
from importlib import metadata

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies
from core import responses
from core.settings import Settings

DISTRIBUTION_NAME = "spectra"

router = APIRouter(prefix="/api")


def service_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0+local"


@router.get("/about")
def about(settings: Settings = Depends(auth_dependencies.get_settings)) -> dict:
    return responses.ok(
        {
            "name": DISTRIBUTION_NAME,
            "version": service_version(),
            "python_version": platform.python_version(),
            "domain": settings.domain,
            "features": {"turnstile": settings.turnstile_enabled},
        }
    )


@router.get("/config")
def config(settings: Settings = Depends(auth_dependencies.get_settings)) -> dict:
    return responses.ok(
        {
            "turnstile_enabled": settings.turnstile_enabled,
            "turnstile_site_key": settings.turnstile_site_key if settings.turnstile_enabled else None,
        }
    )
