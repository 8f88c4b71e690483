"""
Server-rendered pages for the short-path read flow.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import Request, status
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def password_prompt(request: Request, path_name: str, *, error: bool) -> Response:
    return templates.TemplateResponse(
        request,
        "password.html",
        {"info": {"error": error, "path_name": path_name}},
        status_code=status.HTTP_401_UNAUTHORIZED if error else status.HTTP_200_OK,
    )


def code_view(request: Request, path_name: str, *, code: str, language: str) -> Response:
    return templates.TemplateResponse(
        request,
        "code.html",
        {"path_name": path_name, "code": code, "info": {"language": language}},
    )


def not_found(request: Request, path_name: str) -> Response:
    return templates.TemplateResponse(
        request,
        "not_found.html",
        {"path_name": path_name},
        status_code=status.HTTP_404_NOT_FOUND,
    )
