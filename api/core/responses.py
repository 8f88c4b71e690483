"""
API response envelope and error handlers.

Every `/api` response has the shape `{"success": bool, "payload": ...}`.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def ok(payload: Any) -> dict[str, Any]:
    return {"success": True, "payload": jsonable_encoder(payload)}


def ok_response(payload: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(ok(payload), status_code=status_code)


def fail_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        {"success": False, "payload": message},
        status_code=status_code,
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = str(err.get("msg") or "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request."


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.info("request_failed path=%s status=%s detail=%s", request.url.path, exc.status_code, exc.detail)
    return fail_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("request_invalid path=%s detail=%s", request.url.path, message)
    return fail_response(status.HTTP_400_BAD_REQUEST, message)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("internal_error path=%s", request.url.path)
    return fail_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
