"""
Short-path resolution.

Flow for every read of an item:
1) Look the item up and check availability (expiry by date or visit count)
2) Authorize (no password / creator-or-admin session / password digest)
3) Log the access (a successful read also counts one visit)
4) Dispatch by type: redirect, code page, or file stream
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from fastapi import HTTPException, Request, status
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.responses import Response

from core.files import FileAccessor
from items import repository as items_repository
from items.schemas import ItemFull, ItemSimplified, ItemType
from users.permissions import Principal

from . import lifecycle, pages, repository

STREAM_CHUNK_BYTES = 64 * 1024

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def ensure_available(item: dict) -> bool:
    """
    Return False if the item may no longer be served.

    An item that just ran out of time or visits is flagged here, with a drop
    deadline one grace period from now.
    """
    if not item.get("available", True):
        return False
    if not lifecycle.is_expired(item):
        return True
    await items_repository.mark_unavailable(str(item["id"]), drop_at=lifecycle.drop_deadline())
    logger.info("item_expired short_path=%s visits=%s", item["short_path"], item.get("visits"))
    return False


async def load_available_item(short_path: str) -> dict | None:
    item = await items_repository.get_item(short_path)
    if item is None or not await ensure_available(item):
        return None
    return item


def _iter_file(path: Path, start: int, length: int) -> Iterator[bytes]:
    remaining = length
    with path.open("rb") as fh:
        fh.seek(start)
        while remaining > 0:
            chunk = fh.read(min(STREAM_CHUNK_BYTES, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


async def file_response(item: dict, *, files: FileAccessor, range_header: str | None) -> Response | None:
    stored = await files.open_stream(str(item["data"]))
    if stored is None:
        return None

    display_name = item.get("extra_data")
    media_type = lifecycle.guess_media_type(display_name, str(item["data"]))
    headers = {
        "Content-Disposition": lifecycle.content_disposition(display_name),
        "Accept-Ranges": "bytes",
    }

    try:
        byte_range = lifecycle.parse_range(range_header, stored.size)
    except lifecycle.RangeNotSatisfiable as exc:
        return Response(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{exc.size}", "Accept-Ranges": "bytes"},
        )

    if byte_range is None:
        headers["Content-Length"] = str(stored.size)
        return StreamingResponse(
            _iter_file(stored.path, 0, stored.size),
            status_code=status.HTTP_200_OK,
            media_type=media_type,
            headers=headers,
        )

    headers["Content-Length"] = str(byte_range.length)
    headers["Content-Range"] = byte_range.content_range(stored.size)
    return StreamingResponse(
        _iter_file(stored.path, byte_range.start, byte_range.length),
        status_code=status.HTTP_206_PARTIAL_CONTENT,
        media_type=media_type,
        headers=headers,
    )


async def resolve(
    request: Request,
    short_path: str,
    *,
    principal: Principal | None,
    password: str | None,
    files: FileAccessor,
) -> Response:
    item = await load_available_item(short_path)
    if item is None:
        return pages.not_found(request, short_path)

    outcome = lifecycle.authorize(item, principal, password)
    if outcome is lifecycle.AuthOutcome.PROMPT:
        return pages.password_prompt(request, short_path, error=False)

    ip_address = client_ip(request)
    initiator = principal.user_id if principal is not None else None
    if outcome is lifecycle.AuthOutcome.DENIED:
        await repository.record_access(
            item_id=str(item["id"]),
            path=request.url.path,
            operation=repository.OPERATION_GET,
            success=False,
            ip_address=ip_address,
            initiator=initiator,
        )
        logger.info("password_rejected short_path=%s ip=%s", short_path, ip_address)
        return pages.password_prompt(request, short_path, error=True)

    await repository.record_access(
        item_id=str(item["id"]),
        path=request.url.path,
        operation=repository.OPERATION_GET,
        success=True,
        ip_address=ip_address,
        initiator=initiator,
    )

    item_type = ItemType(item["item_type"])
    if item_type is ItemType.LINK:
        return RedirectResponse(str(item["data"]), status_code=status.HTTP_302_FOUND)

    if item_type is ItemType.CODE:
        code = await files.read_text(str(item["data"]))
        if code is None:
            logger.warning("code_payload_missing short_path=%s data=%s", short_path, item["data"])
            return pages.not_found(request, short_path)
        language = item.get("extra_data") or lifecycle.DEFAULT_CODE_LANGUAGE
        return pages.code_view(request, short_path, code=code, language=language)

    response = await file_response(item, files=files, range_header=request.headers.get("range"))
    if response is None:
        logger.warning("file_payload_missing short_path=%s data=%s", short_path, item["data"])
        return pages.not_found(request, short_path)
    return response


async def _authorized_item(short_path: str, *, principal: Principal | None, password: str | None) -> dict:
    item = await load_available_item(short_path)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    if not lifecycle.authorize(item, principal, password).granted:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return item


async def item_info(
    short_path: str,
    *,
    principal: Principal | None,
    password: str | None,
    detailed: bool,
) -> ItemSimplified | ItemFull:
    item = await _authorized_item(short_path, principal=principal, password=password)
    return ItemFull.from_row(item) if detailed else ItemSimplified.from_row(item)


async def code_content(
    short_path: str,
    *,
    principal: Principal | None,
    password: str | None,
    files: FileAccessor,
) -> dict:
    item = await load_available_item(short_path)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    if item["item_type"] != ItemType.CODE.value:
        raise HTTPException(status_code=400, detail="Item is not a Code")
    if not lifecycle.authorize(item, principal, password).granted:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    content = await files.read_text(str(item["data"]))
    if content is None:
        raise HTTPException(status_code=404, detail="Code content not found")
    return {
        "id": str(item["id"]),
        "path": str(item["short_path"]),
        "content": content,
        "language": item.get("extra_data"),
    }


async def access_logs(short_path: str, *, principal: Principal, limit: int, offset: int) -> list[dict]:
    item = await items_repository.get_item(short_path)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    if not (principal.can_manage or principal.owns(item)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permission")
    return await repository.list_access_logs(short_path, limit=limit, offset=offset)
