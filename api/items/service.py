"""
Item write paths: create, upload, delete, and listings.

Creation rules:
- a logged-in user needs MANAGE or the permission bit of the item type
- without a session, a Turnstile-verified guest may create File items at
  `__RANDOM__` only; the guest gets a temporary token scoped to that item,
  which the following upload consumes
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath

import asyncpg
import filetype
from fastapi import HTTPException, UploadFile, status

from auth.security import digest_item_password
from auth.tokens import TokenStore
from core import ids, turnstile
from core.files import PLACEHOLDER_FILENAME, FileAccessor
from core.settings import Settings
from delivery import repository as access_repository
from users.permissions import Principal

from . import repository
from .schemas import RANDOM_PATH, CreateItemRequest, ItemFull, ItemSimplified, ItemType

UPLOAD_CHUNK_BYTES = 1024 * 1024

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Creator:
    user_id: str
    guest: bool = False


def parse_expires_at(raw: str | None) -> datetime | None:
    """
    ISO-8601 timestamp; a value without an offset is taken as UTC.
    """
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid expires_at: {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _verify_guest(settings: Settings, token: str, remote_ip: str | None) -> None:
    try:
        result = await turnstile.verify_token(
            secret_key=settings.turnstile_secret_key,
            token=token,
            remote_ip=remote_ip,
        )
    except turnstile.TurnstileError as exc:
        logger.exception("turnstile_unavailable")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if not result.success:
        logger.info("turnstile_rejected codes=%s", ",".join(result.error_codes))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Turnstile verification failed",
        )


async def resolve_creator(
    short_path: str,
    item_type: ItemType,
    *,
    principal: Principal | None,
    settings: Settings,
    turnstile_token: str | None,
    remote_ip: str | None,
) -> Creator:
    if principal is not None and not principal.temporary:
        if not principal.can_create(item_type.value):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return Creator(user_id=principal.user_id)

    if not settings.turnstile_enabled or turnstile_token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    await _verify_guest(settings, turnstile_token, remote_ip)
    if short_path != RANDOM_PATH or item_type is not ItemType.FILE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Guest users are not allowed to create items at customized paths",
        )
    return Creator(user_id=ids.guest_id(), guest=True)


async def _allocate_path(short_path: str) -> str:
    if short_path != RANDOM_PATH:
        return short_path
    while True:
        candidate = ids.random_path()
        if not await repository.item_exists(candidate):
            return candidate


async def create_item(
    short_path: str,
    payload: CreateItemRequest,
    *,
    principal: Principal | None,
    settings: Settings,
    files: FileAccessor,
    store: TokenStore,
    turnstile_token: str | None = None,
    remote_ip: str | None = None,
) -> tuple[ItemFull, str | None]:
    """
    Create an item. Returns it with the guest session id, if one was issued.
    """
    short_path = short_path.strip()
    if not short_path:
        raise HTTPException(status_code=400, detail="Path is empty")
    expires_at = parse_expires_at(payload.expires_at)

    if short_path != RANDOM_PATH and await repository.item_exists(short_path):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Item already exists")

    creator = await resolve_creator(
        short_path,
        payload.item_type,
        principal=principal,
        settings=settings,
        turnstile_token=turnstile_token,
        remote_ip=remote_ip,
    )
    short_path = await _allocate_path(short_path)

    item_id = ids.new_id()
    data = payload.data
    if payload.item_type is ItemType.CODE:
        data = f"{ids.new_id()}.txt"
        await files.write(data, payload.data.encode("utf-8"))
    elif payload.item_type is ItemType.FILE:
        data = PLACEHOLDER_FILENAME

    try:
        row = await repository.create_item(
            item_id=item_id,
            short_path=short_path,
            item_type=payload.item_type.value,
            data=data,
            expires_at=expires_at,
            max_visits=payload.max_visits,
            password_hash=digest_item_password(payload.password) if payload.password else None,
            extra_data=payload.extra_data,
            creator=creator.user_id,
        )
    except asyncpg.UniqueViolationError as exc:
        if payload.item_type is ItemType.CODE:
            await files.remove(data)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Item already exists") from exc

    await access_repository.record_access(
        item_id=item_id,
        path=f"/api/item/{short_path}",
        operation=access_repository.OPERATION_SET,
        success=True,
        ip_address=remote_ip or "unknown",
        initiator=creator.user_id,
    )

    session_id = None
    if creator.guest:
        session_id = store.issue(creator.user_id, temporary=True, item_id=item_id)

    logger.info(
        "item_created short_path=%s type=%s creator=%s guest=%s",
        short_path,
        payload.item_type.value,
        creator.user_id,
        creator.guest,
    )
    return ItemFull.from_row(row), session_id


def _client_extension(upload: UploadFile) -> str:
    suffix = PurePath(upload.filename or "").suffix.lstrip(".")
    if suffix:
        return suffix.lower()
    guessed = mimetypes.guess_extension(upload.content_type or "")
    return guessed.lstrip(".") if guessed else "bin"


def detect_upload_kind(upload: UploadFile, content: bytes) -> tuple[str, bool]:
    """
    Return (extension, is_image) for an uploaded payload.

    The magic bytes decide; the client's filename and content type only name
    the extension of payloads the sniffer does not recognize. Unrecognized
    payloads are never flagged as images.
    """
    kind = filetype.guess(content)
    if kind is None:
        return _client_extension(upload), False
    return kind.extension, kind.mime.startswith("image/")


async def _read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Upload exceeds {max_bytes} bytes",
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def upload_file(
    short_path: str,
    upload: UploadFile | None,
    *,
    principal: Principal | None,
    session_id: str | None,
    settings: Settings,
    files: FileAccessor,
    store: TokenStore,
    remote_ip: str | None = None,
) -> ItemFull:
    item = await repository.get_item(short_path)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No sufficient permission")
    if not principal.can_modify(item):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No sufficient permission")
    if principal.temporary:
        token = store.get(session_id)
        if token is None or token.item_id != str(item["id"]):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No sufficient permission")
    if item["item_type"] != ItemType.FILE.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Item is not a File")
    if upload is None:
        raise HTTPException(status_code=400, detail="No part named 'file' uploaded")

    content = await _read_upload(upload, settings.max_upload_bytes)
    extension, is_image = detect_upload_kind(upload, content)
    filename = f"{ids.new_id()}.{extension}"
    await files.write(filename, content)

    item_id = str(item["id"])
    previous = str(item["data"])
    await repository.update_item_data(item_id, filename)
    await repository.update_item_image(item_id, is_image)
    if previous != PLACEHOLDER_FILENAME:
        await files.remove(previous)

    if principal.temporary:
        store.remove(session_id)

    await access_repository.record_access(
        item_id=item_id,
        path=f"/api/file/{short_path}",
        operation=access_repository.OPERATION_SET,
        success=True,
        ip_address=remote_ip or "unknown",
        initiator=principal.user_id,
    )
    logger.info(
        "file_uploaded short_path=%s bytes=%s image=%s by=%s",
        short_path,
        len(content),
        is_image,
        principal.user_id,
    )

    updated = await repository.get_item(short_path)
    return ItemFull.from_row(updated or {**item, "data": filename, "is_image": is_image})


async def delete_item(short_path: str, *, principal: Principal, files: FileAccessor) -> ItemSimplified:
    item = await repository.get_item(short_path)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    if not principal.can_modify(item):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    await repository.remove_item(str(item["id"]))
    if item["item_type"] in (ItemType.CODE.value, ItemType.FILE.value):
        await files.remove(str(item["data"]))
    logger.info("item_deleted short_path=%s by=%s", short_path, principal.user_id)
    return ItemSimplified.from_row(item)


def _listing_owner(current: Principal, user: str | None) -> str:
    owner = (user or "").strip() or current.user_id
    if owner != current.user_id and not current.can_manage:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permission")
    return owner


async def list_items(current: Principal, *, user: str | None, limit: int, offset: int) -> list[ItemSimplified]:
    owner = _listing_owner(current, user)
    rows = await repository.list_items_by_creator(owner, limit=limit, offset=offset)
    return [ItemSimplified.from_row(r) for r in rows]


async def list_image_items(current: Principal, *, user: str | None, limit: int, offset: int) -> list[ItemFull]:
    owner = _listing_owner(current, user)
    rows = await repository.list_image_items_by_creator(owner, limit=limit, offset=offset)
    return [ItemFull.from_row(r) for r in rows]


async def list_all_items(*, limit: int, offset: int) -> list[ItemSimplified]:
    rows = await repository.list_all_items(limit=limit, offset=offset)
    return [ItemSimplified.from_row(r) for r in rows]
