"""
Item lifecycle and access-control rules.

Everything here is pure (no I/O) so the rules can be unit-tested directly:
- availability: expiry by date or by visit count
- authorization of password-protected items
- byte-range parsing for file delivery
"""

from __future__ import annotations

import enum
import hmac
import mimetypes
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from urllib.parse import quote

from auth.security import digest_item_password
from users.permissions import Principal

# Time between an item becoming unavailable and its physical deletion.
DROP_GRACE_PERIOD = timedelta(days=7)
DEFAULT_CODE_LANGUAGE = "text"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def is_expired(item: Mapping[str, Any], now: datetime | None = None) -> bool:
    now = now or utc_now()
    expires_at = item.get("expires_at")
    if expires_at is not None and now > _as_aware(expires_at):
        return True
    max_visits = item.get("max_visits")
    if max_visits is not None and int(item.get("visits") or 0) >= int(max_visits):
        return True
    return False


def drop_deadline(now: datetime | None = None) -> datetime:
    return (now or utc_now()) + DROP_GRACE_PERIOD


class AuthOutcome(enum.Enum):
    OPEN = "open"  # item has no password
    SESSION = "session"  # caller is the creator or the admin
    PASSWORD = "password"  # correct password supplied
    PROMPT = "prompt"  # no password supplied yet
    DENIED = "denied"  # wrong password supplied

    @property
    def granted(self) -> bool:
        return self in (AuthOutcome.OPEN, AuthOutcome.SESSION, AuthOutcome.PASSWORD)


def password_matches(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(digest_item_password(password), (password_hash or "").lower())


def authorize(item: Mapping[str, Any], principal: Principal | None, password: str | None) -> AuthOutcome:
    password_hash = item.get("password_hash")
    if not password_hash:
        return AuthOutcome.OPEN
    if principal is not None and principal.can_read_protected(item):
        return AuthOutcome.SESSION
    if password is None:
        return AuthOutcome.PROMPT
    if password_matches(password, str(password_hash)):
        return AuthOutcome.PASSWORD
    return AuthOutcome.DENIED


class RangeNotSatisfiable(ValueError):
    def __init__(self, size: int):
        super().__init__(f"Requested range not satisfiable for {size} bytes.")
        self.size = size


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"


def _parse_int(raw: str) -> int | None:
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def parse_range(header: str | None, size: int) -> ByteRange | None:
    """
    Parse a single `Range: bytes=start-end` header against a file of `size` bytes.

    Returns None when the whole file should be sent. Only the first range of a
    multi-range header is honored. `start` and `end` are clamped to the last
    byte; an unparsable start means 0 and a missing end means the last byte.
    """
    raw = (header or "").strip()
    if not raw.lower().startswith("bytes="):
        return None
    first = raw[len("bytes="):].split(",", 1)[0].strip()
    start_raw, _, end_raw = first.partition("-")

    if size <= 0:
        raise RangeNotSatisfiable(size)
    last = size - 1

    if not start_raw.strip() and end_raw.strip():
        # Suffix form: the final N bytes.
        suffix = _parse_int(end_raw)
        if not suffix:
            raise RangeNotSatisfiable(size)
        return ByteRange(start=max(size - suffix, 0), end=last)

    start = _parse_int(start_raw) or 0
    end = _parse_int(end_raw)
    if end is None:
        end = last

    start, end = min(start, last), min(end, last)
    if start > end:
        raise RangeNotSatisfiable(size)
    return ByteRange(start=start, end=end)


def content_disposition(display_name: str | None) -> str:
    if not display_name:
        return "inline"
    fallback = display_name.encode("ascii", "replace").decode("ascii").replace('"', "'").replace("\\", "_")
    if fallback == display_name:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(display_name)}"


def guess_media_type(*names: str | None) -> str:
    for name in names:
        if not name:
            continue
        media_type, _ = mimetypes.guess_type(name)
        if media_type:
            return media_type
    return "application/octet-stream"
