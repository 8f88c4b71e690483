"""
Auth security helpers.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any

import bcrypt
import jwt

from .tokens import TOKEN_LIFETIME

COOKIE_NAME = "token"
COOKIE_ALGORITHM = "HS256"


class AuthSecurityError(RuntimeError):
    pass


def now_epoch_s() -> int:
    return int(time.time())


def hash_password(plain_password: str) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise AuthSecurityError("Password is empty.")
    return bcrypt.hashpw(password, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def digest_item_password(plain_password: str) -> str:
    """
    Item passwords are stored as a lowercase hex SHA-256 digest.
    """
    return hashlib.sha256((plain_password or "").encode("utf-8")).hexdigest()


def encode_session_cookie(session_id: str, cookie_key: str) -> str:
    issued_at = now_epoch_s()
    payload = {
        "sid": session_id,
        "iat": issued_at,
        "exp": issued_at + int(TOKEN_LIFETIME.total_seconds()),
    }
    return jwt.encode(payload, cookie_key, algorithm=COOKIE_ALGORITHM)


def decode_session_cookie(raw_cookie: str | None, cookie_key: str) -> str | None:
    """
    Return the session id carried by a signed cookie, or None if it is missing or forged.
    """
    raw = (raw_cookie or "").strip()
    if not raw:
        return None
    try:
        payload: dict[str, Any] = jwt.decode(raw, cookie_key, algorithms=[COOKIE_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    session_id = payload.get("sid")
    if not isinstance(session_id, str) or not session_id:
        return None
    return session_id
