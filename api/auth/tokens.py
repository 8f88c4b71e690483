"""
In-memory session tokens.

Sessions are keyed by an opaque random id (never the user id), so one user
can hold several sessions and the cookie does not reveal who they belong to.
Nothing is persisted: a restart logs everybody out.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

TOKEN_LIFETIME = timedelta(minutes=10)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Token:
    user_id: str
    temporary: bool = False
    # Temporary (guest) tokens are scoped to the one item they were issued for.
    item_id: str | None = None
    expires_at: datetime = field(default_factory=lambda: _utc_now() + TOKEN_LIFETIME)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at < (now or _utc_now())


class TokenStore:
    def __init__(self) -> None:
        self._tokens: dict[str, Token] = {}
        # Held only around dict operations, never across an await.
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def issue(self, user_id: str, *, temporary: bool = False, item_id: str | None = None) -> str:
        session_id = secrets.token_urlsafe(32)
        self.insert(session_id, Token(user_id=user_id, temporary=temporary, item_id=item_id))
        return session_id

    def insert(self, session_id: str, token: Token) -> None:
        with self._lock:
            self._tokens[session_id] = token

    def get(self, session_id: str | None) -> Token | None:
        if not session_id:
            return None
        with self._lock:
            token = self._tokens.get(session_id)
        if token is None or token.is_expired():
            return None
        return token

    def remove(self, session_id: str | None) -> Token | None:
        if not session_id:
            return None
        with self._lock:
            return self._tokens.pop(session_id, None)

    def sweep(self, now: datetime | None = None) -> int:
        """
        Evict expired tokens. Returns how many were removed.
        """
        now = now or _utc_now()
        with self._lock:
            expired = [key for key, token in self._tokens.items() if token.is_expired(now)]
            for key in expired:
                del self._tokens[key]
        return len(expired)
