from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from auth import security
from core.ids import ADMIN_USER_ID, new_id
from core.settings import Settings
from delivery import repository as delivery_repository
from items import repository as items_repository
from main import create_app
from users import repository as users_repository
from users.permissions import Permission

COOKIE_KEY = "k" * 80


class FakeDatabase:
    """
    In-memory stand-in for the repository layer.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.items: dict[str, dict[str, Any]] = {}
        self.logs: list[dict[str, Any]] = []

    # users

    async def create_user(self, *, user_id, name, email, password_hash, descriptor, avatar=None):
        row = {
            "id": user_id,
            "name": name,
            "email": users_repository.normalize_email(email),
            "password": password_hash,
            "avatar": avatar,
            "created_at": datetime.now(timezone.utc),
            "descriptor": descriptor,
        }
        self.users[user_id] = row
        return dict(row)

    async def admin_user_exists(self):
        return ADMIN_USER_ID in self.users

    async def get_user_by_id(self, user_id):
        row = self.users.get(user_id)
        return dict(row) if row else None

    async def get_user_by_email(self, email):
        wanted = users_repository.normalize_email(email)
        for row in self.users.values():
            if row["email"] == wanted:
                return dict(row)
        return None

    async def list_users(self):
        return [dict(r) for r in self.users.values()]

    async def change_user_password(self, user_id, password_hash):
        row = self.users.get(user_id)
        if row is None:
            return None
        row["password"] = password_hash
        return dict(row)

    async def remove_user(self, user_id):
        return self.users.pop(user_id, None) is not None

    # items

    def _by_path(self, short_path):
        for row in self.items.values():
            if row["short_path"] == short_path:
                return row
        return None

    async def create_item(
        self,
        *,
        item_id,
        short_path,
        item_type,
        data,
        expires_at=None,
        max_visits=None,
        password_hash=None,
        extra_data=None,
        creator=None,
    ):
        row = {
            "id": item_id,
            "short_path": short_path,
            "item_type": item_type,
            "data": data,
            "expires_at": expires_at,
            "max_visits": max_visits,
            "visits": 0,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
            "extra_data": extra_data,
            "creator": creator,
            "available": True,
            "should_drop_at": None,
            "is_image": False,
        }
        self.items[item_id] = row
        return dict(row)

    async def get_item(self, short_path):
        row = self._by_path(short_path)
        return dict(row) if row else None

    async def item_exists(self, short_path):
        return self._by_path(short_path) is not None

    async def remove_item(self, item_id):
        removed = self.items.pop(item_id, None)
        self.logs = [log for log in self.logs if log["item_id"] != item_id]
        return removed is not None

    async def update_item_data(self, item_id, data):
        self.items[item_id]["data"] = data

    async def update_item_image(self, item_id, is_image):
        self.items[item_id]["is_image"] = is_image

    async def mark_unavailable(self, item_id, *, drop_at):
        row = self.items.get(item_id)
        if row is None:
            return None
        row["available"] = False
        row["should_drop_at"] = row["should_drop_at"] or drop_at
        return dict(row)

    async def list_items_by_creator(self, creator, *, limit=50, offset=0):
        rows = [dict(r) for r in self.items.values() if r["creator"] == creator]
        return rows[offset : offset + limit]

    async def list_image_items_by_creator(self, creator, *, limit=50, offset=0):
        rows = [
            dict(r)
            for r in self.items.values()
            if r["creator"] == creator and r["item_type"] == "file" and r["is_image"] and r["available"]
        ]
        return rows[offset : offset + limit]

    async def list_all_items(self, *, limit=50, offset=0):
        return [dict(r) for r in self.items.values()][offset : offset + limit]

    async def flag_expired_items(self, *, now, drop_at):
        count = 0
        for row in self.items.values():
            if not row["available"]:
                continue
            expired_by_date = row["expires_at"] is not None and row["expires_at"] < now
            expired_by_visits = row["max_visits"] is not None and row["visits"] >= row["max_visits"]
            if expired_by_date or expired_by_visits:
                row["available"] = False
                row["should_drop_at"] = drop_at
                count += 1
        return count

    async def drop_due_items(self, *, now):
        due = [
            r
            for r in self.items.values()
            if not r["available"] and r["should_drop_at"] is not None and r["should_drop_at"] < now
        ]
        for row in due:
            del self.items[row["id"]]
        return [{k: row[k] for k in ("id", "short_path", "item_type", "data")} for row in due]

    # access logs

    async def record_access(self, *, item_id, path, operation, success, ip_address, initiator=None):
        log = {
            "id": new_id(),
            "item_id": item_id,
            "accessed_at": datetime.now(timezone.utc),
            "path": path,
            "operation": operation,
            "success": success,
            "ip_address": ip_address,
            "initiator": initiator,
        }
        self.logs.append(log)
        visits = None
        if operation == "get" and success and item_id in self.items:
            self.items[item_id]["visits"] += 1
            visits = self.items[item_id]["visits"]
        return {**log, "visits": visits}

    async def list_access_logs(self, short_path, *, limit=100, offset=0):
        item = self._by_path(short_path)
        if item is None:
            return []
        rows = [dict(log) for log in self.logs if log["item_id"] == item["id"]]
        rows.reverse()
        return rows[offset : offset + limit]

    # helpers

    def add_user(self, *, user_id=None, email=None, permissions=Permission.NONE, password_hash="!"):
        user_id = user_id or new_id()
        self.users[user_id] = {
            "id": user_id,
            "name": email or user_id,
            "email": email or f"{user_id}@example.com",
            "password": password_hash,
            "avatar": None,
            "created_at": datetime.now(timezone.utc),
            "descriptor": int(permissions),
        }
        return self.users[user_id]

    def add_item(self, short_path, item_type="link", data="https://example.com/", **fields):
        item_id = new_id()
        row = {
            "id": item_id,
            "short_path": short_path,
            "item_type": item_type,
            "data": data,
            "expires_at": None,
            "max_visits": None,
            "visits": 0,
            "password_hash": None,
            "created_at": datetime.now(timezone.utc),
            "extra_data": None,
            "creator": None,
            "available": True,
            "should_drop_at": None,
            "is_image": False,
        }
        row.update(fields)
        self.items[item_id] = row
        return row


_USERS_FUNCS = (
    "create_user",
    "admin_user_exists",
    "get_user_by_id",
    "get_user_by_email",
    "list_users",
    "change_user_password",
    "remove_user",
)
_ITEMS_FUNCS = (
    "create_item",
    "get_item",
    "item_exists",
    "remove_item",
    "update_item_data",
    "update_item_image",
    "mark_unavailable",
    "list_items_by_creator",
    "list_image_items_by_creator",
    "list_all_items",
    "flag_expired_items",
    "drop_due_items",
)
_DELIVERY_FUNCS = ("record_access", "list_access_logs")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeDatabase:
    fake = FakeDatabase()
    for name in _USERS_FUNCS:
        monkeypatch.setattr(users_repository, name, getattr(fake, name))
    for name in _ITEMS_FUNCS:
        monkeypatch.setattr(items_repository, name, getattr(fake, name))
    for name in _DELIVERY_FUNCS:
        monkeypatch.setattr(delivery_repository, name, getattr(fake, name))
    return fake


def make_settings(data_dir: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = dict(
        database_url="postgresql://test@localhost/test",
        db_pool_max_size=5,
        data_dir=data_dir,
        cookie_key=COOKIE_KEY,
        refresh_cron="0 * * * *",
        token_sweep_minutes=30,
        host="127.0.0.1",
        port=3000,
        domain="localhost",
        turnstile_enabled=False,
        turnstile_site_key="",
        turnstile_secret_key="",
        max_upload_bytes=1024 * 1024,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path / "data")


@pytest.fixture
def app(settings: Settings, fake_db: FakeDatabase):
    # The lifespan (DB pool, scheduler) is not entered: TestClient is used without `with`.
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def sign_in(client: TestClient, user_id: str, *, temporary: bool = False, item_id: str | None = None) -> str:
    store = client.app.state.tokens
    session_id = store.issue(user_id, temporary=temporary, item_id=item_id)
    client.cookies.set(security.COOKIE_NAME, security.encode_session_cookie(session_id, COOKIE_KEY))
    return session_id
