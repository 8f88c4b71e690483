"""
User persistence helpers.
"""

from __future__ import annotations

from core import db
from core.ids import ADMIN_USER_ID

_USER_COLUMNS = "id, name, email, password, avatar, created_at, descriptor"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(
    *,
    user_id: str,
    name: str,
    email: str,
    password_hash: str,
    descriptor: int,
    avatar: str | None = None,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO users (id, name, email, password, descriptor, avatar)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING {_USER_COLUMNS}
        """,
        user_id,
        name,
        normalize_email(email),
        password_hash,
        descriptor,
        avatar,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def admin_user_exists() -> bool:
    row = await db.fetch_one("SELECT 1 AS ok FROM users WHERE id = $1", ADMIN_USER_ID)
    return row is not None


async def get_user_by_id(user_id: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users
        WHERE lower(email) = lower($1)
        """,
        normalize_email(email),
    )


async def list_users() -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users
        ORDER BY created_at ASC, id ASC
        """
    )


async def change_user_password(user_id: str, password_hash: str) -> dict | None:
    return await db.fetch_one(
        f"""
        UPDATE users
        SET password = $1
        WHERE id = $2
        RETURNING {_USER_COLUMNS}
        """,
        password_hash,
        user_id,
    )


async def remove_user(user_id: str) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM users
        WHERE id = $1
        RETURNING id
        """,
        user_id,
    )
    return row is not None
