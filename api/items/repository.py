"""
Item persistence (raw SQL).
"""

from __future__ import annotations

from datetime import datetime

from core import db

_ITEM_COLUMNS = """
    id, short_path, item_type, data, expires_at, max_visits, visits,
    password_hash, created_at, extra_data, creator, available,
    should_drop_at, is_image
"""


async def create_item(
    *,
    item_id: str,
    short_path: str,
    item_type: str,
    data: str,
    expires_at: datetime | None = None,
    max_visits: int | None = None,
    password_hash: str | None = None,
    extra_data: str | None = None,
    creator: str | None = None,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO items (
            id, short_path, item_type, data, expires_at, max_visits, visits,
            password_hash, extra_data, creator
        )
        VALUES ($1, $2, $3, $4, $5, $6, 0, $7, $8, $9)
        RETURNING {_ITEM_COLUMNS}
        """,
        item_id,
        short_path,
        item_type,
        data,
        expires_at,
        max_visits,
        password_hash,
        extra_data,
        creator,
    )
    if row is None:
        raise RuntimeError("Failed to create item.")
    return row


async def get_item(short_path: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM items
        WHERE short_path = $1
        """,
        short_path,
    )


async def item_exists(short_path: str) -> bool:
    row = await db.fetch_one(
        """
        SELECT 1 AS ok
        FROM items
        WHERE short_path = $1
        LIMIT 1
        """,
        short_path,
    )
    return row is not None


async def remove_item(item_id: str) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM items
        WHERE id = $1
        RETURNING id
        """,
        item_id,
    )
    return row is not None


async def update_item_data(item_id: str, data: str) -> None:
    await db.execute(
        """
        UPDATE items
        SET data = $1
        WHERE id = $2
        """,
        data,
        item_id,
    )


async def update_item_image(item_id: str, is_image: bool) -> None:
    await db.execute(
        """
        UPDATE items
        SET is_image = $1
        WHERE id = $2
        """,
        is_image,
        item_id,
    )


async def mark_unavailable(item_id: str, *, drop_at: datetime) -> dict | None:
    """
    Flag one item as unavailable. Keeps the earliest drop deadline if already flagged.
    """
    return await db.fetch_one(
        f"""
        UPDATE items
        SET available = false,
            should_drop_at = COALESCE(should_drop_at, $2)
        WHERE id = $1
        RETURNING {_ITEM_COLUMNS}
        """,
        item_id,
        drop_at,
    )


async def list_items_by_creator(creator: str, *, limit: int = 50, offset: int = 0) -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM items
        WHERE creator = $1
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        OFFSET $3
        """,
        creator,
        limit,
        offset,
    )


async def list_image_items_by_creator(creator: str, *, limit: int = 50, offset: int = 0) -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM items
        WHERE creator = $1
          AND item_type = 'file'
          AND is_image = true
          AND available = true
        ORDER BY created_at DESC, id DESC
        LIMIT $2
        OFFSET $3
        """,
        creator,
        limit,
        offset,
    )


async def list_all_items(*, limit: int = 50, offset: int = 0) -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM items
        ORDER BY created_at DESC, id DESC
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )


async def flag_expired_items(*, now: datetime, drop_at: datetime) -> int:
    """
    Mark every available item that ran out of time or visits as unavailable.
    """
    rows = await db.fetch_all(
        """
        UPDATE items
        SET available = false,
            should_drop_at = $2
        WHERE available = true
          AND (
            (expires_at IS NOT NULL AND expires_at < $1)
            OR (max_visits IS NOT NULL AND visits >= max_visits)
          )
        RETURNING id
        """,
        now,
        drop_at,
    )
    return len(rows)


async def drop_due_items(*, now: datetime) -> list[dict]:
    """
    Delete unavailable items whose grace period is over.

    Returns the deleted rows' type and payload reference so the caller can
    remove the backing files.
    """
    return await db.fetch_all(
        """
        DELETE FROM items
        WHERE available = false
          AND should_drop_at IS NOT NULL
          AND should_drop_at < $1
        RETURNING id, short_path, item_type, data
        """,
        now,
    )
