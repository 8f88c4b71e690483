"""
Access-log persistence (raw SQL).
"""

from __future__ import annotations

from core import db
from core.ids import new_id

OPERATION_GET = "get"
OPERATION_SET = "set"


async def record_access(
    *,
    item_id: str,
    path: str,
    operation: str,
    success: bool,
    ip_address: str,
    initiator: str | None = None,
) -> dict:
    """
    Append one access-log row. A successful `get` also bumps the item's visit
    counter in the same statement, so concurrent reads cannot lose updates.
    """
    row = await db.fetch_one(
        """
        WITH log AS (
            INSERT INTO access_logs (id, item_id, path, operation, success, ip_address, initiator)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING id, item_id, accessed_at, path, operation, success, ip_address, initiator
        ),
        bumped AS (
            UPDATE items
            SET visits = visits + 1
            WHERE id = $2
              AND $4 = 'get'
              AND $5
            RETURNING visits
        )
        SELECT log.*, (SELECT visits FROM bumped) AS visits
        FROM log
        """,
        new_id(),
        item_id,
        path,
        operation,
        success,
        ip_address,
        initiator,
    )
    if row is None:
        raise RuntimeError("Failed to record access.")
    return row


async def list_access_logs(short_path: str, *, limit: int = 100, offset: int = 0) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT al.id, al.item_id, al.accessed_at, al.path, al.operation,
               al.success, al.ip_address, al.initiator
        FROM access_logs al
        JOIN items i ON al.item_id = i.id
        WHERE i.short_path = $1
        ORDER BY al.accessed_at DESC, al.id DESC
        LIMIT $2
        OFFSET $3
        """,
        short_path,
        limit,
        offset,
    )
