"""
Periodic maintenance.

- refresh_items: flag every expired item as unavailable, then delete items
  whose drop deadline has passed together with their stored payloads
- sweep_tokens: evict expired session tokens
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from auth.tokens import TokenStore
from core.files import FileAccessor
from delivery import lifecycle
from items import repository as items_repository
from items.schemas import ItemType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshReport:
    flagged: int
    dropped: int
    files_removed: int


async def refresh_items(files: FileAccessor, *, now: datetime | None = None) -> RefreshReport:
    now = now or lifecycle.utc_now()
    flagged = await items_repository.flag_expired_items(now=now, drop_at=lifecycle.drop_deadline(now))
    dropped = await items_repository.drop_due_items(now=now)

    files_removed = 0
    for row in dropped:
        if row["item_type"] not in (ItemType.CODE.value, ItemType.FILE.value):
            continue
        if await files.remove(str(row["data"])):
            files_removed += 1

    logger.info("refresh_done flagged=%s dropped=%s files_removed=%s", flagged, len(dropped), files_removed)
    return RefreshReport(flagged=flagged, dropped=len(dropped), files_removed=files_removed)


def sweep_tokens(store: TokenStore, *, now: datetime | None = None) -> int:
    removed = store.sweep(now)
    if removed:
        logger.info("tokens_swept removed=%s remaining=%s", removed, len(store))
    return removed
