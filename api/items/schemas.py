"""
Pydantic schemas for item endpoints.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, Field

RANDOM_PATH = "__RANDOM__"


class ItemType(str, enum.Enum):
    LINK = "link"
    CODE = "code"
    FILE = "file"


class CreateItemRequest(BaseModel):
    item_type: ItemType
    data: str = Field(..., max_length=10 * 1024 * 1024)
    # ISO-8601; parsed by the service so a bad value gets a precise message.
    expires_at: str | None = None
    max_visits: int | None = Field(default=None, ge=1)
    password: str | None = Field(default=None, min_length=1, max_length=128)
    extra_data: str | None = Field(default=None, max_length=255)


class ItemSimplified(BaseModel):
    id: str
    short_path: str
    item_type: ItemType
    visits: int
    created_at: datetime
    creator: str | None = None
    available: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ItemSimplified":
        return cls(
            id=str(row["id"]),
            short_path=str(row["short_path"]),
            item_type=ItemType(row["item_type"]),
            visits=int(row["visits"]),
            created_at=row["created_at"],
            creator=row.get("creator"),
            available=bool(row.get("available", True)),
        )


class ItemFull(ItemSimplified):
    data: str
    expires_at: datetime | None = None
    max_visits: int | None = None
    extra_data: str | None = None
    should_drop_at: datetime | None = None
    is_image: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ItemFull":
        base = ItemSimplified.from_row(row)
        return cls(
            **base.model_dump(),
            data=str(row["data"]),
            expires_at=row.get("expires_at"),
            max_visits=row.get("max_visits"),
            extra_data=row.get("extra_data"),
            should_drop_at=row.get("should_drop_at"),
            is_image=bool(row.get("is_image", False)),
        )


class AccessLogResponse(BaseModel):
    id: str
    item_id: str
    accessed_at: datetime
    path: str
    operation: str
    success: bool
    ip_address: str
    initiator: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AccessLogResponse":
        return cls(
            id=str(row["id"]),
            item_id=str(row["item_id"]),
            accessed_at=row["accessed_at"],
            path=str(row["path"]),
            operation=str(row["operation"]),
            success=bool(row["success"]),
            ip_address=str(row["ip_address"]),
            initiator=row.get("initiator"),
        )
