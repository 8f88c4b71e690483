"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, Field

from users.permissions import Permission


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    avatar: str | None = None
    created_at: datetime
    descriptor: list[str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserResponse":
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            avatar=row.get("avatar"),
            created_at=row["created_at"],
            descriptor=Permission.from_descriptor(row.get("descriptor")).names(),
        )
