"""
Pydantic schemas for user-management endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    avatar: str | None = Field(default=None, max_length=2048)
    # Permission names, e.g. ["Link", "Code"].
    descriptor: list[str] = Field(default_factory=list)
