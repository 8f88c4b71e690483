"""
Permission model.

Permissions are stored as an integer bitmask in `users.descriptor`; the bit
values below are part of the storage format and must not change.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping

from core.ids import ADMIN_USER_ID


class Permission(enum.IntFlag):
    NONE = 0
    MANAGE = 0b0001
    LINK = 0b0010
    CODE = 0b0100
    FILE = 0b1000

    @classmethod
    def all(cls) -> "Permission":
        return cls.MANAGE | cls.LINK | cls.CODE | cls.FILE

    @classmethod
    def from_descriptor(cls, descriptor: int | None) -> "Permission":
        return cls(int(descriptor or 0) & int(cls.all()))

    @classmethod
    def from_names(cls, names: list[str]) -> "Permission":
        result = cls.NONE
        for name in names:
            try:
                result |= cls[name.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown permission: {name!r}") from exc
        return result

    @classmethod
    def for_item_type(cls, item_type: str) -> "Permission":
        return {"link": cls.LINK, "code": cls.CODE, "file": cls.FILE}[item_type]

    def names(self) -> list[str]:
        return [p.name.capitalize() for p in (Permission.MANAGE, Permission.LINK, Permission.CODE, Permission.FILE) if p in self]


@dataclass(frozen=True)
class Principal:
    """
    The caller of a request: a logged-in user or a verified guest.
    """

    user_id: str
    permissions: Permission = Permission.NONE
    is_admin: bool = False
    temporary: bool = False

    @classmethod
    def from_user(cls, user: Mapping[str, Any]) -> "Principal":
        user_id = str(user["id"])
        return cls(
            user_id=user_id,
            permissions=Permission.from_descriptor(user.get("descriptor")),
            is_admin=user_id == ADMIN_USER_ID,
        )

    @classmethod
    def guest(cls, guest_id: str) -> "Principal":
        return cls(user_id=guest_id, temporary=True)

    @property
    def can_manage(self) -> bool:
        return self.is_admin or Permission.MANAGE in self.permissions

    def can_create(self, item_type: str) -> bool:
        if self.temporary:
            return False
        return self.can_manage or Permission.for_item_type(item_type) in self.permissions

    def owns(self, item: Mapping[str, Any]) -> bool:
        creator = item.get("creator")
        return creator is not None and str(creator) == self.user_id

    def can_modify(self, item: Mapping[str, Any]) -> bool:
        if self.temporary:
            return self.owns(item)
        return self.can_manage or self.owns(item)

    def can_read_protected(self, item: Mapping[str, Any]) -> bool:
        if self.temporary:
            return False
        return self.is_admin or self.owns(item)
