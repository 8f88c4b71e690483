"""
Identifier helpers.
"""

from __future__ import annotations

import secrets
import time
import uuid

ADMIN_USER_ID = "00000000-0000-0000-0000-000000000000"

RANDOM_PATH_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"
PASSWORD_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*().-"

_RAND_B_MASK = (1 << 62) - 1


def uuid7() -> uuid.UUID:
    """
    Time-ordered UUID (version 7): 48-bit unix millis, then random bits.
    """
    unix_ms = time.time_ns() // 1_000_000
    rand = secrets.randbits(74)
    value = (unix_ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= (rand >> 62) << 64
    value |= 0b10 << 62
    value |= rand & _RAND_B_MASK
    return uuid.UUID(int=value)


def new_id() -> str:
    return str(uuid7())


def guest_id() -> str:
    return f"guest-{uuid7()}"


def random_string(length: int, alphabet: str = PASSWORD_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def random_password() -> str:
    return random_string(16)


def random_path() -> str:
    return random_string(4, RANDOM_PATH_ALPHABET)
