"""
Database schema, applied idempotently on startup.
"""

from __future__ import annotations

STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id          TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        email       TEXT NOT NULL UNIQUE,
        password    TEXT NOT NULL,
        avatar      TEXT,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
        descriptor  INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS items (
        id              TEXT PRIMARY KEY,
        short_path      TEXT NOT NULL UNIQUE,
        item_type       TEXT NOT NULL CHECK (item_type IN ('link', 'code', 'file')),
        data            TEXT NOT NULL,
        expires_at      TIMESTAMPTZ,
        max_visits      BIGINT,
        visits          BIGINT NOT NULL DEFAULT 0,
        password_hash   TEXT,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
        extra_data      TEXT,
        creator         TEXT,
        available       BOOLEAN NOT NULL DEFAULT true,
        should_drop_at  TIMESTAMPTZ,
        is_image        BOOLEAN NOT NULL DEFAULT false
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_items_creator ON items (creator, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_items_should_drop_at ON items (should_drop_at) WHERE available = false",
    """
    CREATE TABLE IF NOT EXISTS access_logs (
        id           TEXT PRIMARY KEY,
        item_id      TEXT NOT NULL REFERENCES items (id) ON DELETE CASCADE,
        accessed_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
        path         TEXT NOT NULL,
        operation    TEXT NOT NULL CHECK (operation IN ('get', 'set')),
        success      BOOLEAN NOT NULL,
        ip_address   TEXT NOT NULL,
        initiator    TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_access_logs_item ON access_logs (item_id, accessed_at DESC)",
)
