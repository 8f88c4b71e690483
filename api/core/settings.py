"""
Service settings.

Values come from the process environment, optionally seeded from a
dotenv-style config file (`spectra.env` by default, or the path in
`SPECTRA_CONFIG`). Variables already set in the environment win over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = "spectra.env"
MIN_COOKIE_KEY_BYTES = 64
DEFAULT_MAX_UPLOAD_BYTES = 1024 * 1024 * 1024  # 1 GiB


class SettingsError(RuntimeError):
    pass


def config_path() -> Path:
    return Path(os.environ.get("SPECTRA_CONFIG", DEFAULT_CONFIG_PATH).strip() or DEFAULT_CONFIG_PATH)


def load_config_file(path: Path | None = None) -> bool:
    """
    Load `KEY=value` pairs into the environment. Returns False if the file is missing.
    """
    path = path or config_path()
    if not path.is_file():
        return False
    return load_dotenv(path, override=False)


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SettingsError(f"{name} must be an integer, got {raw!r}.") from exc


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_pool_max_size: int
    data_dir: Path
    cookie_key: str
    refresh_cron: str
    token_sweep_minutes: int
    host: str
    port: int
    domain: str
    turnstile_enabled: bool
    turnstile_site_key: str
    turnstile_secret_key: str
    max_upload_bytes: int
    log_level: str


def validate(settings: Settings) -> Settings:
    if not settings.database_url:
        raise SettingsError("DATABASE_URL is not set.")
    if len(settings.cookie_key.encode("utf-8")) < MIN_COOKIE_KEY_BYTES:
        raise SettingsError(
            f"COOKIE_KEY must be at least {MIN_COOKIE_KEY_BYTES} bytes. "
            "Run `spectra generate-cookie-key` to create one."
        )
    if settings.db_pool_max_size <= 0:
        raise SettingsError("DB_POOL_MAX_SIZE must be > 0.")
    if settings.token_sweep_minutes <= 0:
        raise SettingsError("TOKEN_SWEEP_MINUTES must be > 0.")
    if settings.max_upload_bytes <= 0:
        raise SettingsError("MAX_UPLOAD_BYTES must be > 0.")
    if settings.turnstile_enabled and not settings.turnstile_secret_key:
        raise SettingsError("TURNSTILE_SECRET_KEY is required when Turnstile is enabled.")
    try:
        CronTrigger.from_crontab(settings.refresh_cron)
    except ValueError as exc:
        raise SettingsError(f"REFRESH_CRON is not a valid cron expression: {exc}") from exc
    return settings


def from_env() -> Settings:
    settings = Settings(
        database_url=_env_str("DATABASE_URL"),
        db_pool_max_size=_env_int("DB_POOL_MAX_SIZE", 5),
        data_dir=Path(_env_str("DATA_DIR", "data") or "data"),
        cookie_key=_env_str("COOKIE_KEY"),
        refresh_cron=_env_str("REFRESH_CRON", "0 * * * *") or "0 * * * *",
        token_sweep_minutes=_env_int("TOKEN_SWEEP_MINUTES", 30),
        host=_env_str("HOST", "127.0.0.1") or "127.0.0.1",
        port=_env_int("PORT", 3000),
        domain=_env_str("DOMAIN", "localhost") or "localhost",
        turnstile_enabled=_env_bool("TURNSTILE_ENABLED"),
        turnstile_site_key=_env_str("TURNSTILE_SITE_KEY"),
        turnstile_secret_key=_env_str("TURNSTILE_SECRET_KEY"),
        max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
    return validate(settings)


def load() -> Settings:
    load_config_file()
    return from_env()
