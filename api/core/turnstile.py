"""
Cloudflare Turnstile HTTP client helpers.

Used endpoint:
- POST /turnstile/v0/siteverify  -> {"success": bool, "error-codes": [...]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

TURNSTILE_BASE_URL = "https://challenges.cloudflare.com"


# Upstream failures are explicit and separable from a rejected token.
class TurnstileError(RuntimeError):
    pass


@dataclass(frozen=True)
class Verification:
    success: bool
    error_codes: list[str] = field(default_factory=list)


async def verify_token(
    *,
    secret_key: str,
    token: str,
    remote_ip: str | None = None,
    base_url: str = TURNSTILE_BASE_URL,
    timeout_s: float = 10.0,
) -> Verification:
    """
    Ask Turnstile whether `token` was issued for our site key.
    """
    secret_key = (secret_key or "").strip()
    if not secret_key:
        raise TurnstileError("Turnstile secret key is empty.")
    token = (token or "").strip()
    if not token:
        return Verification(success=False, error_codes=["missing-input-response"])

    form: dict[str, str] = {"secret": secret_key, "response": token}
    if remote_ip:
        form["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s) as client:
            resp = await client.post("/turnstile/v0/siteverify", data=form)
    except httpx.HTTPError as exc:
        raise TurnstileError(f"Turnstile request failed: {exc}") from exc

    if resp.status_code != 200:
        body = resp.text[:300]
        raise TurnstileError(f"Turnstile request failed: {resp.status_code} {body}")

    data: dict[str, Any] = resp.json()
    codes = data.get("error-codes")
    return Verification(
        success=bool(data.get("success", False)),
        error_codes=[str(c) for c in codes] if isinstance(codes, list) else [],
    )
