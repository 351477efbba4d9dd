"""Signed photo evidence links.

Links point at the inspection photo endpoint. When a signing secret is configured
the URL carries an expiry and an HMAC-SHA256 token over
``inspection_id|photo_id|expires``.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional
from urllib.parse import urlencode

from config import ReportEngineConfig

PHOTO_ENDPOINT = "/api/inspectionPhoto"
DEFAULT_TTL_SECONDS = 7 * 86400


def _token(secret: str, inspection_id: str, photo_id: str, expires: int) -> str:
    payload = f"{inspection_id}|{photo_id}|{expires}"
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_photo_url(
    inspection_id: str,
    photo_id: str,
    base_url: Optional[str] = None,
    secret: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
    issued_at: Optional[float] = None,
) -> str:
    base = base_url or ReportEngineConfig.PHOTO_BASE_URL
    if not base:
        raise ValueError("Photo base URL is not configured")
    if not inspection_id or not photo_id:
        raise ValueError("inspection_id and photo_id are required to sign a photo link")

    params = {"inspection_id": inspection_id, "photo_id": photo_id}
    if secret:
        ttl = ttl_seconds if ttl_seconds is not None else ReportEngineConfig.PHOTO_LINK_TTL_SECONDS or DEFAULT_TTL_SECONDS
        now = issued_at if issued_at is not None else time.time()
        expires = int(now) + int(ttl)
        params["expires"] = str(expires)
        params["token"] = _token(secret, inspection_id, photo_id, expires)
    return f"{base.rstrip('/')}{PHOTO_ENDPOINT}?{urlencode(params)}"


def verify_photo_token(
    secret: str,
    inspection_id: str,
    photo_id: str,
    expires: int,
    token: str,
    now: Optional[float] = None,
) -> bool:
    current = now if now is not None else time.time()
    if int(expires) < int(current):
        return False
    expected = _token(secret, inspection_id, photo_id, int(expires))
    return hmac.compare_digest(expected, token or "")
