"""Identifiers, URLs and headers shared by the asset server routes."""

from __future__ import annotations

import re
import secrets
import string
import time
from urllib.parse import quote

from starlette.requests import Request

ASSET_STORE_NAME = "deck-assets"
SHARE_STORE_NAME = "shared-decks"
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"
NO_STORE_CACHE_CONTROL = "no-store"
SHARE_RECORD_VERSION = 1
DAY_MS = 24 * 60 * 60 * 1000

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9]+")


def now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def create_asset_id(filename: str | None = "asset") -> str:
    """Mint `<safe-name>-<base36 ms>-<random>`, e.g. ``logo-m1x2k9-a8f3zq``."""
    safe_name = _UNSAFE_NAME_CHARS.sub("-", (filename or "").lower()).strip("-")[:32]
    return f"{safe_name or 'asset'}-{to_base36(now_ms())}-{_random_suffix()}"


def create_share_id() -> str:
    return f"{to_base36(now_ms())}-{_random_suffix()}"


def _public_origin(request: Request) -> str | None:
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if not host:
        return None
    protocol = request.headers.get("x-forwarded-proto") or request.url.scheme or "https"
    return f"{protocol}://{host}"


def build_asset_url(request: Request, asset_id: str) -> str:
    path = f"/assets?id={quote(asset_id, safe='')}"
    origin = _public_origin(request)
    return f"{origin}{path}" if origin else path


def build_share_url(request: Request, share_id: str) -> str | None:
    origin = _public_origin(request)
    if origin is None:
        return None
    return f"{origin}/deck.html?share={share_id}"
