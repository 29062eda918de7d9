"""Helpers for classifying asset store failures."""

from __future__ import annotations

import re
from typing import Any

import httpx

_STATUS_CODE_PATTERN = re.compile(r"\b(4\d{2}|5\d{2})\b")
_UNAVAILABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def extract_status_code(exc: BaseException) -> int | None:
    """Best-effort extraction of an HTTP status code from a store exception."""
    candidates: list[Any] = [getattr(exc, "status_code", None)]
    response = getattr(exc, "response", None)
    if response is not None:
        candidates.append(getattr(response, "status_code", None))

    for candidate in candidates:
        if isinstance(candidate, int):
            return candidate
        if isinstance(candidate, str) and candidate.strip().isdigit():
            return int(candidate.strip())

    for match in _STATUS_CODE_PATTERN.findall(str(exc)):
        value = int(match)
        if 400 <= value <= 599:
            return value
    return None


def is_service_unavailable_error(exc: BaseException) -> bool:
    """Return True when the failure is transport-level or a transient server status."""
    if isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError)):
        return True
    cause = exc.__cause__
    if cause is not None and cause is not exc and is_service_unavailable_error(cause):
        return True
    status_code = extract_status_code(exc)
    if status_code in _UNAVAILABLE_STATUS_CODES:
        return True
    message = f"{exc.__class__.__name__} {exc}".lower()
    return "service unavailable" in message or "temporarily unavailable" in message


def error_message_from_response(response: httpx.Response, default: str) -> str:
    """Pull a human message out of a JSON error body."""
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default
