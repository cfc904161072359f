"""Redaction of credentials in request bodies before DEBUG logging."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "key",
        "apikey",
        "token",
        "idtoken",
        "id_token",
        "refreshtoken",
        "refresh_token",
        "accesstoken",
        "access_token",
        "customtoken",
        "authorization",
    }
)


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy of a JSON-like *value* with credential keys masked.

    Mapping keys are matched case-insensitively. Long strings, such as
    encoded document payloads, are cut to *max_string* characters.
    """
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>" if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
