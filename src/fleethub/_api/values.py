"""Typed value codec for the document REST API.

Documents travel as ``{"fields": {name: Value}}`` where each ``Value`` is a
single-key object naming its type, e.g. ``{"stringValue": "Huracán"}`` or
``{"integerValue": "2023"}`` (64-bit integers are sent as strings).
"""

from __future__ import annotations

import base64
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a typed ``Value`` object."""
    if value is None:
        return {"nullValue": None}
    # bool is an int subclass; check it first.
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        if math.isnan(value):
            return {"doubleValue": "NaN"}
        if math.isinf(value):
            return {"doubleValue": "Infinity" if value > 0 else "-Infinity"}
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return {"timestampValue": value.astimezone(UTC).isoformat().replace("+00:00", "Z")}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a document value")


def encode_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Encode a mapping as a ``fields`` object."""
    return {str(key): encode_value(item) for key, item in data.items()}


def _decode_double(raw: Any) -> float:
    if isinstance(raw, str):
        return float(raw.replace("Infinity", "inf"))
    return float(raw)


def decode_value(value: Mapping[str, Any]) -> Any:
    """Decode a typed ``Value`` object into a plain Python value.

    Timestamps are returned as aware UTC datetimes; references and geo
    points are returned in their wire form.
    """
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return _decode_double(value["doubleValue"])
    if "stringValue" in value:
        return str(value["stringValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields") or {})
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values") or []]
    if "referenceValue" in value:
        return str(value["referenceValue"])
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    raise ValueError(f"Unknown document value type: {sorted(value)}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Decode a ``fields`` object into a plain dict."""
    return {str(key): decode_value(item) for key, item in fields.items()}


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp with optional nanosecond precision."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # fromisoformat handles at most microseconds.
    head, sep, frac_and_tz = value.partition(".")
    if sep:
        digits = ""
        rest = ""
        for idx, ch in enumerate(frac_and_tz):
            if not ch.isdigit():
                rest = frac_and_tz[idx:]
                break
            digits += ch
        value = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
