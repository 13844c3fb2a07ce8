"""Encode/decode Python values to/from Firestore REST API 'fields' format."""

import base64
import re
from datetime import datetime, timezone
from typing import Any

_SIMPLE_SEGMENT = re.compile(r"^[a-zA-Z_][a-zA-Z_0-9]*$")


def _encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc)
        return {"timestampValue": v.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": encode_fields(v)}}
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def encode_fields(data: dict[str, Any]) -> dict:
    """Convert a Python dict to a Firestore REST 'fields' map."""
    return {k: _encode_value(v) for k, v in data.items()}


def encode_document(name: str, data: dict[str, Any]) -> dict:
    """Firestore REST Document with full resource name."""
    return {"name": name, "fields": encode_fields(data)}


def _parse_timestamp(raw: str) -> datetime:
    # Firestore returns up to nanosecond precision; datetime keeps microseconds.
    base, _, rest = raw.rstrip("Z").partition(".")
    fraction = rest[:6].ljust(6, "0") if rest else "000000"
    return datetime.strptime(f"{base}.{fraction}", "%Y-%m-%dT%H:%M:%S.%f").replace(
        tzinfo=timezone.utc
    )


def _decode_value(obj: dict) -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return float(obj["doubleValue"])
    if "timestampValue" in obj:
        return _parse_timestamp(obj["timestampValue"])
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [_decode_value(x) for x in vals]
    if "mapValue" in obj:
        return decode_fields(obj["mapValue"].get("fields"))
    return None


def decode_fields(fields: dict | None) -> dict:
    """Convert a Firestore REST 'fields' map to a Python dict."""
    if not fields:
        return {}
    return {k: _decode_value(v) for k, v in fields.items()}


def document_id(name: str) -> str:
    """Last segment of a document resource name."""
    return name.rsplit("/", 1)[-1] if name else ""


def quote_field_path(path: tuple[str, ...]) -> str:
    """Dotted field path; segments that are not plain identifiers are backtick-quoted.

    ("workers-versioned", "zrnt") -> "`workers-versioned`.zrnt"
    """
    if not path:
        raise ValueError("empty field path")
    parts = []
    for segment in path:
        if _SIMPLE_SEGMENT.match(segment):
            parts.append(segment)
        else:
            escaped = segment.replace("\\", "\\\\").replace("`", "\\`")
            parts.append(f"`{escaped}`")
    return ".".join(parts)


def nest_field_paths(updates: dict[tuple[str, ...], Any]) -> dict[str, Any]:
    """Expand {(a, b): v} into {a: {b: v}} for a masked update body."""
    root: dict[str, Any] = {}
    for path, value in updates.items():
        target = root
        for segment in path[:-1]:
            child = target.get(segment)
            if not isinstance(child, dict):
                child = {}
                target[segment] = child
            target = child
        target[path[-1]] = value
    return root
