"""HMAC signing primitives for the ShopBack SB1-HMAC-SHA256 scheme."""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

AUTH_SCHEME = "SB1-HMAC-SHA256"
DEFAULT_CONTENT_TYPE = "application/json"


def canonicalize(value: Any) -> Any:
    """
    Recursively sort mapping keys, keeping list order.

    Two structures with the same key-value pairs canonicalize to the same
    value regardless of their original key order.
    """
    if isinstance(value, Mapping):
        return {key: canonicalize(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def canonical_json(body: Mapping[str, Any]) -> bytes:
    """Serialize a body to compact, key-sorted UTF-8 JSON."""
    return json.dumps(
        canonicalize(body),
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


def content_digest(body: Mapping[str, Any] | None) -> str:
    """
    Hex SHA-256 of the canonical body.

    An empty body yields the empty string, which the upstream API reads as
    "no body". It is not the hash of an empty document.
    """
    if not body:
        return ""
    return hashlib.sha256(canonical_json(body)).hexdigest()


def format_date(timestamp: datetime) -> str:
    """Format a timestamp as `YYYY-MM-DDTHH:mm:ss.sssZ` in UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)
    millis = timestamp.microsecond // 1000
    return f"{timestamp.strftime('%Y-%m-%dT%H:%M:%S')}.{millis:03d}Z"


def build_string_to_sign(
    method: str,
    content_type: str,
    date: str,
    path: str,
    digest: str,
) -> str:
    """Join the five signed fields with newlines (no trailing newline)."""
    return "\n".join([method.upper(), content_type, date, path, digest])


def sign(secret: str, message: str) -> str:
    """Create a hex-encoded HMAC-SHA256 signature."""
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def build_authorization(access_key: str, signature: str) -> str:
    return f"{AUTH_SCHEME} {access_key}:{signature}"


def verify(expected: str, provided: str) -> bool:
    """Compare two signature strings in constant time."""
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))
