"""
Deterministic hashing utilities.

Used to fingerprint ingested event payloads and the effective configuration.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """Serialize the non-JSON types that appear in event payloads."""
    if isinstance(obj, Decimal):
        return format(obj.normalize(), "f")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Sorted-key, whitespace-free JSON."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_safe(data: Any) -> Any:
    """Round-trip through canonical JSON so Decimals, dates and UUIDs become strings."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: Any) -> str:
    """Hex SHA-256 of the canonical JSON form of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
