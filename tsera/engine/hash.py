"""
Deterministic content hashing.

Values are normalized into a canonical JSON form (keys sorted at every level,
dates as ISO-8601, large integers as decimal strings) before being digested
with SHA-256. The same primitive derives reproducible pseudo-timestamps for
migration filenames so that regenerating an unchanged migration never renames
it.
"""

from __future__ import annotations

import base64
import dataclasses
import hashlib
import json
import math
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any, Mapping

from .errors import HashError


CIRCULAR_MARKER = "[Circular]"

# Largest integer a JSON consumer can represent exactly as a double.
MAX_SAFE_INTEGER = 2**53 - 1


def hash_bytes(data: bytes) -> str:
    """SHA-256 of raw bytes as lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    """SHA-256 of UTF-8 encoded text as lowercase hex."""
    return hash_bytes(text.encode("utf-8"))


def stable_stringify(value: Any) -> str:
    """
    Serialize a value to compact JSON with deterministic key ordering.

    Raises:
        HashError: if the value (or anything nested in it) has no
            deterministic representation.
    """
    normalized = _normalize(value, set(), "$")
    return json.dumps(normalized, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def hash_value(value: Any, *, version: str, salt: str | None = None) -> str:
    """
    Hash an arbitrary value together with a scheme version and optional salt.

    Bumping ``version`` deliberately invalidates every previously computed hash.
    """
    envelope = {"salt": salt, "value": value, "version": version}
    return hash_text(stable_stringify(envelope))


def deterministic_timestamp(value: Any, *, version: str, salt: str | None = None) -> str:
    """
    Derive a sortable ``YYYYMMDDHHMMSS_ffffff`` stamp from a value's hash.

    The result is wall-clock independent: the same value always yields the
    same stamp.
    """
    digest = hash_value(value, version=version, salt=salt)

    def _slice(start: int, end: int) -> int:
        return int(digest[start:end], 16)

    year = 2000 + _slice(0, 4) % 100
    month = _slice(4, 6) % 12 + 1
    day = _slice(6, 8) % 28 + 1
    hour = _slice(8, 10) % 24
    minute = _slice(10, 12) % 60
    second = _slice(12, 14) % 60
    microsecond = _slice(14, 20) % 1_000_000

    return f"{year:04d}{month:02d}{day:02d}{hour:02d}{minute:02d}{second:02d}_{microsecond:06d}"


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="milliseconds")


def _normalize(value: Any, active: set[int], location: str) -> Any:
    # bool is an int subclass; keep it ahead of the integer branch
    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            return str(value)
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise HashError(value, location)
        return value

    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise HashError(value, location)
        return str(value)

    if isinstance(value, Enum):
        return _normalize(value.value, active, location)

    if isinstance(value, PurePath):
        return value.as_posix()

    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"__bytes__": base64.b64encode(bytes(value)).decode("ascii")}

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return _normalize_container(value, fields, active, location)

    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return _normalize_container(value, value, active, location)

    raise HashError(value, location)


def _normalize_container(owner: Any, value: Any, active: set[int], location: str) -> Any:
    marker = id(owner)
    if marker in active:
        return CIRCULAR_MARKER

    active.add(marker)
    try:
        if isinstance(value, Mapping):
            result: dict[str, Any] = {}
            for key in sorted(value, key=lambda k: _mapping_key(k, location)):
                result[key] = _normalize(value[key], active, f"{location}.{key}")
            return result

        if isinstance(value, (set, frozenset)):
            items = [_normalize(item, active, f"{location}[*]") for item in value]
            return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, allow_nan=False))

        return [_normalize(item, active, f"{location}[{i}]") for i, item in enumerate(value)]
    finally:
        active.discard(marker)


def _mapping_key(key: Any, location: str) -> str:
    if not isinstance(key, str):
        raise HashError(key, f"{location} (mapping key)")
    return key
