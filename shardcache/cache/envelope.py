"""Binary entry envelope: the on-disk unit of the file cache.

Each leaf file holds exactly one envelope::

    offset  size  field
    0       4     magic  b"SCE1"
    4       8     created_at  (int64, unix seconds, big-endian)
    12      8     ttl         (int64, seconds, 0 = never expires)
    20      1     kind code   (see KIND_CODES)
    21      n     payload

Payload encoding per kind:
    int / uint  decimal ASCII digits
    float       ``repr()`` text
    bool        ``b"1"`` or ``b"0"``
    str         UTF-8 text
    bytes       raw bytes
    json        JSON document (every non-scalar value)

The format carries no version negotiation; changing it invalidates
existing stores.
"""
from __future__ import annotations

import dataclasses
import json
import struct
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from .common import UInt, scalar_kind, to_str
from .errors import DecodeFailure, ShapeMismatch

MAGIC = b"SCE1"
HEADER = struct.Struct(">4sqqB")

KIND_CODES: Dict[str, int] = {
    "int": 1,
    "uint": 2,
    "float": 3,
    "bool": 4,
    "str": 5,
    "bytes": 6,
    "json": 7,
}
_KINDS_BY_CODE = {code: kind for kind, code in KIND_CODES.items()}


@dataclass
class Entry:
    """A cached value with its creation time and time-to-live.

    Attributes:
        value: Scalar value, or the structured value a JSON payload decodes to
        created_at: Unix seconds when the entry was written
        ttl: Lifetime in seconds; 0 means the entry never expires
    """

    value: Any
    created_at: int = dataclasses.field(default_factory=lambda: int(time.time()))
    ttl: int = 0

    @property
    def kind(self) -> str:
        return scalar_kind(self.value) or "json"

    def is_expired(self, now: Optional[float] = None) -> bool:
        return is_expired(self, now)


def is_expired(entry: Entry, now: Optional[float] = None) -> bool:
    """True iff ``ttl > 0`` and ``now - created_at >= ttl``."""
    if entry.ttl <= 0:
        return False
    current = int(time.time()) if now is None else now
    return current - entry.created_at >= entry.ttl


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if hasattr(value, "to_dict") and callable(getattr(value, "to_dict")):
        return value.to_dict()
    if isinstance(value, (datetime, date, bytes, bytearray)):
        return to_str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def pack_value(value: Any) -> bytes:
    """Encode a value as ``kind code + payload`` bytes (no header)."""
    kind = scalar_kind(value) or "json"
    if kind in ("int", "uint"):
        payload = str(int(value)).encode("ascii")
    elif kind == "float":
        payload = repr(value).encode("ascii")
    elif kind == "bool":
        payload = b"1" if value else b"0"
    elif kind == "str":
        payload = value.encode("utf-8")
    elif kind == "bytes":
        payload = bytes(value)
    else:
        try:
            payload = json.dumps(value, default=_json_default, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ShapeMismatch(f"Cannot serialize value of type {type(value).__name__}: {e}") from e
    return bytes([KIND_CODES[kind]]) + payload


def unpack_value(kind: str, payload: bytes) -> Any:
    """Inverse of :func:`pack_value` for a known kind."""
    try:
        if kind == "int":
            return int(payload.decode("ascii"))
        if kind == "uint":
            return UInt(int(payload.decode("ascii")))
        if kind == "float":
            return float(payload.decode("ascii"))
        if kind == "bool":
            if payload not in (b"0", b"1"):
                raise ValueError(f"invalid bool payload {payload!r}")
            return payload == b"1"
        if kind == "str":
            return payload.decode("utf-8")
        if kind == "bytes":
            return payload
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise DecodeFailure(f"Corrupt {kind} payload: {e}") from e


def encode(entry: Entry) -> bytes:
    """Serialize an entry to its binary envelope.

    Raises:
        ShapeMismatch: the value is neither a scalar nor JSON-serializable
    """
    packed = pack_value(entry.value)
    header = HEADER.pack(MAGIC, int(entry.created_at), int(entry.ttl), packed[0])
    return header + packed[1:]


def decode(data: bytes) -> Entry:
    """Parse a binary envelope back into an :class:`Entry`.

    Raises:
        DecodeFailure: truncated data, bad magic, unknown kind or bad payload
    """
    if len(data) < HEADER.size:
        raise DecodeFailure(f"Envelope truncated: {len(data)} bytes < {HEADER.size}-byte header")

    magic, created_at, ttl, code = HEADER.unpack_from(data)
    if magic != MAGIC:
        raise DecodeFailure(f"Bad envelope magic {magic!r}")

    kind = _KINDS_BY_CODE.get(code)
    if kind is None:
        raise DecodeFailure(f"Unknown value kind code {code}")

    value = unpack_value(kind, data[HEADER.size:])
    return Entry(value=value, created_at=created_at, ttl=ttl)
