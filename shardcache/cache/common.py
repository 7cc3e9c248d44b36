"""
Common scalar-value utilities shared by cache backends and the record codec.

This module decides which Python values the cache treats as scalars, how a
scalar is rendered as text, and how counters are incremented/decremented.

Components:
    - UInt: int subclass marking a value of the unsigned integer family
    - scalar_kind: classify a value into one of the scalar kind codes
    - is_scalar: True for values stored as-is inside an entry envelope
    - to_str: canonical text rendering used by get(), hgetall() and the codec
    - incr_value / decr_value: counter arithmetic with kind preservation

Scalar kinds:
    int    - signed integers (``bool`` excluded)
    uint   - ``UInt`` instances
    float  - floats
    bool   - booleans
    str    - text
    bytes  - ``bytes`` / ``bytearray``

Anything else is a structured value; backends serialize it to JSON bytes
before storing.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .errors import TypeMismatch, Underflow

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

SCALAR_KINDS = ("int", "uint", "float", "bool", "str", "bytes")


class UInt(int):
    """Integer of the unsigned family.

    Python has a single unbounded ``int``; ``UInt`` keeps the unsigned
    distinction so ``decr`` can refuse to go below zero.
    """

    def __new__(cls, value: Any = 0) -> "UInt":
        obj = super().__new__(cls, value)
        if obj < 0:
            raise ValueError(f"UInt cannot be negative: {int(obj)}")
        return obj

    def __repr__(self) -> str:
        return f"UInt({int(self)})"


def scalar_kind(value: Any) -> Optional[str]:
    """Return the scalar kind code for ``value``, or None if not a scalar.

    Order matters: ``bool`` and ``UInt`` are both ``int`` subclasses.
    """
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, UInt):
        return "uint"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    return None


def is_scalar(value: Any) -> bool:
    """True when ``value`` is stored directly rather than JSON-serialized."""
    return scalar_kind(value) is not None


def format_float(value: float) -> str:
    """Render a float in plain decimal notation at shortest full precision.

    ``repr`` already yields the shortest round-tripping digits; Decimal
    re-renders them without an exponent (``1e20`` -> ``100000000000000000000``).
    """
    if not math.isfinite(value):
        return repr(value)
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def to_str(value: Any) -> str:
    """Render a value as text the way every read path reports scalars.

    Args:
        value: Any value; scalars get a canonical form, others use ``str()``

    Returns:
        ``"true"``/``"false"`` for booleans, base-10 digits for integers,
        plain decimal for floats, UTF-8 text for bytes, verbatim strings,
        ``"YYYY-MM-DD HH:MM:SS"`` for datetimes.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    return str(value)


def _check_counter(key: str, value: Any) -> str:
    kind = scalar_kind(value)
    if kind not in ("int", "uint"):
        raise TypeMismatch(f"cache key '{key}' holds a {kind or type(value).__name__} value, not an integer")
    return kind


def incr_value(key: str, value: Any) -> int:
    """Return ``value + 1`` keeping its integer kind.

    Raises:
        TypeMismatch: value is not of the int or uint family
    """
    if _check_counter(key, value) == "uint":
        return UInt(value + 1)
    return int(value) + 1


def decr_value(key: str, value: Any) -> int:
    """Return ``value - 1`` keeping its integer kind.

    Raises:
        TypeMismatch: value is not of the int or uint family
        Underflow: value is an unsigned zero
    """
    if _check_counter(key, value) == "uint":
        if value == 0:
            raise Underflow(f"cache key '{key}' is an unsigned zero and cannot be decremented")
        return UInt(value - 1)
    return int(value) - 1
