"""Record codec: flatten tagged records into flat string maps and back.

Hash-style cache operations (``hmset``, ``hgetall``, ...) store a whole
record as a single entry whose value is a ``Dict[str, str]``. This module
converts between dataclass records and that flat form.

Records are plain dataclasses. A field takes part in the flat form when it
carries a tag in its metadata::

    @register_record
    @dataclass
    class Audit:
        created: Optional[datetime] = tagged("created", default=None)

    @register_record
    @dataclass
    class User:
        id: int = tagged("id", default=0)
        name: str = field(default="", metadata={"gorm": "column:user_name"})
        audit: Audit = embedded(default_factory=Audit)

Tag lookup uses the ``"cache"`` metadata key, then falls back to the
``column:`` entry of a legacy ``"gorm"`` metadata string. Fields without a
tag are ignored.

Field descriptors are computed once per record type from its type hints
(``describe``) and cached; values are never inspected to decide a kind.

The codec is lenient by contract: unparseable numbers become zero,
unsupported kinds are skipped, bad timestamps leave the field untouched.
``unflatten(..., strict=True)`` raises DecodeFailure instead, for tests.
"""
from __future__ import annotations

import dataclasses
import logging
import types
import typing
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

from .common import DATETIME_FORMAT, UInt, to_str
from .errors import DecodeFailure, ShapeMismatch

logger = logging.getLogger(__name__)

TAG_KEY = "cache"
LEGACY_TAG_KEY = "gorm"
EMBEDDED_KEY = "embedded"

FlatRecord = Dict[str, str]
R = TypeVar("R")

_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)


@dataclass(frozen=True)
class FieldDescriptor:
    """Static description of one record field.

    Attributes:
        name: Attribute name on the dataclass
        tag: Key used in the flat form (None when the field is untagged)
        kind: int, uint, float, bool, str, bytes, datetime, record or unsupported
        embedded: True when the field's own fields are merged into the parent
        optional: True for ``Optional[...]`` fields
        record_type: Dataclass type for embedded/record fields
        children: Descriptors of an embedded record's fields
    """

    name: str
    tag: Optional[str]
    kind: str
    embedded: bool = False
    optional: bool = False
    record_type: Optional[type] = None
    children: Tuple["FieldDescriptor", ...] = ()


_descriptors: Dict[type, Tuple[FieldDescriptor, ...]] = {}
_descriptor_lock = RLock()


def tagged(tag: str, **kwargs: Any) -> Any:
    """``dataclasses.field`` with a cache tag merged into its metadata."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TAG_KEY] = tag
    return dataclasses.field(metadata=metadata, **kwargs)


def embedded(**kwargs: Any) -> Any:
    """``dataclasses.field`` marking an embedded (flattened-in) record."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[EMBEDDED_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def parse_legacy_tag(spec: str) -> Optional[str]:
    """Extract the column name from a ``"column:name;type:..."`` string."""
    for part in spec.split(";"):
        key, _, value = part.partition(":")
        if key.strip().lower() == "column" and value.strip():
            return value.strip()
    return None


def resolve_tag(field: dataclasses.Field) -> Optional[str]:
    """Return the field's cache tag, falling back to the legacy namespace."""
    tag = field.metadata.get(TAG_KEY)
    if tag:
        return tag
    legacy = field.metadata.get(LEGACY_TAG_KEY)
    if legacy:
        return parse_legacy_tag(legacy)
    return None


def _unwrap_optional(hint: Any) -> Tuple[Any, bool]:
    if typing.get_origin(hint) in _UNION_TYPES:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1 and len(typing.get_args(hint)) == 2:
            return args[0], True
    return hint, False


def _kind_of(hint: Any) -> str:
    if not isinstance(hint, type):
        return "unsupported"
    if issubclass(hint, bool):
        return "bool"
    if issubclass(hint, UInt):
        return "uint"
    if issubclass(hint, int):
        return "int"
    if issubclass(hint, float):
        return "float"
    if issubclass(hint, str):
        return "str"
    if issubclass(hint, (bytes, bytearray)):
        return "bytes"
    if issubclass(hint, datetime):
        return "datetime"
    if dataclasses.is_dataclass(hint):
        return "record"
    return "unsupported"


def is_record(value: Any) -> bool:
    """True for dataclass instances (not dataclass types)."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def describe(record_type: type) -> Tuple[FieldDescriptor, ...]:
    """Return (building once) the descriptor table for a dataclass type.

    Raises:
        ShapeMismatch: ``record_type`` is not a dataclass
    """
    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise ShapeMismatch(f"{record_type!r} is not a dataclass record type")

    cached = _descriptors.get(record_type)
    if cached is not None:
        return cached

    with _descriptor_lock:
        if record_type in _descriptors:
            return _descriptors[record_type]

        hints = typing.get_type_hints(record_type)
        table = []
        for field in dataclasses.fields(record_type):
            hint, optional = _unwrap_optional(hints.get(field.name, field.type))
            kind = _kind_of(hint)
            if field.metadata.get(EMBEDDED_KEY) and kind == "record":
                table.append(
                    FieldDescriptor(
                        name=field.name,
                        tag=None,
                        kind=kind,
                        embedded=True,
                        optional=optional,
                        record_type=hint,
                        children=describe(hint),
                    )
                )
                continue
            table.append(
                FieldDescriptor(
                    name=field.name,
                    tag=resolve_tag(field),
                    kind=kind,
                    optional=optional,
                    record_type=hint if kind == "record" else None,
                )
            )

        descriptors = tuple(table)
        _descriptors[record_type] = descriptors
        logger.debug(f"Registered record type {record_type.__name__} with {len(descriptors)} fields")
        return descriptors


def register_record(record_type: Type[R]) -> Type[R]:
    """Class decorator that builds the descriptor table at import time."""
    describe(record_type)
    return record_type


def _flatten_into(record: Any, descriptors: Tuple[FieldDescriptor, ...], out: FlatRecord) -> None:
    for desc in descriptors:
        value = getattr(record, desc.name)

        if desc.embedded:
            if value is not None:
                # Later fields overwrite earlier ones on tag collisions
                _flatten_into(value, desc.children, out)
            continue

        if desc.tag is None or desc.kind in ("record", "unsupported"):
            continue

        if value is None:
            continue

        text = to_str(value)
        if text == "" and (desc.optional or desc.kind == "bytes"):
            continue
        out[desc.tag] = text


def flatten(record: Any) -> FlatRecord:
    """Flatten a tagged dataclass instance into ``{tag: text}``.

    Args:
        record: Dataclass instance

    Returns:
        Flat mapping in field declaration order

    Raises:
        ShapeMismatch: ``record`` is not a dataclass instance
    """
    if not is_record(record):
        raise ShapeMismatch(f"Cannot flatten value of type {type(record).__name__}; expected a dataclass record")
    out: FlatRecord = {}
    _flatten_into(record, describe(type(record)), out)
    return out


def _parse(desc: FieldDescriptor, text: str, strict: bool) -> Tuple[bool, Any]:
    """Parse ``text`` for ``desc``; returns (assign?, value)."""
    kind = desc.kind
    if kind in ("int", "uint"):
        try:
            number = int(text, 10)
            return True, UInt(number) if kind == "uint" else number
        except ValueError:
            if strict:
                raise DecodeFailure(f"Field '{desc.name}': {text!r} is not a valid {kind}")
            return True, UInt(0) if kind == "uint" else 0
    if kind == "float":
        try:
            return True, float(text)
        except ValueError:
            if strict:
                raise DecodeFailure(f"Field '{desc.name}': {text!r} is not a valid float")
            return True, 0.0
    if kind == "bool":
        return True, text == "true"
    if kind == "str":
        return True, text
    if kind == "bytes":
        return True, text.encode("utf-8")
    if kind == "datetime":
        try:
            return True, datetime.strptime(text.split("+")[0].strip(), DATETIME_FORMAT)
        except ValueError:
            if strict:
                raise DecodeFailure(f"Field '{desc.name}': {text!r} is not a valid timestamp")
            return False, None

    if strict:
        raise DecodeFailure(f"Field '{desc.name}': kind {kind} is not supported")
    logger.debug(f"Field '{desc.name}' of kind {kind} not supported, skipping")
    return False, None


def _scan_into(flat: Mapping[str, str], descriptors: Tuple[FieldDescriptor, ...], target: Any, strict: bool) -> None:
    for desc in descriptors:
        if desc.embedded:
            child = getattr(target, desc.name)
            if child is None:
                try:
                    child = desc.record_type()
                except TypeError:
                    logger.debug(f"Cannot construct embedded {desc.record_type.__name__} for '{desc.name}'")
                    continue
                setattr(target, desc.name, child)
            _scan_into(flat, desc.children, child, strict)
            continue

        if desc.tag is None:
            continue

        text = flat.get(desc.tag)
        if not text:
            continue

        assign, value = _parse(desc, text, strict)
        if assign:
            setattr(target, desc.name, value)


def unflatten(flat: Mapping[str, str], target: Any, *, strict: bool = False) -> Any:
    """Populate a record from a flat mapping.

    Args:
        flat: Mapping of tag to text, as produced by :func:`flatten`
        target: Mutable dataclass instance to fill in place, or a dataclass
            type whose no-argument construction supplies the zero values
        strict: Raise DecodeFailure instead of silently zeroing/skipping

    Returns:
        The populated record

    Raises:
        ShapeMismatch: target is not a mutable dataclass instance/type
    """
    if isinstance(target, type):
        describe(target)
        try:
            target = target()
        except TypeError as e:
            raise ShapeMismatch(f"Cannot construct {target.__name__} without arguments: {e}") from e

    if not is_record(target):
        raise ShapeMismatch(f"Cannot unflatten into {type(target).__name__}; expected a dataclass record")
    if type(target).__dataclass_params__.frozen:
        raise ShapeMismatch(f"Cannot unflatten into frozen dataclass {type(target).__name__}")

    _scan_into(flat, describe(type(target)), target, strict)
    return target
