"""Abstract cache capability set implemented by every backend.

Backends:
    - FileCache: sharded files on local disk, background expiration sweep
    - MemoryCache: process-local dictionary, lazy expiration

Both expose the same operations so callers can swap them through the
adapter registry. Failures are raised as the typed errors in
:mod:`shardcache.cache.errors`; only ``exists`` and ``expire`` report
through a boolean.
"""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional, Union

from .codec import FlatRecord, flatten, is_record, unflatten
from .common import to_str
from .errors import NotFound, ShapeMismatch

if TYPE_CHECKING:
    from ..config import CacheOptions

Duration = Union[int, float, timedelta]


def duration_seconds(duration: Duration) -> int:
    """Convert an ``expire`` duration to whole seconds.

    Fractions round away from zero: a positive sub-second duration becomes
    1 rather than 0 (which would mean "never expires"), and a negative one
    stays negative so ``set`` rejects it.
    """
    seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
    if seconds > 0:
        return math.ceil(seconds)
    return math.floor(seconds)


def to_flat_record(data: Any) -> FlatRecord:
    """Turn a dataclass record or a mapping into a FlatRecord.

    Raises:
        ShapeMismatch: ``data`` is neither a record nor a mapping
    """
    if is_record(data):
        return flatten(data)
    if isinstance(data, Mapping):
        return {str(k): to_str(v) for k, v in data.items()}
    raise ShapeMismatch(f"Expected a dataclass record or mapping, got {type(data).__name__}")


class Cache(ABC):
    """Abstract base class for cache backends.

    Implementations must be safe to call from multiple threads of one
    process. Read-modify-write operations (``incr``, ``decr``, ``expire``,
    the hash family) are serialized per key by the backends shipped here.
    """

    @abstractmethod
    def start_and_gc(self, options: "CacheOptions") -> None:
        """Apply options and start background expiration if configured."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        """Store ``value`` under ``key``.

        Args:
            key: Cache key
            value: Scalar or JSON-serializable value
            ttl: Lifetime in seconds, 0 for no expiry
        """

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the value for ``key``.

        Scalars come back as text; structured values come back parsed.

        Raises:
            NotFound: key missing or expired
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``.

        Raises:
            NotFound: key missing
        """

    @abstractmethod
    def incr(self, key: str) -> None:
        """Increase an integer value by one."""

    @abstractmethod
    def decr(self, key: str) -> None:
        """Decrease an integer value by one."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """True if ``key`` is present (expiry not consulted)."""

    @abstractmethod
    def flush(self) -> None:
        """Delete every entry."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Delete a whole bucket (no ``_`` in key) or a single bucketed key."""

    @abstractmethod
    def expire(self, key: str, duration: Duration) -> bool:
        """Rewrite ``key`` with a new ttl; False if it could not be read."""

    @abstractmethod
    def size(self, bucket: Optional[str] = None) -> int:
        """Approximate stored bytes for the whole cache or one bucket."""

    @abstractmethod
    def collect(self, now: Optional[float] = None) -> int:
        """Remove expired entries now; returns how many were removed."""

    @abstractmethod
    def hgetall(self, key: str) -> Dict[str, str]:
        """Return the whole flat record stored under ``key``."""

    @abstractmethod
    def hmset(self, key: str, data: Any) -> None:
        """Store a record (or mapping) as a flat hash, replacing it."""

    @abstractmethod
    def hset(self, key: str, data: Mapping[str, Any]) -> bool:
        """Merge fields into the hash under ``key``."""

    @abstractmethod
    def hdel(self, key: str, field: str) -> None:
        """Remove one field from the hash under ``key``."""

    def hmscan(self, val: Mapping[str, str], dst: Any) -> Any:
        """Populate record ``dst`` from flat mapping ``val``."""
        return unflatten(val, dst)

    def hmget(self, key: str, fields: Iterable[str]) -> Dict[str, str]:
        """Return the subset of the hash under ``key`` named by ``fields``."""
        wanted = set(fields)
        return {k: v for k, v in self.hgetall(key).items() if k in wanted}

    def hget(self, key: str, field: str) -> str:
        """Return one field of the hash under ``key``.

        Raises:
            NotFound: key or field missing
        """
        data = self.hgetall(key)
        if field not in data:
            raise NotFound(key, f"has no field '{field}'")
        return data[field]

    def close(self) -> None:
        """Release background resources; the default has none."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
