"""Process-local cache adapter.

Entries are kept as encoded envelopes in an OrderedDict, so values go
through exactly the same serialization as the file adapter: what one backend
accepts and returns, the other does too.
"""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from threading import RLock
from typing import Any, Dict, Mapping, Optional

from ..config import CacheOptions
from .base import Cache, Duration, duration_seconds, to_flat_record
from .common import decr_value, incr_value, to_str
from .envelope import Entry, decode, encode
from .errors import CacheError, NotFound, ShapeMismatch
from .reaper import Reaper
from .sharding import BUCKET_DELIMITER, bucket_of, validate_bucket

logger = logging.getLogger(__name__)


class MemoryCache(Cache):
    """Thread-safe in-memory cache with LRU eviction.

    Thread Safety:
        All operations are protected by one RLock, which also serializes the
        read-modify-write operations.

    Eviction Policy:
        - ``max_size_mb`` of 0 means unbounded
        - reads move an entry to the end of the access order
        - writes evict least recently used entries until the new one fits

    Expiration:
        Expired entries are dropped when read, and by the Reaper when
        ``start_and_gc`` is given an interval >= 1.

    Attributes:
        max_size_bytes (int): Capacity in bytes, 0 when unbounded
        interval (int): Reaper interval in seconds, 0 when disabled
        reaper (Reaper): Background sweeper, None when disabled
    """

    def __init__(self, max_size_mb: int = 0, interval: int = 0):
        """Initialize in-memory cache.

        Args:
            max_size_mb: Maximum cache size in MB (0 for unbounded)
            interval: Reaper interval in seconds (0 disables the Reaper)
        """
        if max_size_mb < 0:
            raise ValueError(f"max_size_mb must be >= 0, got {max_size_mb}")
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self._store: "OrderedDict[str, bytes]" = OrderedDict()
        self._current_size = 0
        self._lock = RLock()
        self.interval = 0
        self.reaper: Optional[Reaper] = None

        if interval:
            self.start_and_gc(CacheOptions(adapter="memory", interval=interval))

        logger.info(f"Initialized MemoryCache with max_size={max_size_mb}MB")

    def start_and_gc(self, options: CacheOptions) -> None:
        """Start the Reaper when ``options.interval`` >= 1.

        ``adapter_config`` has no meaning for this adapter and is ignored.
        """
        self.close()
        self.interval = options.interval
        if self.interval >= 1:
            self.reaper = Reaper(self.collect, self.interval, name=f"memory@{id(self):x}")
            self.reaper.start()

    def close(self) -> None:
        if self.reaper is not None:
            self.reaper.stop()
            self.reaper = None

    # ----- storage -----

    def _put(self, key: str, data: bytes) -> None:
        if self.max_size_bytes and len(data) > self.max_size_bytes:
            raise CacheError(
                f"Entry for '{key}' ({len(data)} bytes) exceeds cache capacity"
            )
        with self._lock:
            self._discard(key)
            while self.max_size_bytes and self._current_size + len(data) > self.max_size_bytes:
                self._evict_oldest()
            self._store[key] = data
            self._current_size += len(data)

    def _discard(self, key: str) -> bool:
        data = self._store.pop(key, None)
        if data is None:
            return False
        self._current_size -= len(data)
        return True

    def _evict_oldest(self) -> None:
        key, data = self._store.popitem(last=False)
        self._current_size -= len(data)
        logger.debug(f"Evicted {key} from MemoryCache")

    def _read_live(self, key: str) -> Entry:
        with self._lock:
            data = self._store.get(key)
            if data is None:
                raise NotFound(key)
            entry = decode(data)
            if entry.is_expired():
                self._discard(key)
                raise NotFound(key, "has expired")
            self._store.move_to_end(key)
            return entry

    # ----- core operations -----

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self._put(key, encode(Entry(value=value, ttl=int(ttl))))

    def get(self, key: str) -> Any:
        entry = self._read_live(key)
        if entry.kind == "json":
            return entry.value
        return to_str(entry.value)

    def delete(self, key: str) -> None:
        with self._lock:
            if not self._discard(key):
                raise NotFound(key)

    def incr(self, key: str) -> None:
        with self._lock:
            entry = self._read_live(key)
            self.set(key, incr_value(key, entry.value), entry.ttl)

    def decr(self, key: str) -> None:
        with self._lock:
            entry = self._read_live(key)
            self.set(key, decr_value(key, entry.value), entry.ttl)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._store

    def flush(self) -> None:
        with self._lock:
            self._store.clear()
            self._current_size = 0
        logger.info("Flushed MemoryCache")

    def _bucket_keys(self, bucket: str):
        return [k for k in self._store if bucket_of(k) == bucket]

    def clear(self, key: str) -> None:
        """Delete every ``<bucket>_*`` key, or one bucketed key.

        Raises:
            ValueError: invalid bucket name
            NotFound: a bucketed key that does not exist
        """
        if BUCKET_DELIMITER in key:
            self.delete(key)
            return
        bucket = validate_bucket(key)
        with self._lock:
            for k in self._bucket_keys(bucket):
                self._discard(k)

    def expire(self, key: str, duration: Duration) -> bool:
        with self._lock:
            try:
                entry = self._read_live(key)
                self.set(key, entry.value, duration_seconds(duration))
            except (CacheError, ValueError) as e:
                logger.debug(f"expire({key}) failed: {e}")
                return False
        return True

    def size(self, bucket: Optional[str] = None) -> int:
        """Encoded bytes held for the whole cache or for one bucket."""
        with self._lock:
            if not bucket:
                return self._current_size
            return sum(len(self._store[k]) for k in self._bucket_keys(validate_bucket(bucket)))

    def collect(self, now: Optional[float] = None) -> int:
        """Drop every expired entry; returns how many were removed."""
        reference = int(time.time()) if now is None else now
        with self._lock:
            expired = [k for k, data in self._store.items() if decode(data).is_expired(reference)]
            for k in expired:
                self._discard(k)
        return len(expired)

    # ----- hash emulation -----

    def hgetall(self, key: str) -> Dict[str, str]:
        value = self._read_live(key).value
        if not isinstance(value, dict):
            raise ShapeMismatch(f"cache key '{key}' does not hold a hash")
        return {k: to_str(v) for k, v in value.items()}

    def hmset(self, key: str, data: Any) -> None:
        if not key:
            raise ValueError("hmset requires a non-empty key")
        self.set(key, to_flat_record(data), 0)

    def hset(self, key: str, data: Mapping[str, Any]) -> bool:
        if not isinstance(data, Mapping):
            raise ShapeMismatch(f"hset data must be a mapping, got {type(data).__name__}")
        with self._lock:
            try:
                current = self.hgetall(key)
            except NotFound:
                current = {}
            current.update({str(k): to_str(v) for k, v in data.items()})
            self.set(key, current, 0)
        return True

    def hdel(self, key: str, field: str) -> None:
        with self._lock:
            try:
                current = self.hgetall(key)
            except NotFound:
                return
            current.pop(field, None)
            self.set(key, current, 0)
