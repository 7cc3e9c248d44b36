"""Filesystem-backed cache adapter.

Every key lives in its own file under the store root (see
:mod:`shardcache.cache.sharding` for the layout); every file holds one binary
entry envelope (see :mod:`shardcache.cache.envelope`).

Behaviour worth knowing:
    - ``get`` removes an expired entry on sight and raises NotFound
    - ``exists`` only checks the path; it does not look at expiry
    - ``incr``/``decr``/``expire`` rewrite the entry through ``set``, which
      stamps a fresh ``created_at``: the ttl window restarts on every
      counter change, so a busy short-ttl counter never expires
    - hash operations store the whole FlatRecord as one entry and rewrite it
      wholesale on every field change
    - read-modify-write operations hold a per-key lock; there is no
      cross-process locking

Example:
    ```python
    cache = FileCache("./runtime/cache", interval=60)
    cache.set("users_42", {"name": "Ann"})
    cache.get("users_42")        # {'name': 'Ann'}
    cache.clear("users")         # drops every users_* key
    cache.close()
    ```
"""
from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Union

from ..config import CacheOptions
from ..utils.paths import atomic_write_bytes, ensure_subpath, remove_tree, resolve_root, tree_size
from .base import Cache, Duration, duration_seconds, to_flat_record
from .common import decr_value, incr_value, to_str
from .envelope import Entry, decode, encode
from .errors import CacheError, IOFailure, NotFound, ShapeMismatch
from .locks import KeyLocks
from .reaper import Reaper, sweep_expired
from .sharding import BUCKET_DELIMITER, path_for, validate_bucket

logger = logging.getLogger(__name__)


class FileCache(Cache):
    """Cache adapter storing one envelope file per key.

    Attributes:
        root_path (Path): Resolved store root (None until started)
        interval (int): Reaper interval in seconds, 0 when disabled
        reaper (Reaper): Background sweeper, None when disabled
    """

    def __init__(self, root_path: Optional[Union[str, Path]] = None, interval: int = 0):
        """Create a file cache, optionally starting it right away.

        Args:
            root_path: Store root; when given, ``start_and_gc`` runs with it
            interval: Reaper interval in seconds (0 disables the Reaper)
        """
        self._lock = Lock()
        self._key_locks = KeyLocks()
        self.root_path: Optional[Path] = None
        self.interval = 0
        self.reaper: Optional[Reaper] = None

        if root_path is not None:
            self.start_and_gc(
                CacheOptions(adapter="file", adapter_config=str(root_path), interval=interval)
            )

    def start_and_gc(self, options: CacheOptions) -> None:
        """Resolve and create the root directory, then start the Reaper.

        Args:
            options: ``adapter_config`` is the root path spec, resolved against
                the working directory unless absolute; ``interval`` >= 1
                starts the Reaper

        Raises:
            IOFailure: the root directory cannot be created
        """
        with self._lock:
            self.root_path = resolve_root(options.adapter_config)
            self.interval = options.interval
            previous, self.reaper = self.reaper, None

        if previous is not None:
            previous.stop()

        try:
            self.root_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(f"Cannot create cache root {self.root_path}: {e}") from e

        if self.interval >= 1:
            self.reaper = Reaper.for_root(self.root_path, self.interval)
            self.reaper.start()

        logger.info(f"Initialized FileCache at {self.root_path} (interval={self.interval}s)")

    def close(self) -> None:
        """Stop the Reaper; the store itself needs no teardown."""
        if self.reaper is not None:
            self.reaper.stop()
            self.reaper = None

    @property
    def root(self) -> Path:
        if self.root_path is None:
            raise CacheError("FileCache is not started; call start_and_gc() first")
        return self.root_path

    def path_for(self, key: str) -> Path:
        """Backing file path for ``key``."""
        return path_for(self.root, key)

    # ----- envelope IO -----

    def _read(self, key: str) -> Entry:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise NotFound(key) from None
        except OSError as e:
            raise IOFailure(f"Cannot read {path}: {e}") from e
        return decode(data)

    def _read_live(self, key: str) -> Entry:
        """Read an entry, deleting it and raising NotFound if expired."""
        entry = self._read(key)
        if entry.is_expired():
            self._unlink(key, missing_ok=True)
            logger.debug(f"Expired entry removed for {key}")
            raise NotFound(key, "has expired")
        return entry

    def _unlink(self, key: str, missing_ok: bool = False) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            if not missing_ok:
                raise NotFound(key) from None
        except OSError as e:
            raise IOFailure(f"Cannot remove {path}: {e}") from e

    # ----- core operations -----

    def set(self, key: str, value: Any, ttl: int = 0) -> None:
        """Write ``value`` under ``key``, replacing any existing entry.

        Non-scalar values are stored as JSON.

        Raises:
            ValueError: negative ttl
            ShapeMismatch: value is not JSON-serializable
            IOFailure: the file cannot be written
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        path = self.path_for(key)
        data = encode(Entry(value=value, ttl=int(ttl)))
        try:
            atomic_write_bytes(path, data)
        except OSError as e:
            raise IOFailure(f"Cannot write {path}: {e}") from e
        logger.debug(f"Cached {key} ({len(data)} bytes, ttl={ttl}s)")

    def get(self, key: str) -> Any:
        entry = self._read_live(key)
        if entry.kind == "json":
            return entry.value
        return to_str(entry.value)

    def delete(self, key: str) -> None:
        self._unlink(key)

    def incr(self, key: str) -> None:
        """Increment an int/uint counter, keeping its ttl length.

        Raises:
            NotFound: key missing or expired
            TypeMismatch: stored value is not an integer
        """
        with self._key_locks.for_key(key):
            entry = self._read_live(key)
            self.set(key, incr_value(key, entry.value), entry.ttl)

    def decr(self, key: str) -> None:
        """Decrement an int/uint counter, keeping its ttl length.

        Raises:
            NotFound: key missing or expired
            TypeMismatch: stored value is not an integer
            Underflow: stored value is an unsigned zero
        """
        with self._key_locks.for_key(key):
            entry = self._read_live(key)
            self.set(key, decr_value(key, entry.value), entry.ttl)

    def exists(self, key: str) -> bool:
        """True if the key's file is present; False for keys with an invalid bucket."""
        try:
            return self.path_for(key).exists()
        except ValueError:
            return False

    def flush(self) -> None:
        """Delete the whole store root."""
        try:
            remove_tree(self.root)
        except OSError as e:
            raise IOFailure(f"Cannot flush {self.root}: {e}") from e
        logger.info(f"Flushed FileCache at {self.root}")

    def clear(self, key: str) -> None:
        """Delete a bucket subtree, or one bucketed key.

        ``clear("users")`` removes every ``users_*`` entry;
        ``clear("users_42")`` removes only that key.

        Raises:
            ValueError: invalid bucket name
            NotFound: a bucketed key that does not exist
        """
        if BUCKET_DELIMITER in key:
            self._unlink(key)
            return
        target = ensure_subpath(self.root, validate_bucket(key))
        try:
            removed = remove_tree(target)
        except OSError as e:
            raise IOFailure(f"Cannot clear bucket {target}: {e}") from e
        if removed:
            logger.info(f"Cleared bucket '{key}' at {target}")

    def expire(self, key: str, duration: Duration) -> bool:
        """Rewrite ``key`` with a new ttl; False if it is missing or unreadable."""
        with self._key_locks.for_key(key):
            try:
                entry = self._read_live(key)
                self.set(key, entry.value, duration_seconds(duration))
            except (CacheError, ValueError) as e:
                logger.debug(f"expire({key}) failed: {e}")
                return False
        return True

    def size(self, bucket: Optional[str] = None) -> int:
        """Bytes on disk for the whole store or for one bucket."""
        target = self.root if not bucket else ensure_subpath(self.root, validate_bucket(bucket))
        return tree_size(target)

    def collect(self, now: Optional[float] = None) -> int:
        """Run one expiration sweep now, regardless of the Reaper."""
        if self.reaper is not None:
            return self.reaper.sweep(now)
        return sweep_expired(self.root, now)

    # ----- hash emulation -----

    def hgetall(self, key: str) -> Dict[str, str]:
        """Return the FlatRecord stored under ``key``.

        Raises:
            NotFound: key missing or expired
            ShapeMismatch: the stored value is not a mapping
        """
        value = self._read_live(key).value
        if not isinstance(value, dict):
            raise ShapeMismatch(f"cache key '{key}' does not hold a hash")
        return {k: to_str(v) for k, v in value.items()}

    def hmset(self, key: str, data: Any) -> None:
        """Store a record or mapping as the hash under ``key`` (no ttl).

        Raises:
            ValueError: empty key
            ShapeMismatch: ``data`` is neither a dataclass record nor a mapping
        """
        if not key:
            raise ValueError("hmset requires a non-empty key")
        flat = to_flat_record(data)
        with self._key_locks.for_key(key):
            self.set(key, flat, 0)

    def hset(self, key: str, data: Mapping[str, Any]) -> bool:
        """Merge ``data`` into the hash under ``key``, creating it if needed.

        Raises:
            ShapeMismatch: ``data`` is not a mapping, or the key holds a non-hash
        """
        if not isinstance(data, Mapping):
            raise ShapeMismatch(f"hset data must be a mapping, got {type(data).__name__}")
        with self._key_locks.for_key(key):
            try:
                current = self.hgetall(key)
            except NotFound:
                current = {}
            current.update({str(k): to_str(v) for k, v in data.items()})
            self.set(key, current, 0)
        return True

    def hdel(self, key: str, field: str) -> None:
        """Remove ``field`` from the hash under ``key``; missing key is a no-op."""
        with self._key_locks.for_key(key):
            try:
                current = self.hgetall(key)
            except NotFound:
                return
            current.pop(field, None)
            self.set(key, current, 0)
