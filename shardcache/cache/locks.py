"""Striped per-key locks for read-modify-write cache operations."""
from __future__ import annotations

import zlib
from threading import RLock
from typing import List


class KeyLocks:
    """Fixed pool of reentrant locks selected by key hash.

    Two operations on the same key always take the same lock, so
    ``incr``/``decr``/``expire`` and the hash family cannot lose updates
    to each other within one process. Different keys may share a stripe;
    that only costs some contention. No cross-process guarantee.
    """

    def __init__(self, stripes: int = 64):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks: List[RLock] = [RLock() for _ in range(stripes)]

    def for_key(self, key: str) -> RLock:
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    def __len__(self) -> int:
        return len(self._locks)
