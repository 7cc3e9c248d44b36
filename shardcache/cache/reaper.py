"""Background expiration sweep for the file cache.

The Reaper walks the whole store tree, decodes every leaf envelope and
deletes the expired ones. It runs on a daemon thread:

    Idle -> Sweeping -> Idle (wait ``interval`` seconds) -> Sweeping -> ...

The wait starts after a sweep finishes, so a slow sweep stretches the
effective period. ``stop()`` sets an event that interrupts the wait, which
lets tests and process shutdown end the loop deterministically.

Failure semantics:
    - a file that vanished between listing and reading/removing is skipped
    - a decode failure, an OS error or any other exception raised by the
      sweep abandons the current pass (logged); the next scheduled sweep
      still runs
"""
from __future__ import annotations

import functools
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from .envelope import decode
from .errors import CacheError, DecodeFailure, IOFailure

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp-"


def sweep_expired(root: Path, now: Optional[float] = None) -> int:
    """Remove every expired entry under ``root`` in one pass.

    Args:
        root: Store root directory (a missing root is an empty store)
        now: Reference unix time for expiry checks (defaults to now)

    Returns:
        Number of expired entries removed

    Raises:
        DecodeFailure: a leaf file is not a valid envelope (pass aborted)
        IOFailure: a read/remove failed for a reason other than the file
            having vanished (pass aborted)
    """
    reference = int(time.time()) if now is None else now
    removed = 0

    def _walk_error(err: OSError) -> None:
        if not isinstance(err, FileNotFoundError):
            raise IOFailure(f"walk {err.filename}: {err}") from err

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_walk_error):
        for name in filenames:
            if name.startswith(TEMP_PREFIX):
                continue
            path = Path(dirpath) / name
            try:
                data = path.read_bytes()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise IOFailure(f"read {path}: {e}") from e

            try:
                entry = decode(data)
            except DecodeFailure as e:
                raise DecodeFailure(f"{path}: {e}") from e

            if not entry.is_expired(reference):
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise IOFailure(f"remove {path}: {e}") from e
            removed += 1

    return removed


class Reaper:
    """Cancellable periodic sweeper of expired entries.

    The sweep itself is a callable taking an optional reference time and
    returning the number of entries removed; :func:`sweep_expired` bound to
    a root directory for the file cache, ``MemoryCache.collect`` for the
    memory cache.

    Attributes:
        name: Label used in logs and the thread name
        interval: Seconds to wait between sweeps (must be >= 1)
        sweeps: Number of completed sweeps
        last_removed: Entries removed by the most recent completed sweep
    """

    def __init__(self, sweeper: Callable[[Optional[float]], int], interval: int, name: str = "cache"):
        if interval < 1:
            raise ValueError(f"Reaper interval must be >= 1 second, got {interval}")
        self.sweeper = sweeper
        self.interval = interval
        self.name = name
        self.sweeps = 0
        self.last_removed = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def for_root(cls, root: Path, interval: int) -> "Reaper":
        """Reaper sweeping the file store rooted at ``root``."""
        return cls(functools.partial(sweep_expired, Path(root)), interval, name=str(root))

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread; a second call while running is a no-op."""
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, name=f"shardcache-reaper:{self.name}", daemon=True
            )
            self._thread.start()
        logger.info(f"Reaper started for {self.name} (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to exit and wait for the thread to finish."""
        self._stop.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.info(f"Reaper stopped for {self.name}")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.sweep()
            except CacheError as e:
                logger.error(f"Error garbage collecting cache entries for {self.name}: {e}")
            except Exception:
                logger.exception(f"Unexpected error garbage collecting cache entries for {self.name}")
            if self._stop.wait(self.interval):
                break

    def sweep(self, now: Optional[float] = None) -> int:
        """Run one full pass and record its outcome.

        Raises:
            DecodeFailure, IOFailure: see :func:`sweep_expired`
        """
        removed = self.sweeper(now)
        self.sweeps += 1
        self.last_removed = removed
        if removed:
            logger.info(f"Reaper removed {removed} expired entries for {self.name}")
        else:
            logger.debug(f"Reaper sweep found no expired entries for {self.name}")
        return removed
