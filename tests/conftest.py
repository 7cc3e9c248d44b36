"""Global pytest fixtures.

Provides started cache backends rooted in pytest's per-test temporary
directory, with the Reaper disabled so tests drive sweeps explicitly.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from shardcache.cache import FileCache, MemoryCache
from shardcache.utils.logging_factory import LoggingFactory


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def file_cache(cache_root: Path) -> Iterator[FileCache]:
    cache = FileCache(cache_root, interval=0)
    yield cache
    cache.close()


@pytest.fixture
def memory_cache() -> Iterator[MemoryCache]:
    cache = MemoryCache()
    yield cache
    cache.close()


@pytest.fixture(params=["file", "memory"])
def any_cache(request, cache_root: Path) -> Iterator:
    """Each test using this fixture runs once per backend."""
    cache = FileCache(cache_root, interval=0) if request.param == "file" else MemoryCache()
    yield cache
    cache.close()


@pytest.fixture(autouse=True)
def _reset_logging_factory() -> Iterator[None]:
    yield
    LoggingFactory.reset()
