"""Named cache adapter factories.

A registry maps an adapter name to a zero-argument factory returning an
unstarted backend. It is an ordinary value: applications build their own or
take :func:`default_registry`, and nothing is shared between registries.

Example:
    ```python
    registry = default_registry()
    registry.register("redis", RedisCache)   # custom backend
    cache = new_cacher("file", CacheOptions(adapter_config="./runtime/cache"), registry)
    ```
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, List, Optional

from ..config import CacheOptions, load_options
from .base import Cache
from .errors import RegistryError
from .file_cache import FileCache
from .memory_cache import MemoryCache

logger = logging.getLogger(__name__)

CacheFactory = Callable[[], Cache]


class AdapterRegistry:
    """Thread-safe mapping of adapter names to backend factories."""

    def __init__(self):
        self._factories: Dict[str, CacheFactory] = {}
        self._lock = Lock()

    def register(self, name: str, factory: CacheFactory) -> None:
        """Register ``factory`` under ``name``.

        Raises:
            RegistryError: factory is None, or the name is already taken
        """
        if factory is None:
            raise RegistryError(f"Cannot register adapter '{name}': factory is None")
        key = name.strip().lower()
        with self._lock:
            if key in self._factories:
                raise RegistryError(f"Adapter '{key}' is already registered")
            self._factories[key] = factory
        logger.debug(f"Registered cache adapter '{key}'")

    def create(self, name: str) -> Cache:
        """Build an unstarted backend for ``name``.

        Raises:
            RegistryError: no adapter with that name
        """
        key = name.strip().lower()
        with self._lock:
            factory = self._factories.get(key)
        if factory is None:
            raise RegistryError(f"Unknown cache adapter '{name}' (registered: {', '.join(self.names())})")
        return factory()

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name.strip().lower() in self._factories


def default_registry() -> AdapterRegistry:
    """A fresh registry holding the built-in "file" and "memory" adapters."""
    registry = AdapterRegistry()
    registry.register("file", FileCache)
    registry.register("memory", MemoryCache)
    return registry


def new_cacher(name: str, options: CacheOptions, registry: Optional[AdapterRegistry] = None) -> Cache:
    """Create the adapter ``name`` and start it with ``options``."""
    registry = registry or default_registry()
    cache = registry.create(name)
    cache.start_and_gc(options)
    return cache


def new(options: Optional[CacheOptions] = None, registry: Optional[AdapterRegistry] = None) -> Cache:
    """Create and start the adapter named by ``options.adapter``.

    Without options, they are loaded from the environment (see
    :func:`shardcache.config.load_options`).
    """
    options = options or load_options()
    return new_cacher(options.adapter, options, registry)
