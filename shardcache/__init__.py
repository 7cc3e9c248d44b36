"""shardcache: a key/value cache over a sharded directory tree."""

from .cache import (
    AdapterRegistry,
    Cache,
    CacheError,
    FileCache,
    MemoryCache,
    NotFound,
    default_registry,
    new,
    new_cacher,
)
from .config import CacheOptions, load_options

__version__ = "0.1.0"

__all__ = [
    "AdapterRegistry",
    "Cache",
    "CacheError",
    "CacheOptions",
    "FileCache",
    "MemoryCache",
    "NotFound",
    "__version__",
    "default_registry",
    "load_options",
    "new",
    "new_cacher",
]
