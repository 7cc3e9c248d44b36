"""Key/value cache backends with sharded file storage.

Components:
    Backends:
        - FileCache: one envelope file per key under a sharded directory tree
        - MemoryCache: process-local LRU dictionary with the same semantics

    Core pieces:
        - Cache: abstract operation surface shared by the backends
        - Reaper: cancellable background expiration sweep
        - AdapterRegistry: named backend factories
        - flatten / unflatten: dataclass record <-> flat string mapping

Usage::

    from shardcache.cache import FileCache

    with FileCache("./runtime/cache", interval=60) as cache:
        cache.set("users_42", {"name": "Ann"}, ttl=300)
        cache.incr("hits")
"""

from .base import Cache
from .codec import FieldDescriptor, describe, embedded, flatten, register_record, tagged, unflatten
from .common import UInt
from .errors import (
    CacheError,
    DecodeFailure,
    IOFailure,
    NotFound,
    RegistryError,
    ShapeMismatch,
    TypeMismatch,
    Underflow,
)
from .file_cache import FileCache
from .memory_cache import MemoryCache
from .reaper import Reaper, sweep_expired
from .registry import AdapterRegistry, default_registry, new, new_cacher

__all__ = [
    "AdapterRegistry",
    "Cache",
    "CacheError",
    "DecodeFailure",
    "FieldDescriptor",
    "FileCache",
    "IOFailure",
    "MemoryCache",
    "NotFound",
    "Reaper",
    "RegistryError",
    "ShapeMismatch",
    "TypeMismatch",
    "UInt",
    "Underflow",
    "default_registry",
    "describe",
    "embedded",
    "flatten",
    "new",
    "new_cacher",
    "register_record",
    "sweep_expired",
    "tagged",
    "unflatten",
]
