"""Exception taxonomy for cache operations.

Every backend raises these instead of returning sentinel values, so callers
can tell a missing key apart from a corrupt file or a permission problem:

    - NotFound: key is missing or its entry has expired
    - TypeMismatch: counter operation on a value that is not an integer
    - Underflow: decrement of an unsigned value that is already zero
    - IOFailure: filesystem read/write/permission errors
    - DecodeFailure: corrupt or truncated entry envelope
    - ShapeMismatch: hash operation given a value that is not a record/mapping
    - RegistryError: adapter registration or lookup problems

The stdlib base classes are mixed in so existing ``except KeyError`` /
``except TypeError`` handlers keep working.
"""
from __future__ import annotations


class CacheError(Exception):
    """Base class for all cache errors."""


class NotFound(CacheError, KeyError):
    """Raised when a key is absent or its entry has expired."""

    def __init__(self, key: str, reason: str = "does not exist"):
        self.key = key
        self.reason = reason
        super().__init__(f"cache key '{key}' {reason}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class TypeMismatch(CacheError, TypeError):
    """Raised when a counter operation hits a non-integer value."""


class Underflow(CacheError, ValueError):
    """Raised when decrementing an unsigned value below zero."""


class IOFailure(CacheError, OSError):
    """Raised for filesystem failures other than a missing file."""


class DecodeFailure(CacheError, ValueError):
    """Raised when an entry envelope cannot be decoded."""


class ShapeMismatch(CacheError, TypeError):
    """Raised when a hash operation receives a non-record value."""


class RegistryError(CacheError):
    """Raised for invalid adapter registration or unknown adapter names."""
