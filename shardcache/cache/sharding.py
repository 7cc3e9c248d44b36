"""Deterministic key-to-path mapping for the file cache.

Layout::

    <root>[/<bucket>]/<hex[0]>/<hex[1]>/<hex>

``hex`` is the MD5 digest of the full logical key. The two single-character
directory levels cap fan-out at 16 x 16 so no directory ever holds the whole
key space. Keys of the form ``<bucket>_<rest>`` are placed under a literal
bucket directory, which is what makes bucket-wide ``clear`` a single rmtree.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Optional, Union

BUCKET_DELIMITER = "_"


def key_digest(key: str) -> str:
    """Hex MD5 digest of the logical key."""
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def validate_bucket(bucket: str) -> str:
    """Reject bucket names that would escape or alias the store root.

    Raises:
        ValueError: empty name, ``.``/``..``, or a path separator inside
    """
    separators = {os.sep, "/"}
    if os.altsep:
        separators.add(os.altsep)
    if not bucket or bucket in (".", "..") or any(sep in bucket for sep in separators):
        raise ValueError(f"Invalid bucket name: {bucket!r}")
    return bucket


def bucket_of(key: str) -> Optional[str]:
    """Return the bucket segment of ``key``, or None for unscoped keys.

    A leading delimiter (``"_foo"``) yields an empty segment, which is
    treated as unscoped.
    """
    if BUCKET_DELIMITER not in key:
        return None
    return key.split(BUCKET_DELIMITER, 1)[0] or None


def path_for(root: Union[str, Path], key: str) -> Path:
    """Map a logical key to its backing file path.

    Pure function: no filesystem access, same output for the same inputs
    across calls and processes.

    Args:
        root: Store root directory
        key: Logical cache key

    Returns:
        Path of the leaf file that holds the key's entry envelope
    """
    base = Path(root)
    bucket = bucket_of(key)
    if bucket is not None:
        base = base / validate_bucket(bucket)
    digest = key_digest(key)
    return base / digest[0] / digest[1] / digest
