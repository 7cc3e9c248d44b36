"""Path utilities for safe file IO and directory handling.

Functions here centralize root resolution, containment checks, atomic
writes and recursive removal for the file cache.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Union


def resolve_root(path_spec: Union[str, Path]) -> Path:
    """Resolve a store root relative to the working directory.

    Absolute specs are kept; relative ones (``"cache"``, ``"./runtime/cache"``)
    are joined to ``os.getcwd()``.
    """
    path = Path(path_spec).expanduser()
    if not path.is_absolute():
        path = Path(os.getcwd()) / path
    return path.resolve()


def ensure_subpath(root: Path, sub: Path | str) -> Path:
    """Return absolute path for `root/sub` ensuring it stays within `root`.

    Raises ValueError if the resolved path escapes the root directory.
    """
    root_resolved = Path(root).resolve()
    candidate = (root_resolved / Path(sub)).resolve()
    try:
        # Will raise ValueError if candidate is not within root
        candidate.relative_to(root_resolved)
    except ValueError as e:
        raise ValueError(f"Path escapes root: {candidate} not in {root_resolved}") from e
    return candidate


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a sibling temp file and ``os.replace``.

    Readers see either the old file or the new one, never a partial write.
    Parent directories are created as needed. Propagates OSError.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def remove_tree(path: Path) -> bool:
    """Recursively delete ``path``; returns False if it did not exist."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return False
    return True


def tree_size(path: Path) -> int:
    """Total size in bytes of regular files under ``path`` (0 if missing)."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += os.stat(os.path.join(dirpath, name)).st_size
            except FileNotFoundError:
                continue
    return total
