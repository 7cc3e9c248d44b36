"""Cache options and their loading from the environment.

Options can be built directly::

    options = CacheOptions(adapter="file", adapter_config="./runtime/cache", interval=30)

or loaded from ``<SECTION>_*`` environment variables (a ``.env`` file in the
working directory is read first, without overriding real variables)::

    CACHE_ADAPTER=file
    CACHE_ADAPTER_CONFIG=./runtime/cache
    CACHE_INTERVAL=30
    CACHE_OCCUPY_MODE=false

    options = load_options()  # section "cache"
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "cache"


def _parse_bool(value: str | bool | None) -> bool:
    """Parse boolean value from various formats."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    return bool(value)


def _getenv_int(key: str, default: int) -> int:
    """Get integer environment variable with validation.

    Raises:
        ValueError: If value cannot be parsed as integer
    """
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(
            f"Invalid integer value for {key}='{value}'. "
            f"Expected integer, got: {value}"
        ) from e


class CacheOptions(BaseModel):
    """Configuration consumed by a cache backend's ``start_and_gc``.

    Attributes:
        adapter: Registered adapter name ("file", "memory", ...)
        adapter_config: Adapter-specific setting; the store root path for
            the file adapter, resolved against the working directory
        interval: Expiration sweep interval in seconds; 0 disables it
        occupy_mode: Whether the adapter owns its whole storage namespace
        section: Configuration section the options were read from
    """

    model_config = ConfigDict(extra="forbid")

    adapter: str = Field(default="memory", min_length=1)
    adapter_config: str = Field(default="cache")
    interval: int = Field(default=60, ge=0)
    occupy_mode: bool = False
    section: str = Field(default=DEFAULT_SECTION, min_length=1)

    @field_validator("adapter")
    @classmethod
    def _normalize_adapter(cls, v: str) -> str:
        return v.strip().lower()


_dotenv_lock = threading.Lock()
_dotenv_loaded = False


def _load_env_file(env_file: Optional[Union[str, Path]]) -> None:
    """Load a .env file once per process (or the given file every time)."""
    global _dotenv_loaded
    if env_file is not None:
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")
        return
    with _dotenv_lock:
        if _dotenv_loaded:
            return
        env_path = Path(".env")
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded environment from {env_path}")
        _dotenv_loaded = True


def load_options(
    section: str = DEFAULT_SECTION,
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> CacheOptions:
    """Build CacheOptions from ``<SECTION>_*`` environment variables.

    Args:
        section: Section name; its upper-cased form is the variable prefix
        env_file: Explicit .env file to load (default: ``./.env`` if present)
        **overrides: Field values that win over the environment

    Returns:
        Validated CacheOptions

    Raises:
        ValueError: a variable has an invalid value (pydantic's
            ValidationError is a ValueError subclass)
    """
    _load_env_file(env_file)
    prefix = section.upper()

    values: dict = {
        "section": section,
        "adapter": os.getenv(f"{prefix}_ADAPTER") or "memory",
        "adapter_config": os.getenv(f"{prefix}_ADAPTER_CONFIG") or "cache",
        "interval": _getenv_int(f"{prefix}_INTERVAL", 60),
        "occupy_mode": _parse_bool(os.getenv(f"{prefix}_OCCUPY_MODE", "false")),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return CacheOptions(**values)


__all__ = ["CacheOptions", "DEFAULT_SECTION", "load_options"]
