"""Centralized logging setup for shardcache and the programs embedding it.

Library modules only ever do ``logger = logging.getLogger(__name__)``; this
factory is what an application (or the CLI) calls once to decide where those
records go.

Usage:
    # Console only, configured once per process
    LoggingFactory.initialize(level=logging.INFO)

    # Console plus logs/app.log
    LoggingFactory.initialize(log_dir=Path("logs"))

    logger = get_logger(__name__)
    logger.info("cache started")
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

PACKAGE_LOGGER = "shardcache"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingFactory:
    """Factory for configuring loggers consistently.

    Initialization happens once per process; later ``initialize`` calls are
    ignored until :meth:`reset`.

    Class Attributes:
        _initialized: Flag to ensure single initialization
        _log_dir: Directory holding app.log, None for console-only output
        _handlers: Handlers installed on the root logger
    """

    _initialized = False
    _log_dir: Optional[Path] = None
    _handlers: List[logging.Handler] = []

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[Path] = None,
        level: int = logging.INFO,
        format_string: Optional[str] = None,
        console_handler: Optional[logging.Handler] = None,
    ) -> None:
        """Initialize the logging system once for the entire application.

        Args:
            log_dir: Directory for app.log; None disables file output
            level: Level for the root and ``shardcache`` loggers
            format_string: Record format (default: DEFAULT_FORMAT). Not applied
                to a caller-supplied ``console_handler`` that already has a
                formatter.
            console_handler: Handler used for terminal output instead of a
                plain StreamHandler (the CLI passes a RichHandler)

        Side Effects:
            - Creates log_dir if given and missing
            - Adds the handlers to the root logger
        """
        if cls._initialized:
            return

        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
        handlers = []

        if console_handler is None:
            console_handler = logging.StreamHandler()
        if console_handler.formatter is None:
            console_handler.setFormatter(formatter)
        handlers.append(console_handler)

        if log_dir is not None:
            cls._log_dir = Path(log_dir)
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(cls._log_dir / "app.log")
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        root = logging.getLogger()
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)
        cls._handlers = handlers
        logging.getLogger(PACKAGE_LOGGER).setLevel(level)

        cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Detach installed handlers and allow initialize() to run again."""
        root = logging.getLogger()
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []
        cls._initialized = False
        cls._log_dir = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger, initializing console logging on first use."""
        if not cls._initialized:
            cls.initialize()
        return logging.getLogger(name)

    @classmethod
    def set_level(cls, name: str, level: int) -> None:
        logging.getLogger(name).setLevel(level)

    @classmethod
    def configure_verbose(cls, verbose: bool = False) -> None:
        """Switch the root and ``shardcache`` loggers between INFO and DEBUG."""
        level = logging.DEBUG if verbose else logging.INFO
        logging.getLogger().setLevel(level)
        logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Shortcut for :meth:`LoggingFactory.get_logger`."""
    return LoggingFactory.get_logger(name)
