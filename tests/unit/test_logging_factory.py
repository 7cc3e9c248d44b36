"""Tests for shardcache.utils.logging_factory module."""

import logging

from shardcache.utils.logging_factory import PACKAGE_LOGGER, LoggingFactory, get_logger


class TestLoggingFactoryInitialize:
    """Tests for LoggingFactory.initialize() method."""

    def setup_method(self):
        """Reset LoggingFactory state before each test."""
        LoggingFactory.reset()

    def test_console_only_by_default(self):
        before = len(logging.getLogger().handlers)
        LoggingFactory.initialize()

        assert LoggingFactory._initialized is True
        assert LoggingFactory._log_dir is None
        assert len(logging.getLogger().handlers) == before + 1

    def test_log_dir_adds_file_handler(self, tmp_path):
        log_dir = tmp_path / "nested" / "logs"
        LoggingFactory.initialize(log_dir=log_dir)

        assert LoggingFactory._log_dir == log_dir
        assert (log_dir / "app.log").exists()
        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_records_reach_the_log_file(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path, format_string="%(levelname)s|%(message)s")
        logging.getLogger("shardcache.test").warning("disk almost full")
        for handler in LoggingFactory._handlers:
            handler.flush()

        assert "WARNING|disk almost full" in (tmp_path / "app.log").read_text()

    def test_initialize_idempotent(self, tmp_path):
        LoggingFactory.initialize(log_dir=tmp_path / "first")
        handlers = len(logging.getLogger().handlers)

        LoggingFactory.initialize(log_dir=tmp_path / "second")

        assert LoggingFactory._log_dir == tmp_path / "first"
        assert len(logging.getLogger().handlers) == handlers
        assert not (tmp_path / "second").exists()

    def test_custom_console_handler_gets_format(self):
        handler = logging.StreamHandler()
        LoggingFactory.initialize(console_handler=handler, format_string="%(message)s")

        assert handler in logging.getLogger().handlers
        assert handler.formatter._fmt == "%(message)s"

    def test_reset_detaches_handlers(self):
        LoggingFactory.initialize()
        installed = list(LoggingFactory._handlers)

        LoggingFactory.reset()

        assert LoggingFactory._initialized is False
        assert not any(h in logging.getLogger().handlers for h in installed)

    def test_package_logger_level(self):
        LoggingFactory.initialize(level=logging.DEBUG)
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG


class TestLoggingFactoryLevels:
    def setup_method(self):
        LoggingFactory.reset()

    def test_get_logger_auto_initializes(self):
        logger = get_logger("shardcache.some.module")

        assert LoggingFactory._initialized is True
        assert logger.name == "shardcache.some.module"

    def test_set_level(self):
        LoggingFactory.set_level("shardcache.cache", logging.ERROR)
        assert logging.getLogger("shardcache.cache").level == logging.ERROR
        LoggingFactory.set_level("shardcache.cache", logging.NOTSET)

    def test_configure_verbose(self):
        LoggingFactory.configure_verbose(True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

        LoggingFactory.configure_verbose(False)
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO
