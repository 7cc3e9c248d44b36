"""Tests for shardcache.config: option validation and environment loading."""

import pytest
from pydantic import ValidationError

from shardcache.config import CacheOptions, _getenv_int, _parse_bool, load_options


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Unset the section variables and undo anything a .env file sets."""
    for suffix in ("ADAPTER", "ADAPTER_CONFIG", "INTERVAL", "OCCUPY_MODE"):
        for prefix in ("CACHE", "SESSIONS"):
            monkeypatch.setenv(f"{prefix}_{suffix}", "")
            monkeypatch.delenv(f"{prefix}_{suffix}")


class TestHelperFunctions:
    @pytest.mark.parametrize("value", ["true", "1", "YES", "on", "enabled", True])
    def test_parse_bool_truthy(self, value):
        assert _parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "", None, False])
    def test_parse_bool_falsy(self, value):
        assert _parse_bool(value) is False

    def test_getenv_int(self, monkeypatch):
        monkeypatch.setenv("SHARDCACHE_TEST_INT", "12")
        assert _getenv_int("SHARDCACHE_TEST_INT", 3) == 12
        monkeypatch.setenv("SHARDCACHE_TEST_INT", "")
        assert _getenv_int("SHARDCACHE_TEST_INT", 3) == 3

    def test_getenv_int_invalid(self, monkeypatch):
        monkeypatch.setenv("SHARDCACHE_TEST_INT", "soon")
        with pytest.raises(ValueError, match="SHARDCACHE_TEST_INT"):
            _getenv_int("SHARDCACHE_TEST_INT", 3)


class TestCacheOptions:
    def test_defaults(self):
        options = CacheOptions()
        assert options.adapter == "memory"
        assert options.adapter_config == "cache"
        assert options.interval == 60
        assert options.occupy_mode is False
        assert options.section == "cache"

    def test_adapter_normalized(self):
        assert CacheOptions(adapter=" File ").adapter == "file"

    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError):
            CacheOptions(interval=-1)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            CacheOptions(root="x")


class TestLoadOptions:
    def test_defaults_without_environment(self):
        options = load_options()
        assert options == CacheOptions()

    def test_reads_section_variables(self, monkeypatch):
        monkeypatch.setenv("SESSIONS_ADAPTER", "file")
        monkeypatch.setenv("SESSIONS_ADAPTER_CONFIG", "./runtime/sessions")
        monkeypatch.setenv("SESSIONS_INTERVAL", "15")
        monkeypatch.setenv("SESSIONS_OCCUPY_MODE", "yes")

        options = load_options("sessions")

        assert options.section == "sessions"
        assert options.adapter == "file"
        assert options.adapter_config == "./runtime/sessions"
        assert options.interval == 15
        assert options.occupy_mode is True

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("CACHE_ADAPTER_CONFIG", "from-env")
        options = load_options(adapter="file", adapter_config=None, interval=0)
        assert options.adapter == "file"
        assert options.adapter_config == "from-env"
        assert options.interval == 0

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("CACHE_ADAPTER=file\nCACHE_INTERVAL=5\n")

        options = load_options(env_file=env_file)

        assert options.adapter == "file"
        assert options.interval == 5

    def test_invalid_interval(self, monkeypatch):
        monkeypatch.setenv("CACHE_INTERVAL", "-3")
        with pytest.raises(ValueError):
            load_options()
