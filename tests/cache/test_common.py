"""Tests for scalar classification, text rendering and counter arithmetic."""
from datetime import datetime, timedelta

import pytest

from shardcache.cache.base import duration_seconds
from shardcache.cache.common import UInt, decr_value, incr_value, scalar_kind, to_str
from shardcache.cache.errors import TypeMismatch, Underflow


class TestScalarKind:
    def test_bool_is_not_int(self):
        assert scalar_kind(True) == "bool"
        assert scalar_kind(0) == "int"

    def test_uint_family(self):
        assert scalar_kind(UInt(3)) == "uint"

    def test_structured_values_have_no_kind(self):
        assert scalar_kind({"a": 1}) is None
        assert scalar_kind([1, 2]) is None

    def test_uint_rejects_negative(self):
        with pytest.raises(ValueError):
            UInt(-1)


class TestToStr:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (UInt(7), "7"),
            (1.5, "1.5"),
            (3.0, "3"),
            (1e20, "100000000000000000000"),
            (0.1, "0.1"),
            (b"raw", "raw"),
            ("text", "text"),
            (datetime(2024, 5, 1, 12, 30, 5), "2024-05-01 12:30:05"),
        ],
    )
    def test_canonical_forms(self, value, expected):
        assert to_str(value) == expected


class TestCounters:
    def test_incr_int(self):
        assert incr_value("k", 41) == 42

    def test_decr_int_goes_negative(self):
        assert decr_value("k", 0) == -1

    def test_uint_kind_preserved(self):
        result = incr_value("k", UInt(1))
        assert isinstance(result, UInt)
        assert result == 2

    def test_uint_zero_underflows(self):
        with pytest.raises(Underflow):
            decr_value("k", UInt(0))

    @pytest.mark.parametrize("value", ["12", 1.5, True, b"1", {"a": 1}])
    def test_non_integers_rejected(self, value):
        with pytest.raises(TypeMismatch):
            incr_value("k", value)
        with pytest.raises(TypeMismatch):
            decr_value("k", value)

    def test_underflow_is_value_error(self):
        with pytest.raises(ValueError):
            decr_value("k", UInt(0))


class TestDurationSeconds:
    @pytest.mark.parametrize(
        "duration, seconds",
        [(10, 10), (2.0, 2), (0.5, 1), (1.2, 2), (timedelta(milliseconds=1), 1), (timedelta(minutes=1), 60), (0, 0), (-0.5, -1)],
    )
    def test_rounding(self, duration, seconds):
        assert duration_seconds(duration) == seconds
