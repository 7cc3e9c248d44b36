"""Tests for key to path mapping."""
import hashlib
from pathlib import Path

import pytest

from shardcache.cache.sharding import bucket_of, key_digest, path_for, validate_bucket


def test_unscoped_key_layout(tmp_path: Path):
    digest = hashlib.md5(b"plainkey").hexdigest()
    assert path_for(tmp_path, "plainkey") == tmp_path / digest[0] / digest[1] / digest


def test_bucketed_key_layout(tmp_path: Path):
    digest = key_digest("users_42")
    assert path_for(tmp_path, "users_42") == tmp_path / "users" / digest[0] / digest[1] / digest


def test_mapping_is_deterministic(tmp_path: Path):
    assert path_for(tmp_path, "a_b_c") == path_for(str(tmp_path), "a_b_c")
    assert path_for(tmp_path, "a_b_c").parent.parent.parent.name == "a"


@pytest.mark.parametrize(
    "key, bucket",
    [("users_42", "users"), ("a_b_c", "a"), ("nodelimiter", None), ("_leading", None), ("trailing_", "trailing")],
)
def test_bucket_of(key, bucket):
    assert bucket_of(key) == bucket


def test_leading_delimiter_is_unscoped(tmp_path: Path):
    digest = key_digest("_leading")
    assert path_for(tmp_path, "_leading") == tmp_path / digest[0] / digest[1] / digest


@pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
def test_invalid_bucket_names(name):
    with pytest.raises(ValueError):
        validate_bucket(name)


def test_bucket_with_separator_rejected(tmp_path: Path):
    with pytest.raises(ValueError):
        path_for(tmp_path, "../etc_passwd")
