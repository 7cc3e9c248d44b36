"""Tests for the shardcache command line interface."""
from __future__ import annotations

import pytest

from shardcache.cli import COMMANDS, create_parser, main


@pytest.fixture
def run(tmp_path, capsys):
    """Invoke the CLI against a temporary root; returns (exit code, stdout, stderr)."""
    root = str(tmp_path / "store")

    def _run(*argv: str):
        code = main(["--root", root, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


class TestParser:
    def test_every_command_has_a_handler(self):
        parser = create_parser()
        subparsers = next(a for a in parser._actions if a.dest == "command")
        assert set(subparsers.choices) == set(COMMANDS)

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_set_options(self):
        args = create_parser().parse_args(["set", "k", "v", "--ttl", "30", "--json"])
        assert (args.key, args.value, args.ttl, args.json) == ("k", "v", 30, True)


class TestCommands:
    def test_set_then_get(self, run):
        assert run("set", "greeting", "hello")[0] == 0
        code, out, _ = run("get", "greeting")
        assert code == 0
        assert out.strip() == "hello"

    def test_json_value(self, run):
        run("set", "users_1", '{"name": "Ann"}', "--json")
        code, out, _ = run("get", "users_1")
        assert code == 0
        assert '"name": "Ann"' in out

    def test_invalid_json(self, run):
        code, out, _ = run("set", "k", "{nope", "--json")
        assert code == 2
        assert "Invalid JSON value" in out

    def test_counter(self, run):
        run("set", "hits", "5", "--json")
        run("incr", "hits")
        run("incr", "hits")
        run("decr", "hits")
        assert run("get", "hits")[1].strip() == "6"

    def test_missing_key_exits_with_error(self, run):
        code, _, err = run("get", "absent")
        assert code == 1
        assert "absent" in err

    def test_exists_and_del(self, run):
        run("set", "k", "v")
        assert run("exists", "k")[1].strip() == "true"
        assert run("del", "k")[0] == 0
        assert run("exists", "k")[1].strip() == "false"

    def test_expire(self, run):
        run("set", "k", "v")
        assert run("expire", "k", "60")[1].strip() == "true"
        assert run("expire", "absent", "60")[1].strip() == "false"

    def test_hash_commands(self, run):
        assert run("hset", "profiles_1", "name", "ann")[1].strip() == "true"
        run("hset", "profiles_1", "role", "admin")
        code, out, _ = run("hgetall", "profiles_1")
        assert code == 0
        assert "name" in out and "ann" in out
        assert "role" in out and "admin" in out

    def test_clear_and_size(self, run):
        run("set", "users_1", "a")
        run("set", "orders_1", "b")
        assert int(run("size", "users")[1]) > 0
        run("clear", "users")
        assert run("size", "users")[1].strip() == "0"
        assert int(run("size")[1]) > 0

    def test_invalid_bucket(self, run):
        code, _, err = run("clear", "..")
        assert code == 2
        assert "Invalid bucket" in err

    def test_flush_and_gc(self, run):
        run("set", "k", "v", "--ttl", "100")
        assert run("gc")[1].strip() == "0"
        run("flush")
        assert run("exists", "k")[1].strip() == "false"
