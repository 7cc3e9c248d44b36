"""Command line access to a file cache.

Examples:
  shardcache --root ./runtime/cache set users_42 '{"name": "Ann"}' --json --ttl 300
  shardcache --root ./runtime/cache get users_42
  shardcache --root ./runtime/cache hgetall users_42
  shardcache --root ./runtime/cache clear users
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cache import Cache, CacheError, new
from .config import load_options
from .utils.logging_factory import LoggingFactory

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route log records to a RichHandler on stderr.

    Args:
        verbose: If True, set to DEBUG level; otherwise WARNING so command
            output stays clean
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        rich_tracebacks=True,
    )
    LoggingFactory.initialize(
        level=logging.DEBUG if verbose else logging.WARNING,
        format_string="%(message)s",
        console_handler=handler,
    )
    if verbose:
        LoggingFactory.configure_verbose(True)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shardcache",
        description="Inspect and modify a sharded file cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split("Examples:", 1)[1],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--root",
        "-r",
        help="Cache root directory (default: CACHE_ADAPTER_CONFIG or ./cache)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    set_parser = subparsers.add_parser("set", help="Store a value")
    set_parser.add_argument("key")
    set_parser.add_argument("value")
    set_parser.add_argument("--ttl", type=int, default=0, help="Lifetime in seconds (default: 0, no expiry)")
    set_parser.add_argument("--json", action="store_true", help="Parse VALUE as JSON before storing")

    for name, help_text in (
        ("get", "Print a value"),
        ("del", "Delete a key"),
        ("incr", "Increment an integer value"),
        ("decr", "Decrement an integer value"),
        ("exists", "Report whether a key is present"),
        ("hgetall", "Print a hash as a table"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("key")

    expire_parser = subparsers.add_parser("expire", help="Reset a key's ttl")
    expire_parser.add_argument("key")
    expire_parser.add_argument("seconds", type=int)

    clear_parser = subparsers.add_parser("clear", help="Delete a bucket, or one bucketed key")
    clear_parser.add_argument("key")

    subparsers.add_parser("flush", help="Delete the whole cache")

    size_parser = subparsers.add_parser("size", help="Bytes stored, overall or for one bucket")
    size_parser.add_argument("bucket", nargs="?")

    hset_parser = subparsers.add_parser("hset", help="Set one field of a hash")
    hset_parser.add_argument("key")
    hset_parser.add_argument("field")
    hset_parser.add_argument("value")

    subparsers.add_parser("gc", help="Remove expired entries now")

    return parser


def _print(console: Console, value: Any) -> None:
    if isinstance(value, (dict, list)):
        console.print_json(json.dumps(value))
    else:
        console.print(str(value), markup=False, highlight=False, soft_wrap=True)


def set_command(cache: Cache, args: argparse.Namespace, console: Console) -> int:
    value: Any = args.value
    if args.json:
        try:
            value = json.loads(args.value)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON value:[/red] {escape(str(e))}", soft_wrap=True)
            return 2
    cache.set(args.key, value, args.ttl)
    return 0


def hgetall_command(cache: Cache, args: argparse.Namespace, console: Console) -> int:
    data = cache.hgetall(args.key)
    table = Table(title=args.key)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field_name, value in sorted(data.items()):
        table.add_row(field_name, value)
    console.print(table)
    return 0


def _simple(action: Callable[[Cache, argparse.Namespace], Any], show: bool = True):
    def _command(cache: Cache, args: argparse.Namespace, console: Console) -> int:
        result = action(cache, args)
        if show:
            _print(console, result)
        return 0

    return _command


COMMANDS: Dict[str, Callable[[Cache, argparse.Namespace, Console], int]] = {
    "set": set_command,
    "get": _simple(lambda c, a: c.get(a.key)),
    "del": _simple(lambda c, a: c.delete(a.key), show=False),
    "incr": _simple(lambda c, a: c.incr(a.key), show=False),
    "decr": _simple(lambda c, a: c.decr(a.key), show=False),
    "exists": _simple(lambda c, a: "true" if c.exists(a.key) else "false"),
    "expire": _simple(lambda c, a: "true" if c.expire(a.key, a.seconds) else "false"),
    "clear": _simple(lambda c, a: c.clear(a.key), show=False),
    "flush": _simple(lambda c, a: c.flush(), show=False),
    "size": _simple(lambda c, a: c.size(a.bucket)),
    "hgetall": hgetall_command,
    "hset": _simple(lambda c, a: "true" if c.hset(a.key, {a.field: a.value}) else "false"),
    "gc": _simple(lambda c, a: c.collect()),
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for a cache error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    console = Console()

    try:
        options = load_options(adapter="file", adapter_config=args.root, interval=0)
        with new(options) as cache:
            return COMMANDS[args.command](cache, args, console)
    except CacheError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        return 1
    except ValueError as e:
        Console(stderr=True).print(f"[red]Invalid argument:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        return 2
    except KeyboardInterrupt:
        logger.error("Operation cancelled by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
