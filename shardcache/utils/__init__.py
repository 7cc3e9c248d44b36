"""Filesystem and logging helpers shared by the cache backends and the CLI."""
