"""Command line interface for kvchain stores."""

from kvchain.cli.main import cli, main

__all__ = ["cli", "main"]
