"""Main CLI entry point and application setup."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import msgspec
import yaml
from click.exceptions import Exit
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kvchain import __version__
from kvchain.base import MISSING
from kvchain.config import Config, load_config, open_store
from kvchain.stack import Stack


@dataclass
class Context:
    """CLI context that holds shared resources."""

    console: Console
    config: dict[str, Any]
    debug: bool = False
    _store: Stack | None = None

    @property
    def store(self) -> Stack:
        if self._store is None:
            self._store = open_store(self.config)
        return self._store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose or debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


def parse_options(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Parse KEY=VALUE pairs given with --option.

    Values are read as YAML scalars, as in config files, so ``max_size=5``
    gives an int and ``path=/tmp/x`` a string.
    """
    options = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {pair!r}")
        try:
            options[key] = yaml.safe_load(value) if value else value
        except yaml.YAMLError as e:
            raise click.BadParameter(f"Invalid value for {key}: {e}") from e
    return options


def format_value(value: Any) -> str:
    """Render a stored value for display."""
    if isinstance(value, str):
        return value
    return msgspec.json.encode(value).decode("utf-8")


class KVChainGroup(click.Group):
    """Custom group that reports store errors without tracebacks."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except Exception as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print(f"[red]Error:[/red] {escape(str(e))}")
            else:
                click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        finally:
            if isinstance(ctx.obj, Context):
                ctx.obj.close()


@click.group(cls=KVChainGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a configuration or build description file",
)
@click.option("--backend", "-b", help="Backend with a default chain (e.g. sqlite)")
@click.option(
    "--option",
    "-o",
    "options",
    multiple=True,
    help="Backend option as KEY=VALUE (repeatable)",
)
@click.option("--expires/--no-expires", default=None, help="Add expiration support")
@click.option("--threadsafe/--no-threadsafe", default=None, help="Add locking")
@click.version_option(
    version=__version__, prog_name="kvchain", message="kvchain version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    backend: str | None,
    options: tuple[str, ...],
    expires: bool | None,
    threadsafe: bool | None,
) -> None:
    """Inspect and modify key-value stores from the command line."""
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)

    config_data = Config.from_file(config) if config else load_config()

    overrides: dict[str, Any] = {}
    if backend:
        overrides["backend"] = backend
        config_data.pop("adapter", None)
        config_data.pop("use", None)
    if options:
        overrides["options"] = parse_options(options)
    if expires is not None:
        overrides["expires"] = expires
    if threadsafe is not None:
        overrides["threadsafe"] = threadsafe

    ctx.obj = Context(
        console=create_console(no_color=no_color),
        config=Config.merge_configs(config_data, overrides),
        debug=debug,
    )


@cli.command()
@click.argument("key")
@click.pass_obj
def get(obj: Context, key: str) -> None:
    """Print the value stored under KEY."""
    value = obj.store.get(key, MISSING)
    if value is MISSING:
        obj.console.print(f"[yellow]Not found:[/yellow] {key}")
        raise Exit(1)
    click.echo(format_value(value))


@cli.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--ttl", type=float, help="Seconds until the entry expires")
@click.option("--json", "as_json", is_flag=True, help="Parse VALUE as JSON")
@click.pass_obj
def set_(obj: Context, key: str, value: str, ttl: float | None, as_json: bool) -> None:
    """Store VALUE under KEY."""
    data: Any = value
    if as_json:
        try:
            data = msgspec.json.decode(value)
        except msgspec.DecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}") from e
    obj.store.set(key, data, ttl)


@cli.command()
@click.argument("key")
@click.pass_obj
def delete(obj: Context, key: str) -> None:
    """Remove KEY."""
    obj.store.delete(key)


@cli.command()
@click.argument("key")
@click.pass_obj
def exists(obj: Context, key: str) -> None:
    """Exit with status 0 if KEY exists, 1 otherwise."""
    found = obj.store.exists(key)
    click.echo("yes" if found else "no")
    if not found:
        raise Exit(1)


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def clear(obj: Context, yes: bool) -> None:
    """Remove every entry."""
    if not yes:
        click.confirm("Remove all entries?", abort=True)
    obj.store.clear()


@cli.command()
@click.argument("key")
@click.argument("amount", type=int, default=1)
@click.pass_obj
def incr(obj: Context, key: str, amount: int) -> None:
    """Add AMOUNT (default 1) to the number under KEY."""
    click.echo(obj.store.increment(key, amount))


@cli.command()
@click.pass_obj
def describe(obj: Context) -> None:
    """Show the layers of the configured store."""
    table = Table(title="Store chain")
    table.add_column("#", justify="right")
    table.add_column("Layer")
    table.add_column("Details")
    for position, layer in enumerate(obj.store.layers):
        table.add_row(str(position), type(layer).__name__, _layer_details(layer))
    obj.console.print(table)


def _layer_details(layer: Any) -> str:
    if hasattr(layer, "key_pipeline"):
        key = ", ".join(layer.key_pipeline.names) or "-"
        value = ", ".join(layer.value_pipeline.names) or "-"
        return f"key: {key}  value: {value}"
    if getattr(layer, "default_ttl", None) is not None:
        return f"default_ttl={layer.default_ttl}"
    if layer.supports_expiry:
        return "expiry"
    return ""


def main() -> None:
    """Entry point for the console script."""
    cli()
