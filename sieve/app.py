"""Typer CLI entrypoint for sieve."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, SieveOptions
from .engine import Cache
from .errors import SieveError
from .infra import MemoryStore, SQLiteStore
from .logging_conf import configure_logging
from .orchestrator import fetch_sync

app = typer.Typer(
    help="sieve command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
options_app = typer.Typer(
    name="options",
    help="Inspect default request options",
    no_args_is_help=True,
    rich_markup_mode=None,
)
cache_app = typer.Typer(
    name="cache",
    help="Manage the persistent cache",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    options: SieveOptions
    cache: Cache


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    options = repository.load_options()
    if verbose:
        options = options.merged({"verbose": True})
    store = SQLiteStore(repository.locator.cache_path())
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, options=options, cache=Cache(store, options.cache))


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _load_declaration(value: str) -> Any:
    """Return the declaration text, reading ``@path`` arguments from disk."""

    if not value.startswith("@"):
        return value
    path = Path(value[1:]).expanduser()
    if not path.exists():
        raise typer.BadParameter(f"Declaration file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return text


def _render_options_table(options: SieveOptions, source: Path) -> Table:
    table = Table(
        title=f"Request options · {source}",
        box=box.SIMPLE_HEAD,
        show_lines=False,
    )
    table.add_column("Option", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", overflow="fold")
    for key, value in options.model_dump(mode="json").items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}: {v}" for k, v in value.items())
        table.add_row(key, str(value))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    ctx.obj = build_state(verbose=verbose)


@app.command("fetch", help="Fetch a declaration and print the ordered result as JSON.")
def fetch_command(
    ctx: typer.Context,
    declaration: str = typer.Argument(..., help="JSON/YAML declaration, or @path to a file."),
    tries: Optional[int] = typer.Option(None, "--tries", help="Maximum attempts per URL."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-request timeout in seconds."),
    wait: Optional[float] = typer.Option(None, "--wait", help="Stagger/retry wait in seconds."),
    cache_ttl: Optional[float] = typer.Option(None, "--cache-ttl", help="Default cache TTL in seconds."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Use a throwaway in-memory cache."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON result to a file."),
) -> None:
    state = _get_state(ctx)
    overrides = {
        key: value
        for key, value in {
            "tries": tries,
            "timeout": timeout,
            "wait": wait,
            "cache": cache_ttl,
        }.items()
        if value is not None
    }
    try:
        options = state.options.merged(overrides)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    cache = Cache(MemoryStore(), options.cache) if no_cache else state.cache

    try:
        result = fetch_sync(_load_declaration(declaration), options, cache=cache)
    except SieveError as exc:
        console.print(f"{type(exc).__name__}: {exc}", style="red")
        raise typer.Exit(code=1)

    payload = json.dumps(result, ensure_ascii=False, indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload + "\n", encoding="utf-8")
        console.print(f"Result written to {output}", style="green")
    else:
        typer.echo(payload)


@options_app.command("show", help="Show the effective default options.")
def options_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(_render_options_table(state.options, state.repository.locator.options_path()))


@options_app.command("init", help="Write the default options file if it does not exist.")
def options_init(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.options_path()
    if path.exists():
        console.print(f"Options file already exists: {path}", style="yellow")
        raise typer.Exit(code=0)
    state.repository.save_options(SieveOptions())
    console.print(f"Options written to {path}", style="green")


@cache_app.command("clear", help="Remove every cached response and result.")
def cache_clear(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    state.cache.clear()
    console.print("Cache cleared", style="green")


app.add_typer(options_app, name="options", help="Inspect default request options")
app.add_typer(cache_app, name="cache", help="Manage the persistent cache")


if __name__ == "__main__":  # pragma: no cover
    app()
