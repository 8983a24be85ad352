"""Click-based CLI for fundnav.

Thin wrapper around library modules. Every command delegates to the source
adapter, the cache store, or the API app factory.
"""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from fundnav.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_store(config, client):
    from fundnav.cache import CacheStore
    from fundnav.series import SeriesNormalizer, load_correction_table

    corrections = load_correction_table(config.corrections_path, config.corrections)
    return CacheStore(client, SeriesNormalizer(corrections), config.search)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="FUNDNAV_CONFIG",
    default=None,
    help="Path to fundnav.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="fundnav")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """fundnav: mutual fund directory search and NAV history cache."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("query")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Max results.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
)
@click.pass_context
def search(ctx: click.Context, query: str, limit: int, output_format: str) -> None:
    """Fetch the fund directory once and fuzzy search it."""
    from fundnav.core.exceptions import FundNavError
    from fundnav.source import MfApiClient

    async def _run():
        config = _load_config(ctx)
        async with MfApiClient(config.source) as client:
            store = _build_store(config, client)
            await store.refresh_directory()
            return store.search(query)[:limit]

    try:
        results = _run_async(_run())
    except FundNavError as e:
        console.print(f"[red]Search failed: {e}[/red]")
        raise SystemExit(1)

    if output_format == "json":
        click.echo(json.dumps([d.model_dump() for d in results], indent=2))
        return

    if not results:
        console.print("[yellow]No matching funds.[/yellow]")
        return

    table = Table(title=f"Funds matching {query!r}")
    table.add_column("Code", justify="right")
    table.add_column("Name")
    table.add_column("ISIN (growth)")
    for d in results:
        table.add_row(str(d.id), d.display_name, d.alt_id or "")
    console.print(table)


# ---------------------------------------------------------------------------
# nav
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("scheme_code", type=int)
@click.option("--tail", type=int, default=10, show_default=True, help="Show the last N days.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
)
@click.pass_context
def nav(ctx: click.Context, scheme_code: int, tail: int, output_format: str) -> None:
    """Fetch and normalize the NAV history of one scheme."""
    from fundnav.core.exceptions import FundNavError
    from fundnav.source import MfApiClient

    async def _run():
        config = _load_config(ctx)
        async with MfApiClient(config.source) as client:
            store = _build_store(config, client)
            await store.refresh_directory()
            return store.get_descriptor(scheme_code), await store.get_series(scheme_code)

    try:
        descriptor, series = _run_async(_run())
    except FundNavError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if series is None:
        console.print(f"[red]NAV history for {scheme_code} is unavailable right now.[/red]")
        raise SystemExit(1)

    points = series.points[-tail:] if tail > 0 else series.points
    if output_format == "json":
        click.echo(
            json.dumps(
                [
                    {
                        "date": p.date.isoformat(),
                        "nav": str(p.value) if p.value is not None else None,
                    }
                    for p in points
                ],
                indent=2,
            )
        )
        return

    table = Table(title=f"{descriptor.display_name} ({scheme_code})")
    table.add_column("Date")
    table.add_column("NAV", justify="right")
    for p in points:
        table.add_row(p.date.isoformat(), str(p.value) if p.value is not None else "-")
    console.print(table)
    console.print(
        f"{len(series)} days from {series.first_date} to {series.last_date}"
    )


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (default from config).")
@click.option("--port", "-p", type=int, default=None, help="Port number (default from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the REST API server."""
    import uvicorn

    from fundnav.api.app import create_app

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting fundnav API on [bold]{host}:{port}[/bold]")
    uvicorn.run(create_app(config=config), host=host, port=port, log_config=None)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
