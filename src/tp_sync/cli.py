"""Command-line interface for tp-sync."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from tp_sync import __version__
from tp_sync.config import RemoteConfig, SyncConfig
from tp_sync.orchestrator import Synchronizer

app = typer.Typer(
    name="tp-sync",
    help="Synchronize a static site with documents served by a TEI Publisher API.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()

LOG_PREFIX = "[tp-sync]"


def configure_logging(verbose: bool) -> None:
    """Send log records through rich, tagged with the tool's prefix."""
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter(f"{LOG_PREFIX} %(message)s"))
    root = logging.getLogger("tp_sync")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    logging.getLogger("httpx").setLevel(logging.WARNING)


def version_callback(value: bool):
    if value:
        console.print(f"tp-sync version {__version__}")
        raise typer.Exit()


def load_config(config_file: Optional[Path], remote: Optional[str]) -> SyncConfig:
    config = SyncConfig.from_toml(config_file) if config_file else SyncConfig()
    if remote:
        config.remote = RemoteConfig.model_validate({**config.remote.model_dump(), "url": remote})
    return config


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Static site synchronization with a TEI Publisher instance."""
    pass


@app.command()
def sync(
    site_dir: Path = typer.Argument(..., help="Directory of the built site"),
    remote: Optional[str] = typer.Option(
        None,
        "--remote",
        "-r",
        help="Base URL of the TEI Publisher app",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        help="Maximum pages to retrieve per view (default: unlimited)",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        help="Number of pages transformed in parallel",
    ),
    collections: Optional[bool] = typer.Option(
        None,
        "--collections/--no-collections",
        help="Crawl collections and write the document catalog",
    ),
    cache: Optional[bool] = typer.Option(
        None,
        "--cache/--no-cache",
        help="Enable/disable the one-day content cache",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
):
    """
    Retrieve the data behind every pb-view of a built site.

    Examples:

        tp-sync sync _site --remote http://localhost:8080/exist/apps/tei-publisher/

        tp-sync sync _site -c tp-sync.toml --collections --limit 5
    """
    configure_logging(verbose)
    try:
        config = load_config(config_file, remote)
    except (OSError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    updates: dict = {"output_dir": site_dir, "verbose": verbose or config.verbose}
    if limit is not None:
        updates["limit"] = limit
    if concurrency is not None:
        updates["concurrency"] = concurrency
    if collections is not None:
        updates["collections"] = collections
    config = SyncConfig.model_validate({**config.model_dump(), **updates})
    if cache is not None:
        config.cache.enabled = cache

    async def run():
        async with Synchronizer(config, console) as synchronizer:
            result = await synchronizer.sync_site(site_dir)
            synchronizer.print_summary(result)
            return result

    try:
        result = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Synchronization cancelled.[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    if result.errors:
        raise typer.Exit(1)


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL or path relative to the remote"),
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Base URL of the app"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Print a remote resource, cached for one day."""
    configure_logging(verbose)
    config = load_config(config_file, remote)

    async def run() -> str:
        async with Synchronizer(config, console) as synchronizer:
            return await synchronizer.fetch(url)

    typer.echo(asyncio.run(run()))


if __name__ == "__main__":
    app()
