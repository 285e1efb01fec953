"""
CLI for shelf.

Commands:
    shelf fetch URL - Acquire a document and save it
    shelf open GRADE SUBJECT - Open a catalog textbook, falling back to the demo document
    shelf catalog - List grades and subjects
    shelf cache stats - Show cache statistics
    shelf cache clear - Remove every cached document
    shelf config - Show current configuration
    shelf version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any, Optional
from urllib.parse import unquote, urlparse

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shelf import __version__
from shelf.acquisition.pipeline import open_fetcher
from shelf.cache.sqlite_cache import SQLiteDocumentCache
from shelf.config import Settings, clear_settings_cache, get_settings
from shelf.exceptions import (
    AcquisitionExhaustedError,
    CacheUnavailableError,
    TextbookUnavailableError,
    UnknownSubjectError,
)
from shelf.library.catalog import CURRICULUM, find_subject
from shelf.library.loader import TextbookLoader
from shelf.logging import setup_logging
from shelf.types import AcquisitionResult, LoadedTextbook

app = typer.Typer(
    name="shelf",
    help="Shelf - textbook downloads with an offline cache and proxy fallback",
    no_args_is_help=True,
)
cache_app = typer.Typer(help="Inspect or clear the document cache", no_args_is_help=True)
app.add_typer(cache_app, name="cache")

console = Console()
error_console = Console(stderr=True)


def _load_settings() -> Settings:
    """Load settings and configure logging, exiting on invalid configuration."""
    try:
        clear_settings_cache()
        settings = get_settings()
    except ValidationError as e:
        error_console.print(f"[red]Error:[/red] Configuration is invalid.\n{e}")
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    return settings


def _filename_for(url: str) -> str:
    """Derive a local filename from the last path segment of a URL.

    The path is decoded before the segment is taken so an encoded slash
    cannot smuggle a directory component into the name.
    """
    name = Path(unquote(urlparse(url).path).replace("\\", "/")).name
    if name in ("", ".", ".."):
        return "document.pdf"
    return name


def _write_output(output_dir: Path, filename: str, payload: bytes) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_bytes(payload)
    return path


def _attempts_table(result: AcquisitionResult | None, error: Any = None) -> Table:
    attempts = result.attempts if result is not None else getattr(error, "attempts", [])
    table = Table(title="Attempts", show_header=True)
    table.add_column("#", style="dim")
    table.add_column("Strategy", style="cyan", no_wrap=True)
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")
    for i, attempt in enumerate(attempts, 1):
        status = "[green]ok[/green]" if attempt.ok else "[red]failed[/red]"
        detail = f"{attempt.size_bytes} bytes" if attempt.ok else (attempt.error or "")
        table.add_row(str(i), attempt.label, status, detail)
    return table


@app.command()
def fetch(
    url: Annotated[str, typer.Argument(help="Canonical URL of the document")],
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory to save the document in"),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Skip the persistent cache entirely"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show every attempt"),
    ] = False,
) -> None:
    """Acquire a document through cache, direct fetch and proxies, and save it."""
    settings = _load_settings()
    target_dir = output_dir if output_dir is not None else settings.OUTPUT_DIR

    async def run() -> AcquisitionResult:
        async with open_fetcher(settings, use_cache=not no_cache) as fetcher:
            return await fetcher.acquire(url)

    try:
        result = asyncio.run(run())
    except AcquisitionExhaustedError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        if verbose:
            error_console.print(_attempts_table(None, e))
        raise typer.Exit(1)

    path = _write_output(target_dir, _filename_for(url), result.payload)

    if verbose:
        console.print(_attempts_table(result))
    console.print(
        f"[green]Saved[/green] {result.size_bytes:,} bytes via "
        f"[cyan]{result.label}[/cyan] to {path}"
    )


@app.command(name="open")
def open_textbook(
    grade: Annotated[str, typer.Argument(help="Grade id (e.g., 11)")],
    subject: Annotated[str, typer.Argument(help="Subject id or name (e.g., physics)")],
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory to save the textbook in"),
    ] = None,
) -> None:
    """Open a catalog textbook, substituting the demo textbook if it is unreachable."""
    settings = _load_settings()
    target_dir = output_dir if output_dir is not None else settings.OUTPUT_DIR

    try:
        selected = find_subject(grade, subject)
    except UnknownSubjectError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    async def run() -> LoadedTextbook:
        async with open_fetcher(settings) as fetcher:
            loader = TextbookLoader(fetcher, default_url=settings.DEFAULT_DOCUMENT_URL)
            return await loader.open_subject(selected)

    try:
        textbook = asyncio.run(run())
    except TextbookUnavailableError as e:
        error_console.print(
            "[red]Critical Error:[/red] Could not load any textbook content. "
            "Please check your connection."
        )
        error_console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(1)

    path = _write_output(target_dir, textbook.filename, textbook.payload)

    if textbook.is_substitute and textbook.notice:
        console.print(Panel(textbook.notice, title="[yellow]Offline Mode[/yellow]", border_style="yellow"))

    start = f", start at page {textbook.start_page}" if textbook.start_page else ""
    console.print(f"[green]Opened[/green] {textbook.title}: {path}{start}")


@app.command()
def catalog() -> None:
    """List grades, subjects and textbook URLs."""
    table = Table(title="Curriculum", show_header=True)
    table.add_column("Grade", style="cyan", no_wrap=True)
    table.add_column("Subject ID", style="magenta", no_wrap=True)
    table.add_column("Subject")
    table.add_column("Start Page", justify="right")
    table.add_column("Textbook URL", style="dim", overflow="fold")

    for grade in CURRICULUM:
        for subject in grade.subjects:
            table.add_row(
                grade.id,
                subject.id,
                subject.name,
                str(subject.start_page) if subject.start_page else "",
                subject.pdf_url,
            )

    console.print(table)


@cache_app.command("stats")
def cache_stats() -> None:
    """Show document cache statistics."""
    settings = _load_settings()

    async def run() -> tuple[dict[str, Any], list[str]]:
        async with SQLiteDocumentCache(settings.CACHE_DIR) as cache:
            return await cache.stats(), await cache.urls()

    try:
        stats, urls = asyncio.run(run())
    except CacheUnavailableError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Document Cache", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", overflow="fold")
    table.add_row("Directory", str(stats["cache_dir"]))
    table.add_row("Entries", str(stats["entries"]))
    table.add_row("Blobs", str(stats["blobs"]))
    table.add_row("Total bytes", f"{stats['total_bytes']:,}")
    for source, count in sorted(stats["by_source"].items()):
        table.add_row(f"via {source}", str(count))
    console.print(table)

    for url in urls:
        console.print(f"  [dim]{url}[/dim]")


@cache_app.command("clear")
def cache_clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Remove every cached document."""
    settings = _load_settings()

    if not yes:
        typer.confirm(f"Delete all cached documents in {settings.CACHE_DIR}?", abort=True)

    async def run() -> int:
        async with SQLiteDocumentCache(settings.CACHE_DIR) as cache:
            return await cache.clear()

    try:
        removed = asyncio.run(run())
    except CacheUnavailableError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"Removed {removed} cached document(s).")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _load_settings()

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", overflow="fold")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"shelf version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
