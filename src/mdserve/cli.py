"""Command line interface for mdserve."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from mdserve.config import DEFAULT_HOST, DEFAULT_PORT, AppConfig, parse_bind
from mdserve.index.ignore import select_ignore_filter
from mdserve.index.indexer import ScanError, build_snapshot
from mdserve.index.search import filter_entries
from mdserve.index.storage import ReloadController, ReloadFlag, SnapshotStore, install_signal_handler
from mdserve.rendering.markdown import Renderer
from mdserve.web.app import create_app


console = Console()
app = typer.Typer(help="mdserve - serve a tree of Markdown documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _resolve_content_path(content_path: Optional[Path]) -> Path:
    resolved = AppConfig(content_path=content_path).resolve_content_path(Path.cwd())
    if not resolved.is_dir():
        raise typer.BadParameter(f"Content directory not found: {resolved}")
    return resolved


@app.command()
def serve(
    content_path: Optional[Path] = typer.Argument(
        None, help="Where to serve content from (defaults to the current directory)."
    ),
    bind: str = typer.Option(f"{DEFAULT_HOST}:{DEFAULT_PORT}", "--bind", help="Socket address to listen on"),
    serve_threads: int = typer.Option(
        AppConfig().serve_threads, "--serve-threads", "-t", min=1, help="Worker threads"
    ),
    git_ignore: bool = typer.Option(
        True, "--git-ignore/--no-git-ignore", help="Hide paths ignored by git"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Serve the content directory; send SIGHUP to reload the index."""
    _setup_logging(verbose)
    try:
        host, port = parse_bind(bind)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--bind") from exc

    root = _resolve_content_path(content_path)
    config = AppConfig(
        content_path=root,
        host=host,
        port=port,
        serve_threads=serve_threads,
        use_git_ignore=git_ignore,
    )

    renderer = Renderer()
    ignore_filter = select_ignore_filter(config.use_git_ignore)

    def build():
        return build_snapshot(root, ignore_filter=ignore_filter, renderer=renderer)

    try:
        store = SnapshotStore(build())
    except ScanError as exc:
        console.print(f"[red]Failed to index {root}: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    flag = ReloadFlag()
    install_signal_handler(flag)
    controller = ReloadController(store, build, flag, interval=config.reload_interval)
    web_app = create_app(config, store, renderer=renderer, controller=controller)

    console.print(f"Serving [bold]{root}[/bold] on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        log_level="debug" if verbose else "info",
    )


@app.command()
def index(
    content_path: Optional[Path] = typer.Argument(
        None, help="Content directory to scan (defaults to the current directory)."
    ),
    section: Optional[str] = typer.Option(None, "--section", "-s", help="Only list this section"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Match title, description or path"),
    git_ignore: bool = typer.Option(
        True, "--git-ignore/--no-git-ignore", help="Hide paths ignored by git"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Scan the content directory and print the document index."""
    _setup_logging(verbose)
    root = _resolve_content_path(content_path)

    try:
        snapshot = build_snapshot(root, ignore_filter=select_ignore_filter(git_ignore))
    except ScanError as exc:
        console.print(f"[red]Failed to index {root}: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    entries = filter_entries(snapshot.index, section=section, query=query)
    if not entries:
        console.print("[yellow]No documents found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Date")
    table.add_column("Section")
    table.add_column("Title")
    table.add_column("Path")

    for entry in entries:
        table.add_row(
            entry.metadata.date.isoformat(),
            entry.section or "-",
            entry.metadata.title,
            entry.path,
        )

    console.print(table)
    console.print(f"{len(entries)} of {len(snapshot.index)} documents")
