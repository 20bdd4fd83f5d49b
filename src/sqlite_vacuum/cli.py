"""CLI interface for sqlite-vacuum."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from sqlite_vacuum import __version__
from sqlite_vacuum.config import expand_path, load_settings
from sqlite_vacuum.display import Display, console, error_console, printable
from sqlite_vacuum.errors import RootAccessError
from sqlite_vacuum.models import ScanRoot
from sqlite_vacuum.pipeline import run
from sqlite_vacuum.scanner import check_root

# Create Typer app
app = typer.Typer(
    name="sqlite-vacuum",
    help="Find SQLite databases and reclaim space with VACUUM and REINDEX",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"sqlite-vacuum version {__version__}")
        raise typer.Exit()


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def resolve_roots(directories: Optional[list[Path]]) -> list[ScanRoot]:
    """Turn directory arguments into scan roots, dropping duplicates."""
    if not directories:
        return [ScanRoot(label="", path=Path.cwd())]

    roots: dict[str, ScanRoot] = {}
    for directory in directories:
        label = str(directory)
        if label not in roots:
            roots[label] = ScanRoot(label=label, path=expand_path(label))
    return list(roots.values())


def _accessible(root: ScanRoot) -> bool:
    try:
        check_root(root)
    except RootAccessError:
        return False
    return True


@app.command()
def main(
    directories: Optional[list[Path]] = typer.Argument(
        None,
        help="Directories to walk (default: current directory)",
        show_default=False,
    ),
    aggressive: bool = typer.Option(
        False,
        "--aggressive",
        "-a",
        help="Inspect each file's header to check if it is a SQLite database, "
        "instead of just checking the extension (faster, but can give false positives).",
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-j", min=1, help="Number of worker threads (default: CPU count)"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Config file (default: ~/.sqlite-vacuum/config.json)"
    ),
    verbose: int = typer.Option(
        0, "--verbose", count=True, help="Increase log verbosity (repeat for debug)"
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Compact every SQLite database found under DIRECTORIES."""
    _setup_logging(verbose)
    settings = load_settings(config)

    try:
        roots = resolve_roots(directories)
    except OSError as e:
        console.print(f"[red]Error: can not access current working directory: {e}[/red]")
        raise typer.Exit(1)

    if not any(_accessible(root) for root in roots):
        console.print("[red]Error: no accessible directory to scan[/red]")
        for root in roots:
            console.print(f"  • {printable(root.path)}", markup=False)
        raise typer.Exit(1)

    run(
        roots,
        aggressive or settings.aggressive,
        reporter=Display(),
        workers=workers,
        settings=settings,
    )


if __name__ == "__main__":
    app()
