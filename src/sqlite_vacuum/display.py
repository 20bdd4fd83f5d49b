"""Rich terminal display for sqlite-vacuum."""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.text import Text

from sqlite_vacuum.models import Failure, Progress, RunTotals, ThreadCrash

console = Console(soft_wrap=True)
error_console = Console(stderr=True, soft_wrap=True)

UNITS = ["B", "kB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]


def format_size(num: float) -> str:
    """Format a signed byte count with decimal units (1 kB = 1000 B)."""
    sign = "-" if num < 0 else ""
    num = abs(num)

    if num < 1:
        value = int(num) if num == int(num) else num
        return f"{sign}{value} B"

    exponent = 0
    while exponent < len(UNITS) - 1 and num >= 1000 ** (exponent + 1):
        exponent += 1

    pretty = f"{num / 1000**exponent:.2f}".rstrip("0").rstrip(".")
    return f"{sign}{pretty} {UNITS[exponent]}"


def printable(value: str | os.PathLike) -> str:
    """Text safe to write to any UTF-8 stream.

    Undecodable file-name bytes come back from the filesystem as lone
    surrogates; those are shown as U+FFFD instead.
    """
    return os.fsencode(value).decode("utf-8", "replace")


class Display:
    """Writes pipeline output. Only the aggregating thread may call it."""

    def __init__(self, out: Console | None = None, err: Console | None = None) -> None:
        self.out = out or console
        self.err = err or error_console
        self._live: Live | None = None
        self._done = 0

    @contextmanager
    def session(self) -> Iterator[None]:
        """Keep a transient status line at the bottom of a terminal.

        Refreshed only from the calling thread, and a no-op when output is
        not a terminal.
        """
        if not self.out.is_terminal:
            yield
            return

        with Live(Text(""), console=self.out, auto_refresh=False, transient=True) as live:
            self._live = live
            try:
                yield
            finally:
                self._live = None

    def _status(self, path: Path) -> None:
        self._done += 1
        if self._live is not None:
            line = Text(f"[{self._done}] {printable(path)}", style="dim", no_wrap=True)
            line.truncate(self.out.width, overflow="ellipsis")
            self._live.update(line, refresh=True)

    def progress(self, event: Progress) -> None:
        """Show a compacted database."""
        size_color = "yellow" if event.delta >= 0 else "magenta"
        self.out.print(
            f"[bold green]Vacuumed[/bold green] [white]{escape(printable(event.path))}[/white] "
            f"[bold {size_color}]{format_size(event.delta)}[/bold {size_color}]",
            highlight=False,
        )
        self._status(event.path)

    def failure(self, event: Failure) -> None:
        """Show a per-unit error on stderr."""
        self.err.print(
            f"[red]Error {escape(f'[{event.stage.value}]')} {escape(printable(event.path))}: "
            f"{escape(printable(event.cause))}[/red]",
            highlight=False,
        )
        self._status(event.path)

    def crash(self, crash: ThreadCrash) -> None:
        """Show an internal error on stderr."""
        self.err.print(
            f"[bold red]Internal error in {escape(crash.thread_name)}: "
            f"{escape(printable(crash.cause))}[/bold red]",
            highlight=False,
        )

    def summary(self, totals: RunTotals) -> None:
        """Show the grand total."""
        self.out.print()
        self.out.print(
            f"[bold green]Done.[/bold green] [white]Total size reduction:[/white] "
            f"[bold yellow]{format_size(totals.total_delta)}[/bold yellow]",
            highlight=False,
        )
        line = f"  {totals.compacted} compacted"
        if totals.failed:
            line += f", [red]{totals.failed} failed[/red]"
        if totals.internal_errors:
            line += f", [bold red]{len(totals.internal_errors)} internal errors[/bold red]"
        self.out.print(f"[dim]{line}[/dim]")
