"""Directory walking and target discovery for sqlite-vacuum."""

import logging
import os
from pathlib import Path
from typing import Callable, Collection, Generator, Iterable

from sqlite_vacuum.channel import Disconnected, Sender
from sqlite_vacuum.classifier import classify
from sqlite_vacuum.config import DEFAULT_EXTENSIONS
from sqlite_vacuum.errors import ClassifyError, RootAccessError, ScanEntryError, VacuumError
from sqlite_vacuum.models import ScanRoot, StatusEvent, ValidatedTarget

log = logging.getLogger(__name__)

ErrorCallback = Callable[[VacuumError], None]


def check_root(root: ScanRoot) -> None:
    """
    Verify that a scan root is a readable directory.

    Raises:
        RootAccessError: missing, not a directory, or not listable
    """
    try:
        with os.scandir(root.path):
            pass
    except OSError as e:
        raise RootAccessError(root.path, e) from e


def iter_candidates(
    root: Path,
    on_error: ErrorCallback,
    skip_directories: Collection[str] = frozenset(),
) -> Generator[Path, None, None]:
    """
    Walk a directory tree depth-first, yielding every non-directory entry.

    Uses os.scandir for performance. Symlinked directories are not followed,
    so link cycles cannot trap the walk. Paths are yielded lazily; nothing
    beyond the pending directory stack is held in memory.

    Args:
        root: Directory to walk
        on_error: Called with a ScanEntryError for every directory or entry
            that could not be read; the walk continues afterwards
        skip_directories: Directory names never descended into

    Yields:
        Paths of candidate files
    """
    pending = [Path(root)]

    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as entries:
                subdirectories = []
                for entry in entries:
                    try:
                        is_dir = entry.is_dir(follow_symlinks=False)
                    except OSError as e:
                        on_error(ScanEntryError(Path(entry.path), e))
                        continue

                    if not is_dir:
                        yield Path(entry.path)
                    elif entry.name not in skip_directories:
                        subdirectories.append(Path(entry.path))
        except OSError as e:
            on_error(ScanEntryError(directory, e))
            continue

        # Reversed so that siblings are visited in listing order
        pending.extend(reversed(subdirectories))


def disjoint_roots(roots: Iterable[ScanRoot], on_error: ErrorCallback) -> list[ScanRoot]:
    """
    Drop inaccessible roots and roots nested inside another root.

    Inaccessible roots are passed to on_error. Of two roots that resolve to
    the same directory, the first one is kept.

    Returns:
        Accessible roots whose resolved trees do not overlap
    """
    accessible: list[tuple[ScanRoot, Path]] = []
    for root in roots:
        try:
            check_root(root)
        except RootAccessError as e:
            on_error(e)
            continue
        accessible.append((root, root.path.resolve()))

    kept = []
    for i, (root, resolved) in enumerate(accessible):
        covered = any(
            resolved.is_relative_to(other) and (resolved != other or j < i)
            for j, (_, other) in enumerate(accessible)
            if j != i
        )
        if covered:
            log.info("Skipping %s, already covered by another root", root.path)
            continue
        kept.append(root)
    return kept


def scan(
    roots: Iterable[ScanRoot],
    aggressive: bool,
    work_tx: Sender[ValidatedTarget],
    status_tx: Sender[StatusEvent],
    *,
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
    skip_directories: Collection[str] = frozenset(),
) -> int:
    """
    Feed every database found under the roots into the work channel.

    Runs on its own thread. Sending to the bounded work channel blocks when
    the workers fall behind. Both senders are closed on return so that the
    consumers can detect the end of the stream.

    Each database is queued at most once. Nested roots are dropped up front,
    so only symlinked files can reach the same database twice. A link whose
    target lies inside a scanned root is skipped because the walk reaches
    the target itself; links pointing elsewhere are deduplicated by target.

    Args:
        roots: Directories to walk
        aggressive: Classify by file header instead of extension
        work_tx: Sender for validated targets
        status_tx: Sender for error events
        extensions: Suffixes accepted in fast mode
        skip_directories: Directory names never descended into

    Returns:
        Number of targets queued
    """
    queued = 0
    linked: set[Path] = set()

    def report(error: VacuumError) -> None:
        log.debug("%s", error)
        status_tx.send(error.to_event())

    with work_tx, status_tx:
        try:
            roots = disjoint_roots(roots, report)
            resolved_roots = [root.path.resolve() for root in roots]

            for root in roots:
                log.info("Scanning %s", root.path)
                for path in iter_candidates(root.path, report, skip_directories):
                    try:
                        target = classify(path, aggressive, extensions)
                    except ClassifyError as e:
                        report(e)
                        continue

                    if target is None:
                        continue

                    if os.path.islink(target.path):
                        real = target.path.resolve()
                        if real in linked or any(real.is_relative_to(r) for r in resolved_roots):
                            log.debug("Skipping link %s to %s", target.path, real)
                            continue
                        linked.add(real)

                    work_tx.send(target)
                    queued += 1
        except Disconnected:
            log.warning("No consumers left, stopping scan after %d targets", queued)

    log.info("Scan finished, %d targets queued", queued)
    return queued
