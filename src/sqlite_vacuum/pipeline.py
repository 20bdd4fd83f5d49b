"""Run orchestration and the aggregating event loop.

Data flows one way::

    scanner --(bounded work channel)--> workers --(status channel)--> run()

Only the thread calling ``run`` touches the totals or produces output.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
from typing import Iterable, Optional, Protocol

from sqlite_vacuum.channel import Channel
from sqlite_vacuum.compactor import compact as compact_target
from sqlite_vacuum.config import Settings
from sqlite_vacuum.models import (
    Failure,
    Progress,
    RunTotals,
    ScanRoot,
    StatusEvent,
    ThreadCrash,
    ValidatedTarget,
)
from sqlite_vacuum.pool import Compact, default_worker_count, start_workers
from sqlite_vacuum.scanner import scan

log = logging.getLogger(__name__)


class Reporter(Protocol):
    """Output surface driven by the aggregator."""

    def progress(self, event: Progress) -> None: ...

    def failure(self, event: Failure) -> None: ...

    def crash(self, crash: ThreadCrash) -> None: ...

    def summary(self, totals: RunTotals) -> None: ...

    def session(self) -> AbstractContextManager[None]: ...


def aggregate(status: Iterable[StatusEvent], reporter: Reporter, totals: RunTotals) -> RunTotals:
    """Consume status events until the stream ends."""
    for event in status:
        if isinstance(event, Progress):
            totals.add_progress(event)
            reporter.progress(event)
        elif isinstance(event, Failure):
            totals.add_failure(event)
            reporter.failure(event)
        else:
            raise TypeError(f"Unexpected status event: {event!r}")
    return totals


def join_all(futures: dict[Future, str], reporter: Reporter, totals: RunTotals) -> None:
    """Wait for every thread, reporting crashes without stopping at the first one."""
    for future, name in futures.items():
        error = future.exception()
        if error is not None:
            log.debug("Thread %s crashed", name, exc_info=error)
            crash = ThreadCrash(thread_name=name, cause=repr(error))
            totals.internal_errors.append(crash)
            reporter.crash(crash)


def run(
    roots: Iterable[ScanRoot],
    aggressive: bool = False,
    *,
    reporter: Reporter,
    workers: Optional[int] = None,
    settings: Optional[Settings] = None,
    compact: Compact = compact_target,
) -> RunTotals:
    """
    Scan the roots and compact every database found.

    Args:
        roots: Directories to walk
        aggressive: Classify by file header instead of extension
        reporter: Receives every event and the final summary
        workers: Worker thread count (default: settings, then CPU count)
        settings: Extension allow-list and skipped directory names
        compact: Compaction function, replaceable for testing

    Returns:
        Totals of the run
    """
    settings = settings or Settings()
    count = workers or settings.workers or default_worker_count()

    # Capacity equals the worker count so the scanner cannot race ahead
    work: Channel[ValidatedTarget] = Channel(capacity=count)
    status: Channel[StatusEvent] = Channel()
    status_rx = status.receiver()
    # Scanner handles exist before any worker runs
    scan_work_tx, scan_status_tx = work.sender(), status.sender()

    totals = RunTotals()
    with ThreadPoolExecutor(max_workers=count + 1, thread_name_prefix="sqlite-vacuum") as executor:
        futures = start_workers(executor, count, work, status, compact)
        scanner = executor.submit(
            scan,
            list(roots),
            aggressive,
            scan_work_tx,
            scan_status_tx,
            extensions=settings.extensions,
            skip_directories=frozenset(settings.skip_directories),
        )
        futures[scanner] = "scanner"
        log.debug("Pipeline started with %d workers", count)

        with reporter.session(), status_rx:
            aggregate(status_rx, reporter, totals)

    join_all(futures, reporter, totals)
    reporter.summary(totals)
    return totals
