"""Worker threads that compact databases taken from the work channel."""

import logging
import os
from concurrent.futures import Executor, Future
from typing import Callable

from sqlite_vacuum.channel import Channel, Receiver, Sender
from sqlite_vacuum.compactor import compact
from sqlite_vacuum.display import format_size, printable
from sqlite_vacuum.errors import VacuumError
from sqlite_vacuum.models import CompactionOutcome, Progress, StatusEvent, ValidatedTarget

log = logging.getLogger(__name__)

Compact = Callable[[ValidatedTarget], CompactionOutcome]


def default_worker_count() -> int:
    """One worker per CPU, at least one."""
    return max(1, os.cpu_count() or 1)


def progress_event(outcome: CompactionOutcome) -> Progress:
    return Progress(
        message=f"Vacuumed {printable(outcome.path)} {format_size(outcome.delta)}",
        path=outcome.path,
        delta=outcome.delta,
    )


def run_worker(
    work_rx: Receiver[ValidatedTarget],
    status_tx: Sender[StatusEvent],
    compact: Compact = compact,
) -> None:
    """
    Compact targets until the work channel is drained and closed.

    Expected per-file failures become Failure events. Anything else escapes
    and is reported by the aggregator as an internal error.
    """
    with work_rx, status_tx:
        for target in work_rx:
            try:
                outcome = compact(target)
            except VacuumError as e:
                log.debug("%s", e)
                status_tx.send(e.to_event())
            else:
                status_tx.send(progress_event(outcome))


def start_workers(
    executor: Executor,
    count: int,
    work: Channel[ValidatedTarget],
    status: Channel[StatusEvent],
    compact: Compact = compact,
) -> dict[Future, str]:
    """
    Submit the worker pool to an executor.

    Every handle is created before the first worker is submitted, so the
    channels cannot look closed while workers are still starting up.

    Returns:
        Futures mapped to worker names
    """
    handles = [(work.receiver(), status.sender()) for _ in range(max(1, count))]

    future_to_name = {
        executor.submit(run_worker, work_rx, status_tx, compact): f"worker-{i}"
        for i, (work_rx, status_tx) in enumerate(handles)
    }
    log.debug("Started %d workers", len(future_to_name))
    return future_to_name
