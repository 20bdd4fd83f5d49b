"""Compaction of a single SQLite database."""

import logging
import os
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Callable

from sqlite_vacuum.errors import EngineExecuteError, EngineOpenError, VacuumError
from sqlite_vacuum.models import CompactionOutcome, ValidatedTarget

log = logging.getLogger(__name__)

# Both statements are required: VACUUM moves pages, REINDEX rebuilds
# indices against the new page layout.
STATEMENTS = ("VACUUM;", "REINDEX;")

# Result codes meaning the file could not be opened as a database
OPEN_ERROR_CODES = frozenset({sqlite3.SQLITE_CANTOPEN, sqlite3.SQLITE_NOTADB})

Connect = Callable[[Path], Any]


def open_database(path: Path) -> sqlite3.Connection:
    """Open an existing database read-write in autocommit mode.

    Never creates a new file.
    """
    uri = f"{Path(path).resolve().as_uri()}?mode=rw"
    return sqlite3.connect(uri, uri=True, isolation_level=None)


def is_open_error(error: sqlite3.Error) -> bool:
    """True if the engine reported that the file is not openable as a database."""
    code = getattr(error, "sqlite_errorcode", None)
    return code is not None and (code & 0xFF) in OPEN_ERROR_CODES


def file_size(path: Path, error: type[VacuumError]) -> int:
    try:
        return os.stat(path).st_size
    except OSError as e:
        raise error(path, e) from e


def compact(target: ValidatedTarget, connect: Connect = open_database) -> CompactionOutcome:
    """
    VACUUM and REINDEX one database and measure the size change.

    The operation is all or nothing: if either statement fails no outcome is
    produced. Nothing is retried, since repeated VACUUMs on a failing file
    can make corruption worse.

    Args:
        target: Database to compact
        connect: Engine entry point returning a connection with
            ``execute(sql)`` and ``close()``

    Returns:
        CompactionOutcome with sizes read right before and after

    Raises:
        EngineOpenError: the database could not be opened
        EngineExecuteError: a statement failed
    """
    path = target.path
    size_before = file_size(path, EngineOpenError)

    try:
        connection = connect(path)
    except sqlite3.Error as e:
        raise EngineOpenError(path, e) from e
    log.debug("Connected to %s", path)

    with closing(connection):
        for statement in STATEMENTS:
            try:
                connection.execute(statement)
            except sqlite3.Error as e:
                if is_open_error(e):
                    raise EngineOpenError(path, e) from e
                raise EngineExecuteError(path, e) from e
            log.debug("Executed %s on %s", statement, path)

    size_after = file_size(path, EngineExecuteError)
    outcome = CompactionOutcome(path=path, size_before=size_before, size_after=size_after)
    log.info("Compacted %s (%d -> %d)", path, size_before, size_after)
    return outcome
