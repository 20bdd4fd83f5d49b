"""Shared fixtures for sqlite-vacuum tests."""

import os
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path

import pytest

from sqlite_vacuum.classifier import SQLITE_MAGIC
from sqlite_vacuum.models import Failure, Progress, RunTotals, ThreadCrash


def make_sqlite_db(path: Path, rows: int = 200, delete: bool = True) -> Path:
    """Create a real database with free pages left behind by deleted rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(path)) as connection:
        connection.execute("CREATE TABLE blobs (id INTEGER PRIMARY KEY, data BLOB)")
        connection.execute("CREATE INDEX blobs_data ON blobs (data)")
        connection.executemany(
            "INSERT INTO blobs (data) VALUES (?)",
            [(os.urandom(2000),) for _ in range(rows)],
        )
        if delete:
            connection.execute("DELETE FROM blobs WHERE id % 2 = 0")
        connection.commit()
    return path


def make_fake_db(path: Path, size: int = 2000) -> Path:
    """Write a file with a SQLite header padded to the given size."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(SQLITE_MAGIC + b"\0" * (size - len(SQLITE_MAGIC)))
    return path


class FakeConnection:
    def __init__(self, engine: "FakeEngine", path: Path) -> None:
        self.engine = engine
        self.path = path
        self.closed = False

    def execute(self, statement: str) -> None:
        self.engine.statements.append((self.path.name, statement))
        failing = self.engine.fail_on.get(self.path.name)
        if failing == statement:
            raise sqlite3.OperationalError(f"{statement} failed")
        if statement == "VACUUM;":
            shrink = self.engine.shrink.get(self.path.name, 0)
            os.truncate(self.path, os.stat(self.path).st_size - shrink)

    def close(self) -> None:
        self.closed = True
        self.engine.closed.append(self.path.name)


class FakeEngine:
    """
    Stand-in for sqlite3 that resizes files by a fixed amount on VACUUM.

    Args:
        shrink: Bytes removed per file name (negative grows the file)
        unopenable: File names whose connect() fails
        fail_on: File name -> statement that fails
    """

    def __init__(self, shrink=None, unopenable=(), fail_on=None) -> None:
        self.shrink = shrink or {}
        self.unopenable = set(unopenable)
        self.fail_on = fail_on or {}
        self.statements: list[tuple[str, str]] = []
        self.closed: list[str] = []

    def __call__(self, path: Path) -> FakeConnection:
        if path.name in self.unopenable:
            raise sqlite3.DatabaseError("file is not a database")
        return FakeConnection(self, path)


class RecordingReporter:
    """Reporter that keeps everything it is given."""

    def __init__(self) -> None:
        self.progress_events: list[Progress] = []
        self.failures: list[Failure] = []
        self.crashes: list[ThreadCrash] = []
        self.summaries: list[RunTotals] = []
        self.sessions = 0
        self.in_session = False

    def progress(self, event: Progress) -> None:
        self.progress_events.append(event)

    def failure(self, event: Failure) -> None:
        self.failures.append(event)

    def crash(self, crash: ThreadCrash) -> None:
        self.crashes.append(crash)

    def summary(self, totals: RunTotals) -> None:
        self.summaries.append(totals)

    @contextmanager
    def session(self):
        self.sessions += 1
        self.in_session = True
        try:
            yield
        finally:
            self.in_session = False


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def sqlite_db(tmp_path):
    return make_sqlite_db(tmp_path / "real.db")
