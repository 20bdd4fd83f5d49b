"""Error types for sqlite-vacuum.

Every error is local to one unit of work (a root, a directory entry or a
target) and is turned into a ``Failure`` event instead of unwinding the
pipeline.
"""

from pathlib import Path

from sqlite_vacuum.display import printable
from sqlite_vacuum.models import ErrorKind, Failure, Stage


class VacuumError(Exception):
    """Base class for per-unit errors."""

    kind: ErrorKind
    stage: Stage

    def __init__(self, path: Path, cause: object) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{self.kind.value} {self.path}: {cause}")

    def to_event(self) -> Failure:
        """Convert to a status event."""
        return Failure(
            path=self.path,
            cause=printable(str(self.cause)),
            stage=self.stage,
            error_kind=self.kind,
        )


class RootAccessError(VacuumError):
    kind = ErrorKind.ROOT_ACCESS
    stage = Stage.SCAN


class ScanEntryError(VacuumError):
    kind = ErrorKind.SCAN_ENTRY
    stage = Stage.SCAN


class ClassifyError(VacuumError):
    kind = ErrorKind.CLASSIFY
    stage = Stage.CLASSIFY


class EngineOpenError(VacuumError):
    kind = ErrorKind.ENGINE_OPEN
    stage = Stage.OPEN


class EngineExecuteError(VacuumError):
    kind = ErrorKind.ENGINE_EXECUTE
    stage = Stage.COMPACT
