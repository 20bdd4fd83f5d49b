"""Data models for sqlite-vacuum."""

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Stage(str, Enum):
    """Pipeline stage in which an error occurred."""

    SCAN = "scan"
    CLASSIFY = "classify"
    OPEN = "open"
    COMPACT = "compact"


class ErrorKind(str, Enum):
    """Kind of a per-unit error."""

    ROOT_ACCESS = "RootAccess"  # scan root missing, not a directory or unreadable
    SCAN_ENTRY = "ScanEntry"  # a subtree could not be listed
    CLASSIFY = "Classify"  # reading a candidate's metadata or header failed
    ENGINE_OPEN = "EngineOpen"
    ENGINE_EXECUTE = "EngineExecute"


class ScanRoot(BaseModel):
    """A user-supplied directory to walk."""

    label: str = Field(..., description="Label as given on the command line")
    path: Path = Field(..., description="Resolved directory path")


class ValidatedTarget(BaseModel):
    """A file confirmed to be a SQLite database.

    Only the path is kept; sizes are read fresh by the compactor.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Path of the database file")


class CompactionOutcome(BaseModel):
    """Sizes measured around a successful compaction."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Path of the compacted database")
    size_before: int = Field(..., description="Size in bytes before VACUUM")
    size_after: int = Field(..., description="Size in bytes after REINDEX")

    @property
    def delta(self) -> int:
        """Bytes reclaimed. Negative if the file grew."""
        return self.size_before - self.size_after


class Progress(BaseModel):
    """A target was compacted."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["progress"] = "progress"
    message: str = Field(..., description="Human-readable summary")
    path: Path = Field(..., description="Path of the compacted database")
    delta: int = Field(..., description="Bytes reclaimed (signed)")


class Failure(BaseModel):
    """A unit of work (root, entry or target) failed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    path: Path = Field(..., description="Offending path")
    cause: str = Field(..., description="Underlying cause")
    stage: Stage = Field(..., description="Stage that failed")
    error_kind: ErrorKind = Field(..., description="Typed error kind")


StatusEvent = Annotated[Union[Progress, Failure], Field(discriminator="kind")]


class ThreadCrash(BaseModel):
    """An uncaught exception in a pipeline thread, found at join time."""

    thread_name: str = Field(..., description="Name of the crashed thread")
    cause: str = Field(..., description="repr of the uncaught exception")


class RunTotals(BaseModel):
    """Totals accumulated by the aggregator over a run."""

    total_delta: int = Field(0, description="Sum of all successful deltas")
    compacted: int = Field(0, description="Number of databases compacted")
    failed: int = Field(0, description="Number of failure events")
    internal_errors: list[ThreadCrash] = Field(default_factory=list)

    def add_progress(self, event: Progress) -> None:
        self.total_delta += event.delta
        self.compacted += 1

    def add_failure(self, event: Failure) -> None:
        self.failed += 1

    @property
    def clean(self) -> bool:
        """True if no failures or crashes were recorded."""
        return self.failed == 0 and not self.internal_errors
