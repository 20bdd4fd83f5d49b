"""Decide whether a path is a SQLite database worth compacting."""

import os
import stat
from pathlib import Path
from typing import Collection

from sqlite_vacuum.config import DEFAULT_EXTENSIONS
from sqlite_vacuum.errors import ClassifyError
from sqlite_vacuum.models import ValidatedTarget

# Header of every SQLite 3 database file
SQLITE_MAGIC = b"SQLite format 3\x00"

# Smallest valid database: one page of the minimum page size
MIN_DATABASE_SIZE = 512


def has_sqlite_header(path: Path) -> bool:
    """
    Compare the leading bytes of a file against the SQLite magic.

    Raises:
        ClassifyError: the file could not be opened or read
    """
    try:
        with open(path, "rb") as f:
            header = f.read(len(SQLITE_MAGIC))
    except OSError as e:
        raise ClassifyError(path, e) from e
    return header == SQLITE_MAGIC


def classify(
    path: Path,
    aggressive: bool = False,
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
) -> ValidatedTarget | None:
    """
    Classify a filesystem path.

    Fast mode only looks at the file suffix. Aggressive mode ignores the
    suffix and reads the file header instead, which avoids false positives
    and false negatives at the cost of opening every file.

    Args:
        path: Candidate path
        aggressive: Inspect the header instead of the extension
        extensions: Suffixes accepted in fast mode

    Returns:
        ValidatedTarget if the path is a database, None if it is not

    Raises:
        ClassifyError: metadata or content could not be read
    """
    path = Path(path)

    try:
        st = os.stat(path)
    except FileNotFoundError:
        # Vanished, or a dangling symlink
        return None
    except OSError as e:
        raise ClassifyError(path, e) from e

    if not stat.S_ISREG(st.st_mode):
        return None

    if st.st_size < MIN_DATABASE_SIZE:
        return None

    if aggressive:
        if not has_sqlite_header(path):
            return None
    elif path.suffix not in extensions:
        return None

    return ValidatedTarget(path=path)
