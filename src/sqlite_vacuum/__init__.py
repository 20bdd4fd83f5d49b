"""sqlite-vacuum - reclaim disk space by compacting SQLite databases."""

__version__ = "0.4.0"
