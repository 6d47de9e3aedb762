"""
Service protocols shared between components.

Components depend on these shapes rather than on each other's concrete
classes, so each can be constructed and tested on its own.
"""

from datetime import timedelta
from pathlib import Path
from typing import Protocol, runtime_checkable

from logintel.core.models import LogAlert, LogEntry

__all__ = [
    "EntryProcessor",
    "OffsetBookkeeper",
    "StartupSweeper",
]


@runtime_checkable
class EntryProcessor(Protocol):
    """
    Receives every newly ingested entry.

    The alert engine is the built-in implementation.
    """

    def process_entry(self, entry: LogEntry) -> list[LogAlert]:
        ...


@runtime_checkable
class OffsetBookkeeper(Protocol):
    """
    Keeps tail offsets consistent when files are moved or deleted
    by someone other than the writer.
    """

    def file_moved(self, old_path: Path, new_path: Path) -> None:
        ...

    def file_removed(self, path: Path) -> None:
        ...


class StartupSweeper(Protocol):
    """Clears or ages out log files before monitoring starts."""

    def clear_directory(self, directory: Path, include_archives: bool = False) -> int:
        ...

    def delete_files_older_than(self, directory: Path, max_age: timedelta) -> int:
        ...
