"""
Infrastructure layer: filesystem sources, the entry store, the directory
watcher and the retention manager.
"""

from logintel.infrastructure.sources import (
    FileCursor,
    FileStreamSource,
    TailReader,
    discover_log_files,
    is_log_file,
    read_all_lines,
)
from logintel.infrastructure.store import EntryStore
from logintel.infrastructure.watching import IngestionWatcher, SignatureCache
from logintel.infrastructure.retention import RetentionManager

__all__ = [
    # Sources
    "FileCursor",
    "FileStreamSource",
    "TailReader",
    "discover_log_files",
    "is_log_file",
    "read_all_lines",
    # Store
    "EntryStore",
    # Watching
    "IngestionWatcher",
    "SignatureCache",
    # Retention
    "RetentionManager",
]
