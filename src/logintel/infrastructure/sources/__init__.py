"""
File source adapters.
"""

from logintel.infrastructure.sources.file_source import (
    LOG_EXTENSIONS,
    FileCursor,
    FileStreamSource,
    TailReader,
    is_log_file,
    discover_log_files,
    read_all_lines,
)

__all__ = [
    "LOG_EXTENSIONS",
    "FileCursor",
    "FileStreamSource",
    "TailReader",
    "is_log_file",
    "discover_log_files",
    "read_all_lines",
]
