"""
File sources: whole-file reads and incremental tailing.

Files are only ever opened read-only, so the writing process is never
blocked. Gzip files are decompressed transparently.
"""

import gzip
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

__all__ = [
    "LOG_EXTENSIONS",
    "FileCursor",
    "FileStreamSource",
    "TailReader",
    "is_log_file",
    "discover_log_files",
    "read_all_lines",
]


LOG_EXTENSIONS = (".log", ".jsonl", ".txt", ".gz")


def is_log_file(path: str | Path) -> bool:
    """Ingestible extension, and not a rotated archive."""
    path = Path(path)
    return path.suffix.lower() in LOG_EXTENSIONS and ".archive" not in path.name.lower()


def discover_log_files(directory: str | Path, recursive: bool = True) -> list[Path]:
    """All ingestible files under a directory, sorted by path."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    candidates = directory.rglob("*") if recursive else directory.glob("*")
    return sorted(p for p in candidates if p.is_file() and is_log_file(p))


def read_all_lines(path: str | Path, encoding: str = "utf-8", errors: str = "replace") -> Iterator[str]:
    """Yield every line of a file without trailing newlines."""
    return FileStreamSource(path, encoding, errors).read_lines()


class FileStreamSource:
    """
    Line-by-line reader for a complete file.

    Example:
        source = FileStreamSource("/var/log/app.log.gz")
        for line in source.read_lines():
            print(line)
    """

    def __init__(
        self,
        path: str | Path,
        encoding: str = "utf-8",
        errors: str = "replace"
    ):
        self.path = Path(path)
        self.encoding = encoding
        self.errors = errors

        if not self.path.exists():
            raise FileNotFoundError(f"File not found: {self.path}")

    @property
    def compressed(self) -> bool:
        return self.path.suffix.lower() == ".gz"

    def read_lines(self) -> Iterator[str]:
        """
        Read lines from file, yielding one at a time.

        Yields:
            Log lines (without trailing newline)
        """
        if self.compressed:
            handle = gzip.open(self.path, "rt", encoding=self.encoding, errors=self.errors)
        else:
            handle = open(self.path, "r", encoding=self.encoding, errors=self.errors)
        with handle as f:
            for line in f:
                yield line.rstrip("\n\r")


@dataclass
class FileCursor:
    """How far into a file ingestion has got."""
    path: Path
    offset: int = 0
    line_number: int = 0


class TailReader:
    """
    Reads only what was appended since the cursor.

    A trailing line without a newline is left for the next read. A file
    that shrank below the cursor is treated as truncated and re-read from
    the start.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace"):
        self.encoding = encoding
        self.errors = errors

    def has_new_data(self, cursor: FileCursor) -> bool:
        try:
            return cursor.path.stat().st_size != cursor.offset
        except FileNotFoundError:
            return False

    def read_new_lines(self, cursor: FileCursor) -> list[tuple[int, str]]:
        """
        Read complete new lines and advance the cursor.

        Returns:
            ``(line_number, text)`` pairs

        Raises:
            OSError: If the file cannot be opened or read
        """
        if cursor.path.suffix.lower() == ".gz":
            return self._read_compressed(cursor)

        size = cursor.path.stat().st_size
        if size < cursor.offset:
            cursor.offset = 0
            cursor.line_number = 0
        if size == cursor.offset:
            return []

        with open(cursor.path, "rb") as f:
            f.seek(cursor.offset)
            data = f.read(size - cursor.offset)

        end = data.rfind(b"\n")
        if end < 0:
            return []
        complete = data[:end + 1]
        cursor.offset += len(complete)

        lines = []
        for raw in complete.split(b"\n")[:-1]:
            cursor.line_number += 1
            lines.append((cursor.line_number, raw.decode(self.encoding, self.errors).rstrip("\r")))
        return lines

    def _read_compressed(self, cursor: FileCursor) -> list[tuple[int, str]]:
        # Offsets are meaningless inside a gzip stream; re-read the whole
        # file and skip the lines already consumed.
        size = cursor.path.stat().st_size
        if size == cursor.offset:
            return []
        if size < cursor.offset:
            cursor.line_number = 0

        lines = []
        source = FileStreamSource(cursor.path, self.encoding, self.errors)
        for number, text in enumerate(source.read_lines(), 1):
            if number > cursor.line_number:
                lines.append((number, text))
        cursor.offset = size
        if lines:
            cursor.line_number = lines[-1][0]
        return lines
