"""
Shared parsing primitives: the strategy protocol, parse context,
timestamp parsing and source inference.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from dateutil import parser as dateutil_parser

from logintel.core.models import LogEntry

__all__ = [
    "TIMESTAMP_FORMATS",
    "ParseContext",
    "LineStrategy",
    "parse_timestamp",
    "to_local_naive",
    "infer_source",
]


# Explicit formats tried before falling back to dateutil
TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    # %z also accepts a literal Z
    "%Y-%m-%d %H:%M:%S.%f %z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
]

# Filename keyword -> canonical source name
SOURCE_KEYWORDS = [
    ("desktop", "Desktop"),
    ("server", "Server"),
    ("launcher", "Launcher"),
    ("agent", "Agent"),
    ("errorlogviewer", "LogViewer"),
    ("viewer", "LogViewer"),
]


@dataclass
class ParseContext:
    """Where a line came from, plus the clock used for missing timestamps."""
    file_path: str = ""
    line_number: int = 0
    clock: Callable[[], datetime] = field(default=datetime.now)

    @property
    def default_source(self) -> str:
        return infer_source(self.file_path)


@runtime_checkable
class LineStrategy(Protocol):
    """
    One way of recognising a log line.

    ``try_parse`` returns None when the line is not in this strategy's
    format, so the next strategy can try.
    """

    name: str

    def try_parse(self, line: str, context: ParseContext) -> LogEntry | None:
        ...


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Try to parse a timestamp string using multiple formats.

    Returns a naive local datetime, or None if nothing matched.
    """
    if not value:
        return None

    value = value.strip()
    # strptime only understands six fractional digits
    candidate = value.replace(",", ".", 1) if "," in value[:24] else value

    for fmt in TIMESTAMP_FORMATS:
        try:
            return to_local_naive(datetime.strptime(candidate, fmt))
        except ValueError:
            continue

    try:
        return to_local_naive(dateutil_parser.parse(value))
    except (ValueError, TypeError, OverflowError):
        return None


def infer_source(file_path: str | None) -> str:
    """
    Derive a source name from a file path.

    Known component keywords map to canonical names; otherwise the
    file stem is used.
    """
    if not file_path:
        return "Unknown"
    stem = Path(file_path).name.split(".")[0]
    lowered = stem.lower()
    for keyword, name in SOURCE_KEYWORDS:
        if keyword in lowered:
            return name
    return stem or "Unknown"
