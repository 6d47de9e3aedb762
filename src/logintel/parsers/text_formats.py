"""
Line-oriented text formats recognised by regular expression.

Each format is a ``RegexLineStrategy`` instance; the parser tries them in
the order given by ``TEXT_STRATEGIES``.
"""

import re

from logintel.core.base import ParseContext, parse_timestamp
from logintel.core.models import LogEntry, LogLevel
from logintel.parsers.generic import extract_exception

__all__ = [
    "RegexLineStrategy",
    "LEVEL_FIRST",
    "BRACKETED",
    "TIMESTAMP_BRACKET_LEVEL",
    "TIMESTAMP_LEVEL",
    "TEXT_STRATEGIES",
]


# Shared timestamp fragment: date, time, optional fraction, optional zone
_TS = (
    r"\d{4}[-/]\d{2}[-/]\d{2}[T ]\d{2}:\d{2}:\d{2}"
    r"(?:[.,]\d{1,7})?"
    r"(?:\s?(?:Z|[+-]\d{2}:?\d{2}))?"
)


class RegexLineStrategy:
    """
    A strategy backed by one regex with named groups.

    Recognised groups: ``timestamp``, ``level``, ``message``. A missing
    or unparseable timestamp falls back to the context clock; a missing
    level means INFORMATION.
    """

    def __init__(self, name: str, pattern: str, flags: int = 0):
        self.name = name
        self.pattern = re.compile(pattern, flags)

    def try_parse(self, line: str, context: ParseContext) -> LogEntry | None:
        match = self.pattern.match(line)
        if not match:
            return None

        groups = match.groupdict()
        timestamp = parse_timestamp(groups.get("timestamp")) or context.clock()
        message = (groups.get("message") or "").strip()

        entry = LogEntry(
            timestamp=timestamp,
            level=LogLevel.from_string(groups.get("level")),
            source=context.default_source,
            message=message,
            file_path=context.file_path,
            line_number=context.line_number,
            raw=line,
        )

        info = extract_exception(message)
        if info:
            info.apply(entry)

        return entry

    def __repr__(self) -> str:
        return f"RegexLineStrategy({self.name!r})"


# INFO 2024-01-01 10:00:00.123 ✅ Service started
LEVEL_FIRST = RegexLineStrategy(
    "level_first",
    r"^(?P<level>START|OK|INFO|WARN|WARNING|DEBUG|ERROR|TRACE|CRITICAL)\s+"
    r"(?P<timestamp>" + _TS + r")\s+"
    r"(?:[^\w\s]+\s*)?"  # optional status glyph
    r"(?P<message>.*)$",
    re.IGNORECASE,
)

# [2024-01-01 10:00:00] [SUCCESS] Update applied
BRACKETED = RegexLineStrategy(
    "bracketed",
    r"^\[(?P<timestamp>[^\]]+)\]\s+"
    r"\[(?P<level>INFO|WARNING|WARN|ERROR|SUCCESS|DEBUG|TRACE|CRITICAL)\]\s+"
    r"(?P<message>.*)$",
    re.IGNORECASE,
)

# 2024-01-01 10:00:00.123 +02:00 [Error] Connection lost
TIMESTAMP_BRACKET_LEVEL = RegexLineStrategy(
    "timestamp_bracket_level",
    r"^(?P<timestamp>" + _TS + r")\s+"
    r"\[(?P<level>[A-Za-z]+)\]\s*"
    r"(?P<message>.*)$",
)

# 2024-01-01T10:00:00Z ERROR something broke
TIMESTAMP_LEVEL = RegexLineStrategy(
    "timestamp_level",
    r"^(?P<timestamp>" + _TS + r")\s*"
    r"(?:(?P<level>TRACE|DEBUG|INFORMATION|INFO|WARNING|WARN|ERROR|FATAL|CRITICAL)\b)?"
    r"\s*[-:]?\s*"
    r"(?P<message>.*)$",
    re.IGNORECASE,
)

TEXT_STRATEGIES = [LEVEL_FIRST, BRACKETED, TIMESTAMP_BRACKET_LEVEL, TIMESTAMP_LEVEL]
