"""
Fallback strategy for lines no other strategy recognises, plus the
exception scanner shared by every strategy.
"""

import re

from logintel.core.base import ParseContext
from logintel.core.models import LogEntry, LogLevel

__all__ = ["FallbackStrategy", "ExceptionInfo", "extract_exception", "extract_exception_type"]


# Dotted type name ending in "Exception", its message, and an optional
# " at ..." stack tail
EXCEPTION_PATTERN = re.compile(
    r"(?P<type>\w+(?:\.\w+)*Exception):\s*(?P<message>.*?)(?:\s+at\s+(?P<stack>.*))?$"
)


class ExceptionInfo:
    """Exception details pulled out of free text."""

    __slots__ = ("type", "message", "stack_trace")

    def __init__(self, type: str, message: str, stack_trace: str | None):
        self.type = type
        self.message = message
        self.stack_trace = stack_trace

    def apply(self, entry: LogEntry) -> None:
        entry.exception_type = self.type
        entry.exception_message = self.message
        entry.stack_trace = self.stack_trace


def extract_exception(text: str | None) -> ExceptionInfo | None:
    """
    Find an ``XxxException: message [at stack]`` fragment in text.

    Returns None if the text contains no exception.
    """
    if not text:
        return None
    match = EXCEPTION_PATTERN.search(text)
    if not match:
        return None
    stack = match.group("stack")
    return ExceptionInfo(
        type=match.group("type"),
        message=match.group("message").strip(),
        stack_trace=stack.strip() if stack else None,
    )


def extract_exception_type(text: str | None) -> str | None:
    """Just the exception type name, if any."""
    info = extract_exception(text)
    return info.type if info else None


class FallbackStrategy:
    """
    Accepts any line.

    The whole line becomes the message at INFORMATION level, stamped with
    the ingestion clock. If an exception is mentioned the entry is
    promoted to ERROR and the exception fields are filled in.
    """

    name = "fallback"

    def try_parse(self, line: str, context: ParseContext) -> LogEntry:
        entry = LogEntry(
            timestamp=context.clock(),
            level=LogLevel.INFORMATION,
            source=context.default_source,
            message=line,
            file_path=context.file_path,
            line_number=context.line_number,
            raw=line,
        )

        info = extract_exception(line)
        if info:
            info.apply(entry)
            entry.level = LogLevel.ERROR

        return entry
