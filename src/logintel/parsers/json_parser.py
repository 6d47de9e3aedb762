"""
Structured JSON log lines (one object per line).
"""

import json
from datetime import datetime
from typing import Any

from logintel.core.base import ParseContext, parse_timestamp
from logintel.core.exceptions import ParseFailure
from logintel.core.models import LogEntry, LogLevel
from logintel.core.security import validate_json_depth, SecurityValidationError
from logintel.parsers.generic import extract_exception

__all__ = ["JsonLineStrategy"]


class JsonLineStrategy:
    """
    Parse JSON objects using alias lists for each canonical field.

    Field names follow the conventions of the common structured loggers
    (Serilog, NLog, Python json loggers, Logstash).
    """

    name = "json"

    TIMESTAMP_FIELDS = ["Timestamp", "timestamp", "@timestamp", "time", "ts"]
    LEVEL_FIELDS = ["Level", "level", "severity", "LogLevel", "levelname", "@l"]
    MESSAGE_FIELDS = ["Message", "message", "msg", "text", "RenderedMessage", "@m"]
    SOURCE_FIELDS = ["Category", "category", "logger", "source", "SourceContext"]
    EXCEPTION_FIELDS = ["Exception", "exception", "error", "@x"]
    THREAD_FIELDS = ["ThreadId", "threadId", "thread"]
    PROCESS_FIELDS = ["ProcessId", "processId", "process", "pid"]
    MACHINE_FIELDS = ["MachineName", "machine", "host", "hostname"]
    USER_FIELDS = ["UserName", "user", "username"]

    def try_parse(self, line: str, context: ParseContext) -> LogEntry | None:
        stripped = line.strip()
        if not stripped.startswith("{"):
            return None

        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            # Not JSON after all; let the text strategies try
            return None

        if not isinstance(data, dict):
            return None

        try:
            validate_json_depth(data)
        except SecurityValidationError as e:
            raise ParseFailure(e.message, line=line, line_number=context.line_number)

        timestamp = self._parse_json_timestamp(self._first(data, self.TIMESTAMP_FIELDS))
        source = self._first(data, self.SOURCE_FIELDS)

        entry = LogEntry(
            timestamp=timestamp or context.clock(),
            level=LogLevel.from_string(self._as_text(self._first(data, self.LEVEL_FIELDS))),
            source=str(source) if source else context.default_source,
            message=self._as_text(self._first(data, self.MESSAGE_FIELDS)) or "",
            category=self._as_text(source),
            thread_id=self._as_text(self._first(data, self.THREAD_FIELDS)),
            process_id=self._as_int(self._first(data, self.PROCESS_FIELDS)),
            machine_name=self._as_text(self._first(data, self.MACHINE_FIELDS)),
            user_name=self._as_text(self._first(data, self.USER_FIELDS)),
            file_path=context.file_path,
            line_number=context.line_number,
            raw=line,
        )

        self._apply_exception(entry, self._first(data, self.EXCEPTION_FIELDS))

        if not entry.message:
            entry.message = entry.exception_message or stripped

        return entry

    @staticmethod
    def _first(data: dict[str, Any], names: list[str]) -> Any:
        for name in names:
            value = data.get(name)
            if value is not None and value != "":
                return value
        return None

    @staticmethod
    def _as_text(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    @staticmethod
    def _as_int(value: Any) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _parse_json_timestamp(value: Any) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            # Epoch seconds, or milliseconds when implausibly large
            seconds = value / 1000 if value > 1e11 else value
            try:
                return datetime.fromtimestamp(seconds)
            except (OverflowError, OSError, ValueError):
                return None
        return parse_timestamp(str(value))

    def _apply_exception(self, entry: LogEntry, value: Any) -> None:
        if value is None:
            return

        if isinstance(value, dict):
            entry.exception_type = self._as_text(
                self._first(value, ["Type", "type", "ExceptionType", "ClassName"])
            )
            entry.exception_message = self._as_text(self._first(value, ["Message", "message"]))
            entry.stack_trace = self._as_text(
                self._first(value, ["StackTrace", "stackTrace", "stack", "StackTraceString"])
            )
            return

        text = str(value)
        info = extract_exception(text)
        if info:
            info.apply(entry)
        else:
            entry.exception_message = text
            entry.stack_trace = text
