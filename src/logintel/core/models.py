"""
Core data models for logintel.

Every parse strategy produces a ``LogEntry``; everything downstream
(store, analytics, comparison, alerts) works only with these dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

__all__ = [
    "LogLevel",
    "LogEntry",
    "AlertAction",
    "AlertRule",
    "LogAlert",
    "ComparisonStatistics",
    "ComparisonResult",
    "RetentionPolicy",
    "LogStatistics",
    "LogDataPoint",
    "ErrorCluster",
    "DirectoryStats",
    "RotationReport",
]

SIGNATURE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class LogLevel(Enum):
    """
    Canonical severity levels.

    Values are ordered by severity (higher = more severe). SUCCESS sits
    between INFORMATION and WARNING.
    """
    TRACE = 0
    DEBUG = 1
    INFORMATION = 2
    SUCCESS = 3
    WARNING = 4
    ERROR = 5
    CRITICAL = 6

    @classmethod
    def from_string(cls, level: str | None) -> "LogLevel":
        """
        Normalize a level alias.

        Handles: INFO, info, I, warn, warning, err, fatal, ok, start, etc.
        Anything unrecognized maps to INFORMATION.
        """
        if not level:
            return cls.INFORMATION
        mapping = {
            "trace": cls.TRACE,
            "verbose": cls.TRACE,
            "debug": cls.DEBUG,
            "dbg": cls.DEBUG,
            "info": cls.INFORMATION,
            "information": cls.INFORMATION,
            "start": cls.INFORMATION,
            "notice": cls.INFORMATION,
            "ok": cls.SUCCESS,
            "success": cls.SUCCESS,
            "warn": cls.WARNING,
            "warning": cls.WARNING,
            "error": cls.ERROR,
            "err": cls.ERROR,
            "fatal": cls.CRITICAL,
            "critical": cls.CRITICAL,
            "crit": cls.CRITICAL,
            # Single character abbreviations (Serilog-style short levels)
            "t": cls.TRACE,
            "v": cls.TRACE,
            "d": cls.DEBUG,
            "i": cls.INFORMATION,
            "w": cls.WARNING,
            "e": cls.ERROR,
            "f": cls.CRITICAL,
            "c": cls.CRITICAL,
        }
        return mapping.get(level.lower().strip(), cls.INFORMATION)

    @property
    def label(self) -> str:
        """Title-case name, e.g. ``Information``."""
        return self.name.capitalize()

    def __ge__(self, other: "LogLevel") -> bool:
        if self.__class__ is other.__class__:
            return self.value >= other.value
        return NotImplemented

    def __gt__(self, other: "LogLevel") -> bool:
        if self.__class__ is other.__class__:
            return self.value > other.value
        return NotImplemented

    def __le__(self, other: "LogLevel") -> bool:
        if self.__class__ is other.__class__:
            return self.value <= other.value
        return NotImplemented

    def __lt__(self, other: "LogLevel") -> bool:
        if self.__class__ is other.__class__:
            return self.value < other.value
        return NotImplemented


@dataclass
class LogEntry:
    """
    The canonical log record.

    ``id`` is 0 until the store assigns one. After that only
    ``highlighted`` is ever changed.
    """
    id: int = 0
    timestamp: datetime = field(default_factory=datetime.now)
    level: LogLevel = LogLevel.INFORMATION
    source: str = ""
    message: str = ""

    # Exception details
    exception_type: str | None = None
    exception_message: str | None = None
    stack_trace: str | None = None

    # Optional context
    category: str | None = None
    thread_id: str | None = None
    process_id: int | None = None
    machine_name: str | None = None
    user_name: str | None = None

    # Origin
    file_path: str = ""
    line_number: int = 0
    raw: str = ""

    highlighted: bool = False

    def is_error(self) -> bool:
        """Check if this is an error-level or higher entry."""
        return self.level >= LogLevel.ERROR

    @property
    def has_exception(self) -> bool:
        return bool(self.exception_type or self.stack_trace)

    @property
    def file_name(self) -> str:
        return Path(self.file_path).name if self.file_path else ""

    def formatted_timestamp(self, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """Return formatted timestamp string."""
        return self.timestamp.strftime(fmt)

    def signature(self) -> str:
        """
        Content signature used for de-duplication.

        Timestamp at millisecond precision, level, source and message.
        """
        ts = self.timestamp.strftime(SIGNATURE_TIME_FORMAT)[:-3]
        return f"{ts}|{self.level.name}|{self.source}|{self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON export."""
        result = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "source": self.source,
            "message": self.message,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "raw": self.raw,
            "highlighted": self.highlighted,
        }
        optional = {
            "exception_type": self.exception_type,
            "exception_message": self.exception_message,
            "stack_trace": self.stack_trace,
            "category": self.category,
            "thread_id": self.thread_id,
            "process_id": self.process_id,
            "machine_name": self.machine_name,
            "user_name": self.user_name,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        """Deserialize from dictionary."""
        timestamp = data.get("timestamp")
        return cls(
            id=int(data.get("id", 0)),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
            level=LogLevel[data.get("level", "INFORMATION")],
            source=data.get("source", ""),
            message=data.get("message", ""),
            exception_type=data.get("exception_type"),
            exception_message=data.get("exception_message"),
            stack_trace=data.get("stack_trace"),
            category=data.get("category"),
            thread_id=data.get("thread_id"),
            process_id=data.get("process_id"),
            machine_name=data.get("machine_name"),
            user_name=data.get("user_name"),
            file_path=data.get("file_path", ""),
            line_number=int(data.get("line_number", 0)),
            raw=data.get("raw", ""),
            highlighted=bool(data.get("highlighted", False)),
        )


class AlertAction(Enum):
    """What an alert rule does when it fires."""
    HIGHLIGHT = "highlight"
    NOTIFY = "notify"
    HIGHLIGHT_AND_NOTIFY = "highlight_and_notify"
    LOG_TO_FILE = "log_to_file"

    @property
    def highlights(self) -> bool:
        return self in (AlertAction.HIGHLIGHT, AlertAction.HIGHLIGHT_AND_NOTIFY)


@dataclass
class AlertRule:
    """
    A threshold rule evaluated over a sliding window of arrivals.

    ``last_triggered`` and ``trigger_count`` are maintained by the engine.
    """
    name: str
    pattern: str
    minimum_level: LogLevel = LogLevel.ERROR
    threshold: int = 1
    window: timedelta = timedelta(minutes=5)
    use_regex: bool = False
    enabled: bool = True
    action: AlertAction = AlertAction.HIGHLIGHT_AND_NOTIFY
    id: str = field(default_factory=lambda: uuid4().hex)
    last_triggered: datetime | None = None
    trigger_count: int = 0


@dataclass
class LogAlert:
    """Record of a single rule firing."""
    rule_id: str
    rule_name: str
    message: str
    count: int
    severity: LogLevel
    timestamp: datetime = field(default_factory=datetime.now)
    entries: list[LogEntry] = field(default_factory=list)
    acknowledged: bool = False


@dataclass
class ComparisonStatistics:
    """Aggregate numbers for a comparison run."""
    total_left: int = 0
    total_right: int = 0
    unique_left: int = 0
    unique_right: int = 0
    identical: int = 0
    similar: int = 0
    similarity_percentage: float = 0.0


@dataclass
class ComparisonResult:
    """Outcome of matching a left entry set against a right one."""
    identical: list[tuple[LogEntry, LogEntry]] = field(default_factory=list)
    similar: list[tuple[LogEntry, LogEntry, float]] = field(default_factory=list)
    left_only: list[LogEntry] = field(default_factory=list)
    right_only: list[LogEntry] = field(default_factory=list)
    statistics: ComparisonStatistics = field(default_factory=ComparisonStatistics)


@dataclass
class RetentionPolicy:
    """Rules for archiving, compressing and deleting log files."""
    enabled: bool = True
    retention_days: int = 30
    auto_clean: bool = False
    require_confirmation: bool = True
    max_total_size_mb: int = 1000
    compress_old_logs: bool = True
    compress_after_days: int = 7
    max_archive_age_days: int = 30
    last_cleanup: datetime | None = None

    @property
    def max_total_size_bytes(self) -> int:
        return self.max_total_size_mb * 1024 * 1024


@dataclass
class LogStatistics:
    """Per-level counts and derived health figures for a set of entries."""
    total_count: int = 0
    trace_count: int = 0
    debug_count: int = 0
    info_count: int = 0
    success_count: int = 0
    warning_count: int = 0
    error_count: int = 0
    critical_count: int = 0
    oldest: datetime | None = None
    newest: datetime | None = None
    error_rate: float = 0.0  # percent of total
    warning_rate: float = 0.0
    health_score: float = 100.0

    @property
    def time_span(self) -> timedelta:
        if self.oldest is None or self.newest is None:
            return timedelta(0)
        return self.newest - self.oldest


@dataclass
class LogDataPoint:
    """One bucket of a time series."""
    timestamp: datetime
    value: float
    label: str = ""


@dataclass
class ErrorCluster:
    """A group of errors sharing a pattern."""
    id: int
    pattern: str
    occurrence_count: int
    first_seen: datetime
    last_seen: datetime
    examples: list[LogEntry] = field(default_factory=list)
    root_cause: str = ""
    confidence: float = 0.0


@dataclass
class DirectoryStats:
    """Snapshot of a log directory's active and archived files."""
    active_log_count: int = 0
    archive_count: int = 0
    total_log_size: int = 0
    total_archive_size: int = 0
    oldest_log: datetime | None = None
    newest_log: datetime | None = None

    @property
    def total_size(self) -> int:
        return self.total_log_size + self.total_archive_size


@dataclass
class RotationReport:
    """What a full rotation pass did."""
    archived: list[Path] = field(default_factory=list)
    compressed: list[Path] = field(default_factory=list)
    deleted_archives: int = 0
    budget_archived: list[Path] = field(default_factory=list)
