"""
Core data models, configuration and shared primitives for logintel.
"""

from logintel.core.models import (
    LogLevel,
    LogEntry,
    AlertAction,
    AlertRule,
    LogAlert,
    ComparisonStatistics,
    ComparisonResult,
    RetentionPolicy,
    LogStatistics,
    LogDataPoint,
    ErrorCluster,
    DirectoryStats,
    RotationReport,
)
from logintel.core.base import LineStrategy, ParseContext, parse_timestamp, infer_source
from logintel.core.config import EngineConfig
from logintel.core.events import EventHook
from logintel.core.exceptions import (
    LogIntelError,
    IngestionIOError,
    ParseFailure,
    WatcherFault,
    PersistenceError,
    RetentionOpError,
    ConfigurationError,
)
from logintel.core.security import (
    MAX_LINE_LENGTH,
    MAX_JSON_DEPTH,
    LineTooLongError,
    SecurityValidationError,
    validate_line_length,
    validate_json_depth,
    validate_regex_pattern,
)

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
    "LineStrategy",
    "ParseContext",
    "parse_timestamp",
    "infer_source",
    "EngineConfig",
    "EventHook",
    "LogIntelError",
    "IngestionIOError",
    "ParseFailure",
    "WatcherFault",
    "PersistenceError",
    "RetentionOpError",
    "ConfigurationError",
    # Security
    "MAX_LINE_LENGTH",
    "MAX_JSON_DEPTH",
    "LineTooLongError",
    "SecurityValidationError",
    "validate_line_length",
    "validate_json_depth",
    "validate_regex_pattern",
]
