"""
logintel - tail, parse, analyze, compare and alert on heterogeneous log files.

Usage:
    from logintel import parse_file, analyze, compare_files

    # Parse a file in any supported line format
    entries = parse_file("server.log")

    # Statistics and health score
    stats = analyze("server.log")

    # Compare two runs
    result = compare_files("run1.log", "run2.log")
    print(result.statistics.similarity_percentage)

    # Live monitoring with alerts
    from logintel import LogIntelligenceEngine
    with LogIntelligenceEngine() as engine:
        engine.alert_fired.subscribe(print)
        engine.start("/var/log/myapp")
"""

__version__ = "0.3.0"

from pathlib import Path

from logintel.core.models import (
    LogEntry,
    LogLevel,
    AlertAction,
    AlertRule,
    LogAlert,
    ComparisonResult,
    ComparisonStatistics,
    RetentionPolicy,
    LogStatistics,
    ErrorCluster,
)
from logintel.core.config import EngineConfig
from logintel.core.exceptions import (
    LogIntelError,
    IngestionIOError,
    ParseFailure,
    WatcherFault,
    PersistenceError,
    RetentionOpError,
    ConfigurationError,
)
from logintel.parsers import FormatDetectingParser, StrategyRegistry
from logintel.infrastructure import EntryStore, IngestionWatcher, RetentionManager
from logintel.analysis import AnalyticsEngine, ComparisonEngine
from logintel.alerts import AlertEngine
from logintel.application import LogIntelligenceEngine

__all__ = [
    # Version
    "__version__",
    # Core models
    "LogEntry",
    "LogLevel",
    "AlertAction",
    "AlertRule",
    "LogAlert",
    "ComparisonResult",
    "ComparisonStatistics",
    "RetentionPolicy",
    "LogStatistics",
    "ErrorCluster",
    "EngineConfig",
    # Exceptions
    "LogIntelError",
    "IngestionIOError",
    "ParseFailure",
    "WatcherFault",
    "PersistenceError",
    "RetentionOpError",
    "ConfigurationError",
    # Components
    "FormatDetectingParser",
    "StrategyRegistry",
    "EntryStore",
    "IngestionWatcher",
    "RetentionManager",
    "AnalyticsEngine",
    "ComparisonEngine",
    "AlertEngine",
    "LogIntelligenceEngine",
    # Convenience functions
    "parse_file",
    "analyze",
    "compare_files",
]


def parse_file(file_path: str | Path) -> list[LogEntry]:
    """
    Parse a log file into canonical entries.

    Args:
        file_path: Path to a plain or gzip-compressed log file

    Returns:
        List of LogEntry objects in file order
    """
    return FormatDetectingParser().parse_file(file_path)


def analyze(file_path: str | Path) -> LogStatistics:
    """
    Parse a file and summarize it.

    Returns:
        LogStatistics including the health score
    """
    return AnalyticsEngine().get_statistics(parse_file(file_path))


def compare_files(left: str | Path, right: str | Path, threshold: float = 0.8) -> ComparisonResult:
    """
    Parse two files and match their entries.

    Args:
        left: First file
        right: Second file
        threshold: Minimum similarity for a pair to match (exclusive)

    Returns:
        ComparisonResult with identical/similar pairs and unmatched entries
    """
    return ComparisonEngine(threshold).compare(parse_file(left), parse_file(right))
