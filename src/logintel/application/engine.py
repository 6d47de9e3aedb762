"""
Engine facade.

Builds every component from one ``EngineConfig`` and wires them together:
watcher -> store + alert engine, retention manager -> watcher offsets.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from logintel.alerts import AlertEngine
from logintel.analysis import AnalyticsEngine, ComparisonEngine
from logintel.core.config import EngineConfig
from logintel.core.models import (
    AlertRule,
    ComparisonResult,
    DirectoryStats,
    ErrorCluster,
    LogAlert,
    LogDataPoint,
    LogEntry,
    LogLevel,
    LogStatistics,
    RotationReport,
)
from logintel.infrastructure import EntryStore, IngestionWatcher, RetentionManager, SignatureCache
from logintel.parsers import FormatDetectingParser

__all__ = ["LogIntelligenceEngine"]

logger = logging.getLogger(__name__)


class LogIntelligenceEngine:
    """
    One object owning the whole pipeline.

    Example:
        with LogIntelligenceEngine(EngineConfig(max_entries=10_000)) as engine:
            engine.start("/var/log/myapp")
            engine.alert_fired.subscribe(print)
            ...
            stats = engine.get_statistics()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or EngineConfig()
        self.clock = clock

        self.parser = FormatDetectingParser(clock=clock)
        self.store = EntryStore(self.config.max_entries)
        self.alerts = AlertEngine(alert_dir=self.config.alert_dir, clock=clock)
        self.retention = RetentionManager(self.config.retention, clock=clock)
        self.watcher = IngestionWatcher(
            parser=self.parser,
            store=self.store,
            config=self.config,
            signatures=SignatureCache(
                self.config.seen_signatures_path,
                self.config.log_retention_days,
                clock,
            ),
            processor=self.alerts,
            sweeper=self.retention,
            clock=clock,
        )
        self.retention.bookkeeper = self.watcher
        self.analytics = AnalyticsEngine()
        self.comparison = ComparisonEngine()

        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> "LogIntelligenceEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # Lifecycle

    def start(self, directory: str | Path) -> bool:
        """Start monitoring a directory (and the daily cleanup, if the policy asks for it)."""
        if not self.watcher.start_monitoring(directory):
            return False
        self.retention.start_auto_cleanup(Path(directory))
        return True

    def stop(self) -> None:
        self.watcher.stop_monitoring()
        self.retention.stop_auto_cleanup()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    @property
    def is_running(self) -> bool:
        return self.watcher.is_running

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Run a query off the caller's thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="logintel-query")
        return self._executor.submit(fn, *args, **kwargs)

    # Events

    @property
    def entry_added(self):
        return self.store.entry_added

    @property
    def entries_added(self):
        return self.store.entries_added

    @property
    def cleared(self):
        return self.store.cleared

    @property
    def alert_fired(self):
        return self.alerts.alert_fired

    # Entries

    def get_all_entries(self) -> list[LogEntry]:
        return self.store.get_all()

    def clear_logs(self) -> None:
        self.store.clear()

    def load_historical_logs(self, directory: str | Path, since: datetime | None = None) -> list[LogEntry]:
        return self.watcher.load_historical_logs(directory, since)

    def ingest_lines(self, lines: list[str], file_path: str = "") -> list[LogEntry]:
        """Parse and ingest lines that did not come from a watched file."""
        return self.watcher.ingest(list(self.parser.parse_lines(lines, file_path)))

    def ingest_file(self, path: str | Path) -> list[LogEntry]:
        return self.watcher.ingest(self.parser.parse_file(path))

    # Analytics

    def _entries(self, entries: list[LogEntry] | None) -> list[LogEntry]:
        return self.store.snapshot() if entries is None else entries

    def get_statistics(self, entries: list[LogEntry] | None = None) -> LogStatistics:
        return self.analytics.get_statistics(self._entries(entries))

    def get_log_trend(
        self,
        entries: list[LogEntry] | None = None,
        interval: timedelta = timedelta(hours=1),
    ) -> dict[datetime, int]:
        return self.analytics.get_log_trend(self._entries(entries), interval)

    def get_time_series(
        self,
        entries: list[LogEntry] | None = None,
        bucket: timedelta = timedelta(hours=1),
    ) -> list[LogDataPoint]:
        return self.analytics.get_time_series(self._entries(entries), bucket)

    def get_log_distribution(self, entries: list[LogEntry] | None = None) -> dict[LogLevel, int]:
        return self.analytics.get_log_distribution(self._entries(entries))

    def get_hourly_heatmap(self, entries: list[LogEntry] | None = None) -> dict[int, int]:
        return self.analytics.get_hourly_heatmap(self._entries(entries))

    def get_top_errors(self, entries: list[LogEntry] | None = None, count: int = 10) -> list[tuple[str, int]]:
        return self.analytics.get_top_errors(self._entries(entries), count)

    def get_top_sources(self, entries: list[LogEntry] | None = None, count: int = 10) -> list[tuple[str, int]]:
        return self.analytics.get_top_sources(self._entries(entries), count)

    def analyze_error_patterns(
        self,
        entries: list[LogEntry] | None = None,
        min_occurrences: int = 3,
    ) -> list[ErrorCluster]:
        return self.analytics.analyze_error_patterns(self._entries(entries), min_occurrences)

    def find_anomalies(self, entries: list[LogEntry] | None = None) -> list[tuple[LogEntry, float]]:
        return self.analytics.find_anomalies(self._entries(entries))

    # Comparison

    def compare(
        self,
        left: list[LogEntry],
        right: list[LogEntry],
        threshold: float = 0.8,
    ) -> ComparisonResult:
        return self.comparison.compare(left, right, threshold)

    def compare_files(self, left: str | Path, right: str | Path, threshold: float = 0.8) -> ComparisonResult:
        return self.compare(self.parser.parse_file(left), self.parser.parse_file(right), threshold)

    def compare_async(
        self,
        left: list[LogEntry],
        right: list[LogEntry],
        threshold: float = 0.8,
    ) -> Future:
        return self.submit(self.compare, left, right, threshold)

    # Alerts

    @property
    def rules(self) -> list[AlertRule]:
        return self.alerts.rules

    def add_rule(self, name: str, pattern: str, **kwargs: Any) -> AlertRule:
        return self.alerts.add_rule(name, pattern, **kwargs)

    def remove_rule(self, rule_id: str) -> bool:
        return self.alerts.remove_rule(rule_id)

    def update_rule(self, rule: AlertRule) -> bool:
        return self.alerts.update_rule(rule)

    def enable_rule(self, rule_id: str) -> bool:
        return self.alerts.enable_rule(rule_id)

    def disable_rule(self, rule_id: str) -> bool:
        return self.alerts.disable_rule(rule_id)

    def process_entry(self, entry: LogEntry) -> list[LogAlert]:
        return self.alerts.process_entry(entry)

    @property
    def recent_alerts(self) -> list[LogAlert]:
        return self.alerts.recent_alerts

    # Retention

    def rotate(self, directory: str | Path | None = None) -> RotationReport:
        return self.retention.rotate(self._directory(directory))

    def cleanup_old_logs(self, directory: str | Path | None = None, require_confirmation: bool = True) -> int:
        return self.retention.cleanup_old_logs(self._directory(directory), require_confirmation)

    def compress_old_logs(self, directory: str | Path | None = None) -> int:
        return self.retention.compress_old_logs(self._directory(directory))

    def get_directory_stats(self, directory: str | Path | None = None) -> DirectoryStats:
        return self.retention.get_directory_stats(self._directory(directory))

    def _directory(self, directory: str | Path | None) -> Path:
        if directory is not None:
            return Path(directory)
        if self.watcher.directory is None:
            raise ValueError("No directory given and none is being monitored")
        return self.watcher.directory
