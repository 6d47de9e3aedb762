"""
Analytics over a set of canonical entries.

Everything here is a pure function of its input: callers pass a snapshot
(usually ``EntryStore.snapshot()``) and get plain records back.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from logintel.analysis.patterns import (
    cluster_confidence,
    extract_error_pattern,
    extract_keywords,
    simplify_message,
    suggest_root_cause,
)
from logintel.core.models import (
    ErrorCluster,
    LogDataPoint,
    LogEntry,
    LogLevel,
    LogStatistics,
)

__all__ = ["AnalyticsEngine", "AnomalyContext"]


MAX_CLUSTER_EXAMPLES = 5
MIN_ENTRIES_FOR_ANOMALIES = 10


def _floor(value: datetime, interval: timedelta) -> datetime:
    """Start of the ``interval``-wide bucket containing ``value``, aligned to midnight."""
    midnight = value.replace(hour=0, minute=0, second=0, microsecond=0)
    buckets = (value - midnight) // interval
    return midnight + buckets * interval


class AnomalyContext:
    """Frequency tables an anomaly score is computed against."""

    def __init__(self, entries: list[LogEntry]):
        self.total = len(entries)
        self.levels = Counter(e.level for e in entries)
        self.sources = Counter(e.source for e in entries)
        self.patterns = Counter(extract_error_pattern(e) for e in entries)

    def frequency(self, table: Counter, key) -> float:
        if self.total == 0:
            return 0.0
        return table.get(key, 0) / self.total


class AnalyticsEngine:
    """
    Statistics, trends, error clustering and anomaly scoring.

    Example:
        engine = AnalyticsEngine()
        stats = engine.get_statistics(store.snapshot())
        print(f"Health {stats.health_score:.0f}/100")
    """

    def __init__(self, anomaly_threshold: float = 0.7):
        self.anomaly_threshold = anomaly_threshold

    def get_statistics(self, entries: Iterable[LogEntry]) -> LogStatistics:
        """Per-level counts, time range, error/warning rates and health score."""
        stats = LogStatistics()
        counters = {
            LogLevel.TRACE: "trace_count",
            LogLevel.DEBUG: "debug_count",
            LogLevel.INFORMATION: "info_count",
            LogLevel.SUCCESS: "success_count",
            LogLevel.WARNING: "warning_count",
            LogLevel.ERROR: "error_count",
            LogLevel.CRITICAL: "critical_count",
        }

        for entry in entries:
            stats.total_count += 1
            attr = counters[entry.level]
            setattr(stats, attr, getattr(stats, attr) + 1)
            if stats.oldest is None or entry.timestamp < stats.oldest:
                stats.oldest = entry.timestamp
            if stats.newest is None or entry.timestamp > stats.newest:
                stats.newest = entry.timestamp

        if stats.total_count:
            stats.error_rate = stats.error_count / stats.total_count * 100
            stats.warning_rate = stats.warning_count / stats.total_count * 100
        stats.health_score = self.calculate_health_score(stats)
        return stats

    @staticmethod
    def calculate_health_score(stats: LogStatistics) -> float:
        """100 minus weighted penalties for critical, error and warning entries."""
        if stats.total_count == 0:
            return 100.0
        score = 100.0
        score -= stats.critical_count * 10
        score -= stats.error_count * 2
        score -= stats.warning_count * 0.5
        return max(0.0, min(100.0, score))

    def get_log_trend(
        self,
        entries: Iterable[LogEntry],
        interval: timedelta = timedelta(hours=1),
    ) -> dict[datetime, int]:
        """
        Entry counts per fixed-width bucket.

        Buckets span from the earliest to the latest entry with no gaps;
        empty buckets are present with a count of zero.
        """
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        entries = list(entries)
        if not entries:
            return {}

        start = _floor(min(e.timestamp for e in entries), interval)
        end = max(e.timestamp for e in entries)

        trend: dict[datetime, int] = {}
        bucket = start
        while bucket <= end:
            trend[bucket] = 0
            bucket += interval
        for entry in entries:
            trend[start + (entry.timestamp - start) // interval * interval] += 1
        return trend

    def get_time_series(
        self,
        entries: Iterable[LogEntry],
        bucket: timedelta = timedelta(hours=1),
    ) -> list[LogDataPoint]:
        """The trend as data points, labelled with the bucket start."""
        label_format = "%H:%M" if bucket < timedelta(days=1) else "%Y-%m-%d"
        return [
            LogDataPoint(timestamp=ts, value=count, label=ts.strftime(label_format))
            for ts, count in self.get_log_trend(entries, bucket).items()
        ]

    def get_log_distribution(self, entries: Iterable[LogEntry]) -> dict[LogLevel, int]:
        distribution = {level: 0 for level in LogLevel}
        for entry in entries:
            distribution[entry.level] += 1
        return distribution

    def get_top_errors(self, entries: Iterable[LogEntry], count: int = 10) -> list[tuple[str, int]]:
        """Most frequent Error/Critical messages, grouped by normalized signature."""
        counter = Counter(
            simplify_message(e.message) for e in entries if e.level >= LogLevel.ERROR
        )
        return counter.most_common(count)

    def get_top_sources(self, entries: Iterable[LogEntry], count: int = 10) -> list[tuple[str, int]]:
        return Counter(e.source for e in entries).most_common(count)

    def analyze_error_patterns(
        self,
        entries: Iterable[LogEntry],
        min_occurrences: int = 3,
    ) -> list[ErrorCluster]:
        """
        Cluster Error/Critical entries by exception type or leading words.

        Clusters smaller than ``min_occurrences`` are dropped; the rest are
        returned largest first.
        """
        groups: dict[str, list[LogEntry]] = defaultdict(list)
        for entry in entries:
            if entry.level >= LogLevel.ERROR:
                groups[extract_error_pattern(entry)].append(entry)

        ranked = sorted(
            ((pattern, members) for pattern, members in groups.items() if len(members) >= min_occurrences),
            key=lambda item: len(item[1]),
            reverse=True,
        )

        clusters = []
        for cluster_id, (pattern, members) in enumerate(ranked, 1):
            timestamps = [e.timestamp for e in members]
            clusters.append(ErrorCluster(
                id=cluster_id,
                pattern=pattern,
                occurrence_count=len(members),
                first_seen=min(timestamps),
                last_seen=max(timestamps),
                examples=members[:MAX_CLUSTER_EXAMPLES],
                root_cause=suggest_root_cause(pattern, len(members)),
                confidence=cluster_confidence(len(members)),
            ))
        return clusters

    def get_hourly_heatmap(self, entries: Iterable[LogEntry]) -> dict[int, int]:
        heatmap = {hour: 0 for hour in range(24)}
        for entry in entries:
            heatmap[entry.timestamp.hour] += 1
        return heatmap

    def get_common_patterns(self, entries: Iterable[LogEntry], top_n: int = 10) -> list[tuple[str, int, float]]:
        """
        Most frequent message keywords.

        Returns:
            ``(keyword, count, percent of all keywords)`` tuples
        """
        counter: Counter[str] = Counter()
        for entry in entries:
            counter.update(extract_keywords(entry.message))
        total = sum(counter.values())
        if not total:
            return []
        return [(word, n, n / total * 100) for word, n in counter.most_common(top_n)]

    def calculate_anomaly_score(
        self,
        entry: LogEntry,
        context: AnomalyContext | list[LogEntry],
    ) -> float:
        """
        Rarity score in [0, 1].

        +0.3 if the entry's level is under 5% of the context, +0.2 if its
        source is under 2%, +0.5 if its error pattern is under 1%.
        """
        if not isinstance(context, AnomalyContext):
            context = AnomalyContext(context)
        if context.total == 0:
            return 0.0

        score = 0.0
        if context.frequency(context.levels, entry.level) < 0.05:
            score += 0.3
        if context.frequency(context.sources, entry.source) < 0.02:
            score += 0.2
        if context.frequency(context.patterns, extract_error_pattern(entry)) < 0.01:
            score += 0.5
        return min(score, 1.0)

    def find_anomalies(self, entries: Iterable[LogEntry]) -> list[tuple[LogEntry, float]]:
        """
        Entries whose anomaly score exceeds the threshold, highest first.

        Fewer than ten entries is too little context; nothing is flagged.
        """
        entries = list(entries)
        if len(entries) < MIN_ENTRIES_FOR_ANOMALIES:
            return []

        context = AnomalyContext(entries)
        scored = [(e, self.calculate_anomaly_score(e, context)) for e in entries]
        anomalies = [(e, s) for e, s in scored if s > self.anomaly_threshold]
        anomalies.sort(key=lambda item: item[1], reverse=True)
        return anomalies
