"""
CLI command implementations.

Each command wires the engine components together and returns an exit
code; ``main.py`` only handles argument parsing.
"""

import json
import time
from pathlib import Path

from rich.console import Console

from logintel.alerts import AlertEngine
from logintel.analysis import AnalyticsEngine, ComparisonEngine
from logintel.application import LogIntelligenceEngine
from logintel.core.config import EngineConfig
from logintel.core.exceptions import ConfigurationError, LogIntelError
from logintel.core.models import LogAlert, LogEntry, LogLevel
from logintel.core.security import SecurityValidationError, validate_regex_pattern
from logintel.infrastructure import RetentionManager
from logintel.parsers import FormatDetectingParser
from logintel.cli.output import (
    render_alert,
    render_clusters,
    render_comparison,
    render_compact,
    render_directory_stats,
    render_entries,
    render_ranking,
    render_statistics,
)

__all__ = [
    "parse_command",
    "stats_command",
    "compare_command",
    "watch_command",
    "retention_command",
]


def _parse_files(
    files: tuple[str, ...],
    parser: FormatDetectingParser,
    error_console: Console,
) -> list[LogEntry]:
    entries: list[LogEntry] = []
    for file_path in files:
        try:
            entries.extend(parser.parse_file(file_path))
        except OSError as e:
            error_console.print(f"[red]Error:[/red] {e}")
    return entries


def parse_command(
    files: tuple[str, ...],
    output_format: str,
    level: str | None,
    limit: int | None,
    grep: str | None,
    alerts: bool,
    quiet: bool,
    console: Console,
    error_console: Console,
) -> int:
    """
    Parse files and print the canonical entries.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    if not files:
        error_console.print("[red]Error:[/red] No files specified")
        return 1

    pattern = None
    if grep:
        try:
            pattern = validate_regex_pattern(grep)
        except SecurityValidationError as e:
            error_console.print(f"[red]Regex validation failed:[/red] {e.message}")
            return 1

    entries = _parse_files(files, FormatDetectingParser(), error_console)

    if alerts:
        fired = AlertEngine().process_entries(entries)
        for alert in fired:
            render_alert(alert, error_console)

    if level:
        min_level = LogLevel.from_string(level)
        entries = [e for e in entries if e.level >= min_level]
    if pattern is not None:
        entries = [e for e in entries if pattern.search(e.message)]
    if limit:
        entries = entries[:limit]

    if entries:
        render_entries(entries, output_format, console)
    elif not quiet:
        console.print("[yellow]No matching log entries found.[/yellow]")
    return 0


def stats_command(
    files: tuple[str, ...],
    top: int,
    output_format: str,
    console: Console,
    error_console: Console,
) -> int:
    """
    Print statistics, rankings, error clusters and anomalies.

    Returns:
        Exit code
    """
    entries = _parse_files(files, FormatDetectingParser(), error_console)
    analytics = AnalyticsEngine()

    stats = analytics.get_statistics(entries)
    top_errors = analytics.get_top_errors(entries, top)
    top_sources = analytics.get_top_sources(entries, top)
    clusters = analytics.analyze_error_patterns(entries)
    anomalies = analytics.find_anomalies(entries)

    if output_format == "json":
        output = {
            "statistics": {
                "total": stats.total_count,
                "critical": stats.critical_count,
                "errors": stats.error_count,
                "warnings": stats.warning_count,
                "information": stats.info_count,
                "error_rate": round(stats.error_rate, 2),
                "warning_rate": round(stats.warning_rate, 2),
                "health_score": round(stats.health_score, 2),
            },
            "distribution": {
                level.name: count
                for level, count in analytics.get_log_distribution(entries).items()
            },
            "top_errors": [{"message": m, "count": c} for m, c in top_errors],
            "top_sources": [{"source": s, "count": c} for s, c in top_sources],
            "error_patterns": [
                {
                    "pattern": c.pattern,
                    "count": c.occurrence_count,
                    "confidence": round(c.confidence, 2),
                    "root_cause": c.root_cause,
                }
                for c in clusters
            ],
            "anomalies": [
                {"id": e.id, "message": e.message, "score": round(score, 3)}
                for e, score in anomalies[:top]
            ],
        }
        console.print(json.dumps(output, indent=2), highlight=False, markup=False, soft_wrap=True)
        return 0

    render_statistics(stats, console)
    render_ranking("Top Errors", top_errors, console)
    render_ranking("Top Sources", top_sources, console)
    render_clusters(clusters, console)
    if anomalies:
        console.print(f"\n[bold]Anomalies[/bold] ({len(anomalies)})")
        render_compact([e for e, _ in anomalies[:top]], console)
    return 0


def compare_command(
    left: str,
    right: str,
    threshold: float,
    console: Console,
    error_console: Console,
) -> int:
    """
    Compare two log files entry by entry.

    Returns:
        Exit code
    """
    if not 0.0 <= threshold <= 1.0:
        error_console.print("[red]Error:[/red] Threshold must be between 0 and 1")
        return 1

    parser = FormatDetectingParser()
    try:
        left_entries = parser.parse_file(left)
        right_entries = parser.parse_file(right)
    except OSError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        return 1

    result = ComparisonEngine(threshold).compare(left_entries, right_entries)
    render_comparison(result, console)
    return 0


def watch_command(
    directory: str,
    config_file: str | None,
    poll_interval: float | None,
    duration: float | None,
    console: Console,
    error_console: Console,
) -> int:
    """
    Monitor a directory, printing new entries and alerts until interrupted.

    Returns:
        Exit code
    """
    try:
        config = EngineConfig.from_file(config_file) if config_file else EngineConfig()
        if poll_interval is not None:
            config.poll_interval = poll_interval
        config.validate()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    def on_entries(entries: list[LogEntry]) -> None:
        render_compact(entries, console)

    def on_alert(alert: LogAlert) -> None:
        render_alert(alert, console)

    with LogIntelligenceEngine(config) as engine:
        engine.entries_added.subscribe(on_entries)
        engine.alert_fired.subscribe(on_alert)

        if not engine.start(directory):
            error_console.print(f"[red]Error:[/red] Could not monitor {directory}")
            return 1
        console.print(f"[dim]Watching {directory} (Ctrl-C to stop)[/dim]")

        deadline = time.monotonic() + duration if duration is not None else None
        try:
            while deadline is None or time.monotonic() < deadline:
                time.sleep(min(0.2, config.poll_interval))
        except KeyboardInterrupt:
            pass

        stats = engine.get_statistics()
        console.print(
            f"\n[dim]Stopped. {stats.total_count} entries, "
            f"{len(engine.recent_alerts)} alerts, health {stats.health_score:.1f}[/dim]"
        )
    return 0


def retention_command(
    directory: str,
    action: str,
    yes: bool,
    config_file: str | None,
    console: Console,
    error_console: Console,
) -> int:
    """
    Run a retention action against a log directory.

    Returns:
        Exit code
    """
    try:
        config = EngineConfig.from_file(config_file) if config_file else EngineConfig()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    manager = RetentionManager(config.retention)
    path = Path(directory)

    try:
        if action == "rotate":
            report = manager.rotate(path)
            console.print(
                f"Archived [cyan]{len(report.archived)}[/cyan], "
                f"compressed [cyan]{len(report.compressed)}[/cyan], "
                f"deleted [cyan]{report.deleted_archives}[/cyan] archives, "
                f"archived [cyan]{len(report.budget_archived)}[/cyan] over size budget"
            )
        elif action == "compress":
            saved = manager.compress_old_logs(path)
            console.print(f"Compressed old logs, saved [cyan]{saved}[/cyan] bytes")
        elif action == "cleanup":
            if not yes and config.retention.require_confirmation:
                error_console.print(
                    "[yellow]Cleanup deletes files; re-run with --yes to confirm[/yellow]"
                )
                return 1
            removed = manager.cleanup_old_logs(path, require_confirmation=not yes)
            console.print(f"Deleted [cyan]{removed}[/cyan] files")
        else:
            render_directory_stats(
                manager.get_directory_stats(path),
                manager.get_log_statistics(path),
                console,
            )
    except LogIntelError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        return 1
    return 0
