"""
Output formatters for CLI.
"""

import json

from rich.console import Console
from rich.table import Table

from logintel.core.models import (
    ComparisonResult,
    DirectoryStats,
    ErrorCluster,
    LogAlert,
    LogEntry,
    LogLevel,
    LogStatistics,
)

__all__ = [
    "LEVEL_STYLES",
    "render_entries",
    "render_table",
    "render_json",
    "render_compact",
    "render_statistics",
    "render_ranking",
    "render_clusters",
    "render_comparison",
    "render_alert",
    "render_directory_stats",
]


# Level color mapping for Rich
LEVEL_STYLES = {
    LogLevel.CRITICAL: "red bold",
    LogLevel.ERROR: "red",
    LogLevel.WARNING: "yellow",
    LogLevel.SUCCESS: "green bold",
    LogLevel.INFORMATION: "green",
    LogLevel.DEBUG: "dim",
    LogLevel.TRACE: "dim italic",
}


def render_entries(
    entries: list[LogEntry],
    output_format: str,
    console: Console,
) -> None:
    """
    Render entries in the specified format.

    Args:
        entries: List of LogEntry objects to render
        output_format: One of "table", "json", "compact"
        console: Rich Console for output
    """
    match output_format:
        case "json":
            render_json(entries, console)
        case "compact":
            render_compact(entries, console)
        case _:
            render_table(entries, console)


def render_table(entries: list[LogEntry], console: Console) -> None:
    """Render entries as a Rich table."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Time", style="dim", width=23)
    table.add_column("Level", width=11)
    table.add_column("Source", width=16)
    table.add_column("Message", overflow="fold")

    for entry in entries:
        level_style = LEVEL_STYLES.get(entry.level, "white")
        level_str = f"[{level_style}]{entry.level.label}[/{level_style}]"

        message = entry.message
        if len(message) > 200:
            message = message[:197] + "..."
        message = _escape(message)
        if entry.highlighted:
            message = f"[reverse]{message}[/reverse]"

        table.add_row(
            entry.formatted_timestamp("%Y-%m-%d %H:%M:%S.%f")[:-3],
            level_str,
            entry.source[:16],
            message,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(entries)} entries[/dim]")


def render_json(entries: list[LogEntry], console: Console) -> None:
    """Render entries as JSON."""
    output = [entry.to_dict() for entry in entries]
    console.print(json.dumps(output, indent=2, default=str), highlight=False, markup=False, soft_wrap=True)


def render_compact(entries: list[LogEntry], console: Console) -> None:
    """Render entries in compact single-line format."""
    for entry in entries:
        ts = entry.formatted_timestamp("%H:%M:%S")
        level = entry.level.name[:5].ljust(5)
        level_style = LEVEL_STYLES.get(entry.level, "white")
        console.print(
            f"[dim]{ts}[/dim] [{level_style}]{level}[/{level_style}] "
            f"[cyan]\\[{entry.source}][/cyan] {_escape(entry.message)}"
        )


def render_statistics(stats: LogStatistics, console: Console) -> None:
    table = Table(title="Log Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total entries", str(stats.total_count))
    table.add_row("Critical", str(stats.critical_count))
    table.add_row("Errors", str(stats.error_count))
    table.add_row("Warnings", str(stats.warning_count))
    table.add_row("Information", str(stats.info_count))
    table.add_row("Success", str(stats.success_count))
    table.add_row("Error rate", f"{stats.error_rate:.1f}%")
    table.add_row("Warning rate", f"{stats.warning_rate:.1f}%")
    if stats.oldest and stats.newest:
        table.add_row("Oldest", stats.oldest.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Newest", stats.newest.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Time span", str(stats.time_span))

    if stats.health_score >= 80:
        color = "green"
    elif stats.health_score >= 50:
        color = "yellow"
    else:
        color = "red"
    table.add_row("Health score", f"[{color}]{stats.health_score:.1f}[/{color}]")

    console.print(table)


def render_ranking(title: str, rows: list[tuple[str, int]], console: Console) -> None:
    """Two-column ranking table, e.g. top errors or top sources."""
    if not rows:
        return
    table = Table(title=title)
    table.add_column("Item", overflow="fold")
    table.add_column("Count", justify="right", style="cyan")
    for item, count in rows:
        table.add_row(_escape(item), str(count))
    console.print(table)


def render_clusters(clusters: list[ErrorCluster], console: Console) -> None:
    if not clusters:
        return
    table = Table(title="Error Patterns")
    table.add_column("Pattern", style="red")
    table.add_column("Count", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Suggested root cause", overflow="fold")
    for cluster in clusters:
        table.add_row(
            _escape(cluster.pattern),
            str(cluster.occurrence_count),
            f"{cluster.confidence:.0%}",
            cluster.root_cause,
        )
    console.print(table)


def render_comparison(result: ComparisonResult, console: Console) -> None:
    stats = result.statistics
    console.print(
        f"[bold]Similarity:[/bold] {stats.similarity_percentage:.1f}%  "
        f"[green]identical {stats.identical}[/green]  "
        f"[yellow]similar {stats.similar}[/yellow]  "
        f"[red]left only {stats.unique_left}[/red]  "
        f"[blue]right only {stats.unique_right}[/blue]"
    )
    for title, entries, style in (
        ("Only in left", result.left_only, "red"),
        ("Only in right", result.right_only, "blue"),
    ):
        if entries:
            console.print(f"\n[{style}]{title}:[/{style}]")
            render_compact(entries, console)


def render_alert(alert: LogAlert, console: Console) -> None:
    style = LEVEL_STYLES.get(alert.severity, "white")
    console.print(f"[{style}]ALERT[/{style}] {alert.timestamp:%H:%M:%S} {_escape(alert.message)}")


def render_directory_stats(stats: DirectoryStats, extra: dict[str, int], console: Console) -> None:
    table = Table(title="Log Directory", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Active logs", str(stats.active_log_count))
    table.add_row("Archives", str(stats.archive_count))
    table.add_row("Active size", _size(stats.total_log_size))
    table.add_row("Archive size", _size(stats.total_archive_size))
    if stats.oldest_log:
        table.add_row("Oldest log", stats.oldest_log.strftime("%Y-%m-%d %H:%M"))
    if stats.newest_log:
        table.add_row("Newest log", stats.newest_log.strftime("%Y-%m-%d %H:%M"))
    table.add_row("Past retention", str(extra.get("old_files", 0)))
    console.print(table)


def _size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} GB"


def _escape(text: str) -> str:
    """Escape Rich markup in log text."""
    return text.replace("[", "\\[")
