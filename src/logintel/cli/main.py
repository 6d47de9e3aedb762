"""
Main CLI entry point for logintel.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from logintel import __version__

console = Console()
error_console = Console(stderr=True)

LEVEL_CHOICES = ["trace", "debug", "info", "success", "warning", "error", "critical"]


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="logintel")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--verbose", "-v", count=True, help="Log engine activity (-vv for debug)")
@click.pass_context
def cli(ctx: click.Context, quiet: bool, verbose: int) -> None:
    """
    logintel - Log Intelligence Engine

    Parse mixed-format application logs, summarize their health,
    compare runs, watch directories for new entries and alerts,
    and keep log directories within their retention budget.

    Examples:

    \b
        logintel parse app.log
        logintel parse --level error --output json *.log
        logintel stats server.log
        logintel compare before.log after.log
        logintel watch /var/log/myapp
        logintel retention --action rotate /var/log/myapp
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["console"] = console
    ctx.obj["error_console"] = error_console


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--output", "-o", "output_format",
    type=click.Choice(["table", "json", "compact"]),
    default="table",
    help="Output format (default: table)"
)
@click.option(
    "--level", "-l",
    type=click.Choice(LEVEL_CHOICES, case_sensitive=False),
    help="Filter by minimum log level"
)
@click.option(
    "--limit", "-n", type=int,
    help="Limit number of entries to display"
)
@click.option(
    "--grep", "-g",
    help="Filter entries by message content (regex)"
)
@click.option(
    "--alerts/--no-alerts", default=False,
    help="Run the default alert rules over the parsed entries"
)
@click.pass_context
def parse(
    ctx: click.Context,
    files: tuple[str, ...],
    output_format: str,
    level: str | None,
    limit: int | None,
    grep: str | None,
    alerts: bool,
) -> None:
    """
    Parse log files and display canonical entries.

    Every line is tried against JSON, level-first, bracketed and
    timestamp-first formats; lines matching none are kept as plain
    messages.

    Examples:

    \b
        logintel parse app.log
        logintel parse --level error --output json app.log
        logintel parse --grep "timeout|refused" *.log
        logintel parse --alerts server.log
    """
    from logintel.cli.commands import parse_command

    exit_code = parse_command(
        files=files,
        output_format=output_format,
        level=level,
        limit=limit,
        grep=grep,
        alerts=alerts,
        quiet=ctx.obj.get("quiet", False),
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True), required=True)
@click.option(
    "--top", "-t", type=int, default=10,
    help="Number of items in each ranking (default: 10)"
)
@click.option(
    "--output", "-o", "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)"
)
@click.pass_context
def stats(ctx: click.Context, files: tuple[str, ...], top: int, output_format: str) -> None:
    """
    Summarize log health: counts, rates, top errors, error patterns
    and anomalies.

    Examples:

    \b
        logintel stats server.log
        logintel stats --output json *.log
    """
    from logintel.cli.commands import stats_command

    exit_code = stats_command(
        files=files,
        top=top,
        output_format=output_format,
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
@click.argument("left", type=click.Path(exists=True))
@click.argument("right", type=click.Path(exists=True))
@click.option(
    "--threshold", type=float, default=0.8,
    help="Minimum similarity for two entries to match (default: 0.8)"
)
@click.pass_context
def compare(ctx: click.Context, left: str, right: str, threshold: float) -> None:
    """
    Compare two log files entry by entry.

    Examples:

    \b
        logintel compare before.log after.log
        logintel compare --threshold 0.9 run1.log run2.log
    """
    from logintel.cli.commands import compare_command

    exit_code = compare_command(
        left=left,
        right=right,
        threshold=threshold,
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False))
@click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file"
)
@click.option(
    "--poll-interval", type=float,
    help="Seconds between polls (overrides the configuration)"
)
@click.option(
    "--duration", type=float,
    help="Stop after this many seconds instead of waiting for Ctrl-C"
)
@click.pass_context
def watch(
    ctx: click.Context,
    directory: str,
    config_file: str | None,
    poll_interval: float | None,
    duration: float | None,
) -> None:
    """
    Watch a directory and print new entries and alerts as they arrive.

    Examples:

    \b
        logintel watch /var/log/myapp
        logintel -v watch --config logintel.json /var/log/myapp
    """
    from logintel.cli.commands import watch_command

    exit_code = watch_command(
        directory=directory,
        config_file=config_file,
        poll_interval=poll_interval,
        duration=duration,
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--action", "-a",
    type=click.Choice(["stats", "rotate", "compress", "cleanup"]),
    default="stats",
    help="Retention action to run (default: stats)"
)
@click.option("--yes", "-y", is_flag=True, help="Confirm destructive cleanup")
@click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file"
)
@click.pass_context
def retention(
    ctx: click.Context,
    directory: str,
    action: str,
    yes: bool,
    config_file: str | None,
) -> None:
    """
    Inspect or enforce the retention policy of a log directory.

    Examples:

    \b
        logintel retention /var/log/myapp
        logintel retention --action rotate /var/log/myapp
        logintel retention --action cleanup --yes /var/log/myapp
    """
    from logintel.cli.commands import retention_command

    exit_code = retention_command(
        directory=directory,
        action=action,
        yes=yes,
        config_file=config_file,
        console=ctx.obj["console"],
        error_console=ctx.obj["error_console"],
    )
    ctx.exit(exit_code)


@cli.command()
def formats() -> None:
    """
    List the line formats tried, in detection order.
    """
    from rich.table import Table
    from logintel.parsers import default_registry

    table = Table(title="Line Formats")
    table.add_column("Order", justify="right", style="dim")
    table.add_column("Strategy", style="cyan")

    for position, name in enumerate(default_registry().list_strategies(), start=1):
        table.add_row(str(position), name)
    table.add_row("-", "fallback")

    console.print(table)


if __name__ == "__main__":
    cli()
