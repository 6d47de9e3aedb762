"""
Format-detecting parser and its strategy registry.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator

from logintel.core.base import LineStrategy, ParseContext
from logintel.core.exceptions import LogIntelError
from logintel.core.models import LogEntry, LogLevel
from logintel.core.security import validate_line_length, preview
from logintel.parsers.generic import FallbackStrategy, extract_exception, extract_exception_type
from logintel.parsers.json_parser import JsonLineStrategy
from logintel.parsers.text_formats import TEXT_STRATEGIES, RegexLineStrategy

__all__ = [
    "StrategyRegistry",
    "FormatDetectingParser",
    "JsonLineStrategy",
    "RegexLineStrategy",
    "FallbackStrategy",
    "extract_exception",
    "extract_exception_type",
    "default_registry",
]

logger = logging.getLogger(__name__)

PARSER_SOURCE = "Parser"


class StrategyRegistry:
    """
    Ordered collection of line strategies.

    Order matters: the first strategy that returns an entry wins.

    Usage:
        registry = default_registry()
        registry.register(MyStrategy(), position=0)
    """

    def __init__(self, strategies: Iterable[LineStrategy] | None = None):
        self._strategies: list[LineStrategy] = list(strategies or [])

    def register(self, strategy: LineStrategy, position: int | None = None) -> None:
        """
        Add a strategy.

        Args:
            strategy: Object implementing ``LineStrategy``
            position: Index to insert at; appended when None
        """
        if not isinstance(strategy, LineStrategy):
            raise TypeError(f"{strategy!r} does not implement try_parse")
        if position is None:
            self._strategies.append(strategy)
        else:
            self._strategies.insert(position, strategy)

    def unregister(self, name: str) -> bool:
        for i, strategy in enumerate(self._strategies):
            if strategy.name == name:
                del self._strategies[i]
                return True
        return False

    def get(self, name: str) -> LineStrategy | None:
        for strategy in self._strategies:
            if strategy.name == name:
                return strategy
        return None

    def list_strategies(self) -> list[str]:
        return [s.name for s in self._strategies]

    def __iter__(self) -> Iterator[LineStrategy]:
        return iter(list(self._strategies))

    def __len__(self) -> int:
        return len(self._strategies)


def default_registry() -> StrategyRegistry:
    """JSON first, then the text formats in priority order."""
    return StrategyRegistry([JsonLineStrategy(), *TEXT_STRATEGIES])


class FormatDetectingParser:
    """
    Turns one raw line into a canonical ``LogEntry``.

    Strategies are tried in registry order; the fallback strategy always
    runs last and accepts anything. ``parse`` never raises: an internal
    failure becomes a WARNING entry from source ``Parser``.

    Example:
        parser = FormatDetectingParser()
        entry = parser.parse("2024-01-01 10:00:00 [Error] Disk full", "server.log", 12)
    """

    def __init__(
        self,
        registry: StrategyRegistry | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.fallback = FallbackStrategy()
        self.clock = clock

    def parse(self, line: str, file_path: str = "", line_number: int = 0) -> LogEntry | None:
        """
        Parse a single line.

        Returns:
            The entry, or None for a blank line
        """
        if not line or not line.strip():
            return None

        context = ParseContext(file_path=file_path, line_number=line_number, clock=self.clock)
        try:
            validate_line_length(line)
            for strategy in self.registry:
                entry = strategy.try_parse(line, context)
                if entry is not None:
                    return entry
            return self.fallback.try_parse(line, context)
        except Exception as e:
            logger.debug(f"Parse failure at {file_path}:{line_number}: {e}")
            return self._failure_entry(line, e, context)

    def parse_lines(self, lines: Iterable[str], file_path: str = "", start_line: int = 1) -> Iterator[LogEntry]:
        """Parse an iterable of lines, numbering them from ``start_line``."""
        for line_number, line in enumerate(lines, start_line):
            entry = self.parse(line.rstrip("\r\n"), file_path, line_number)
            if entry is not None:
                yield entry

    def parse_file(self, path: str | Path) -> list[LogEntry]:
        """Parse a whole file (plain text or gzip)."""
        from logintel.infrastructure.sources import read_all_lines

        path = Path(path)
        return list(self.parse_lines(read_all_lines(path), str(path)))

    def _failure_entry(self, line: str, error: Exception, context: ParseContext) -> LogEntry:
        reason = error.message if isinstance(error, LogIntelError) else str(error)
        return LogEntry(
            timestamp=self.clock(),
            level=LogLevel.WARNING,
            source=PARSER_SOURCE,
            message=f"Failed to parse log line: {reason}. Raw: {preview(line)}",
            file_path=context.file_path,
            line_number=context.line_number,
            raw=preview(line),
        )

