"""
Tests for the format-detecting parser and its strategies.
"""

import gzip
import pytest
from datetime import datetime, timezone

from logintel.core.base import ParseContext, infer_source, parse_timestamp
from logintel.core.models import LogEntry, LogLevel
from logintel.parsers import (
    FallbackStrategy,
    FormatDetectingParser,
    JsonLineStrategy,
    RegexLineStrategy,
    StrategyRegistry,
    default_registry,
    extract_exception,
    extract_exception_type,
)


@pytest.fixture
def parser(clock):
    return FormatDetectingParser(clock=clock)


class TestJsonStrategy:
    """Tests for structured JSON lines."""

    def test_pascal_case_fields(self, parser, sample_json_logs):
        """Test Serilog-style field names."""
        entry = parser.parse(sample_json_logs[0], "server.log", 1)
        assert entry.timestamp == datetime(2024, 3, 1, 10, 15, 32, 123000)
        assert entry.level == LogLevel.INFORMATION
        assert entry.message == "Application started"
        assert entry.source == "Startup"
        assert entry.category == "Startup"

    def test_lowercase_aliases(self, parser, sample_json_logs):
        """Test alias fields and source inferred from the file name."""
        entry = parser.parse(sample_json_logs[1], "/logs/Desktop-2024.log", 2)
        assert entry.level == LogLevel.DEBUG
        assert entry.message == "Processing request"
        assert entry.thread_id == "7"
        assert entry.source == "Desktop"
        assert entry.line_number == 2

    def test_exception_object(self, parser, sample_json_logs):
        """Test exception given as a nested object."""
        entry = parser.parse(sample_json_logs[2])
        assert entry.level == LogLevel.ERROR
        assert entry.exception_type == "System.Data.SqlException"
        assert entry.exception_message == "Timeout expired"
        assert entry.stack_trace == "at Db.Open()"

    def test_exception_string(self, parser):
        """Test exception given as free text."""
        line = '{"level": "error", "message": "Save failed", "exception": "System.IO.IOException: Disk full at Store.Save()"}'
        entry = parser.parse(line)
        assert entry.exception_type == "System.IO.IOException"
        assert entry.exception_message == "Disk full"
        assert entry.stack_trace == "Store.Save()"

    def test_machine_name(self, parser, sample_json_logs):
        """Test host alias."""
        entry = parser.parse(sample_json_logs[3])
        assert entry.level == LogLevel.WARNING
        assert entry.machine_name == "web-01"
        assert entry.message == "Cache miss for key user:42"

    def test_epoch_timestamp(self, parser):
        """Test numeric epoch seconds and milliseconds."""
        seconds = parser.parse('{"ts": 1709287200, "message": "a"}')
        millis = parser.parse('{"ts": 1709287200000, "message": "b"}')
        assert seconds.timestamp == datetime.fromtimestamp(1709287200)
        assert millis.timestamp == seconds.timestamp

    def test_missing_message_uses_exception(self, parser):
        """An entry without a message falls back to the exception text."""
        entry = parser.parse('{"level": "error", "exception": {"Type": "X", "Message": "went wrong"}}')
        assert entry.message == "went wrong"

    def test_missing_timestamp_uses_clock(self, parser, fixed_now):
        """Test that the injected clock stamps entries without a time."""
        entry = parser.parse('{"message": "no time"}')
        assert entry.timestamp == fixed_now

    def test_invalid_json_falls_through(self, clock):
        """A line that only looks like JSON is left for other strategies."""
        context = ParseContext(clock=clock)
        assert JsonLineStrategy().try_parse("{not json", context) is None
        assert JsonLineStrategy().try_parse("[1, 2, 3]", context) is None

    def test_excessive_depth_is_parse_failure(self, parser):
        """Deeply nested JSON becomes a Parser warning, not an exception."""
        line = '{"a": ' * 60 + "1" + "}" * 60
        entry = parser.parse(line, "server.log", 3)
        assert entry.level == LogLevel.WARNING
        assert entry.source == "Parser"
        assert entry.message.startswith("Failed to parse log line: JSON nesting depth")
        assert entry.line_number == 3


class TestTextStrategies:
    """Tests for the regex-based text formats."""

    def test_level_first(self, parser, sample_level_first_logs):
        """Test level-first lines with status glyphs."""
        entries = [parser.parse(line) for line in sample_level_first_logs]
        assert [e.level for e in entries] == [
            LogLevel.INFORMATION,
            LogLevel.SUCCESS,
            LogLevel.WARNING,
            LogLevel.ERROR,
        ]
        assert entries[0].message == "Launcher starting"
        assert entries[1].message == "Update check complete"
        assert entries[2].message == "Disk space low"
        assert entries[0].timestamp == datetime(2024, 3, 1, 10, 15, 32, 123000)

    def test_level_first_case_insensitive(self, parser):
        """Mixed-case level words still lead a level-first line."""
        entry = parser.parse("Info 2024-03-01 10:15:32 started")
        assert entry.level == LogLevel.INFORMATION
        assert entry.message == "started"
        assert entry.timestamp == datetime(2024, 3, 1, 10, 15, 32)

    def test_bracketed(self, parser, sample_bracketed_logs):
        """Test bracketed timestamp and level, case-insensitive."""
        entries = [parser.parse(line) for line in sample_bracketed_logs]
        assert [e.level for e in entries] == [LogLevel.INFORMATION, LogLevel.SUCCESS, LogLevel.ERROR]
        assert entries[1].message == "Update applied"
        assert entries[0].timestamp == datetime(2024, 3, 1, 10, 15, 32)

    def test_timestamp_bracket_level(self, parser, sample_serilog_logs):
        """Test timestamp followed by a bracketed level word."""
        entries = [parser.parse(line, "Server.log") for line in sample_serilog_logs]
        assert [e.level for e in entries] == [
            LogLevel.INFORMATION,
            LogLevel.WARNING,
            LogLevel.ERROR,
            LogLevel.CRITICAL,
        ]
        assert entries[0].message == "Server listening on port 5000"
        assert all(e.source == "Server" for e in entries)

    def test_exception_in_message(self, parser, sample_serilog_logs):
        """Test exception details scanned from a text message."""
        entry = parser.parse(sample_serilog_logs[2])
        assert entry.exception_type == "NullReferenceException"
        assert entry.exception_message == "Object reference not set"
        assert entry.stack_trace == "Server.Handle()"

    def test_timestamp_level(self, parser, sample_plain_logs):
        """Test timestamp followed by a bare level word."""
        entry = parser.parse(sample_plain_logs[0])
        assert entry.level == LogLevel.ERROR
        assert entry.message == "something broke"
        assert entry.timestamp == datetime(2024, 3, 1, 10, 15, 32)

    def test_timestamp_without_level(self, parser, sample_plain_logs):
        """A timestamped line with no level word is INFORMATION."""
        entry = parser.parse(sample_plain_logs[1])
        assert entry.level == LogLevel.INFORMATION
        assert entry.message == "connection reset by peer"

    def test_comma_fraction(self, parser):
        """Test comma as the fractional-second separator."""
        entry = parser.parse("2024-03-01 10:15:32,500 [Warning] slow")
        assert entry.timestamp == datetime(2024, 3, 1, 10, 15, 32, 500000)

    def test_zulu_time_normalized_to_local(self, parser):
        """Aware timestamps are converted to naive local time."""
        entry = parser.parse("2024-03-01T10:15:32Z ERROR something broke")
        expected = datetime(2024, 3, 1, 10, 15, 32, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert entry.timestamp == expected
        assert entry.timestamp.tzinfo is None


class TestFallback:
    """Tests for lines no format recognises."""

    def test_plain_text(self, parser, sample_plain_logs, fixed_now):
        """Unstructured text is an INFORMATION entry at clock time."""
        entry = parser.parse(sample_plain_logs[2], "app.log", 5)
        assert entry.level == LogLevel.INFORMATION
        assert entry.message == "Just some text without structure"
        assert entry.timestamp == fixed_now
        assert entry.source == "app"
        assert entry.raw == sample_plain_logs[2]

    def test_exception_promotes_to_error(self, parser, sample_plain_logs):
        """Unstructured text mentioning an exception is an ERROR."""
        entry = parser.parse(sample_plain_logs[3])
        assert entry.level == LogLevel.ERROR
        assert entry.exception_type == "System.IO.IOException"
        assert entry.exception_message == "The process cannot access the file"

    def test_strategy_accepts_anything(self, clock):
        """Test the fallback strategy directly."""
        entry = FallbackStrategy().try_parse("???", ParseContext(clock=clock))
        assert isinstance(entry, LogEntry)
        assert entry.source == "Unknown"


class TestFormatDetectingParser:
    """Tests for the parser facade."""

    def test_blank_lines_skipped(self, parser):
        """Empty and whitespace-only lines produce nothing."""
        assert parser.parse("") is None
        assert parser.parse("   \t") is None

    def test_line_too_long(self, parser):
        """An oversized line becomes a Parser warning with a preview."""
        line = "x" * (1024 * 1024 + 1)
        entry = parser.parse(line)
        assert entry.level == LogLevel.WARNING
        assert entry.source == "Parser"
        assert "exceeds maximum" in entry.message
        assert entry.raw == "x" * 100

    def test_strategy_error_never_escapes(self, clock):
        """A strategy that raises is converted to a warning entry."""

        class Broken:
            name = "broken"

            def try_parse(self, line, context):
                raise RuntimeError("kaput")

        parser = FormatDetectingParser(StrategyRegistry([Broken()]), clock=clock)
        entry = parser.parse("anything")
        assert entry.level == LogLevel.WARNING
        assert entry.message == "Failed to parse log line: kaput. Raw: anything"

    def test_empty_registry_uses_fallback(self, clock):
        """With no strategies every line goes to the fallback."""
        parser = FormatDetectingParser(StrategyRegistry(), clock=clock)
        entry = parser.parse("2024-03-01 10:15:32.123 [Error] boom")
        assert entry.level == LogLevel.INFORMATION
        assert entry.message == "2024-03-01 10:15:32.123 [Error] boom"

    def test_parse_lines_numbers(self, parser, sample_bracketed_logs):
        """Test line numbering skips blanks but keeps positions."""
        lines = [sample_bracketed_logs[0], "", sample_bracketed_logs[1]]
        entries = list(parser.parse_lines(lines, "svc.log"))
        assert [e.line_number for e in entries] == [1, 3]
        assert all(e.file_path == "svc.log" for e in entries)

    def test_parse_file(self, parser, tmp_path, sample_serilog_logs):
        """Test parsing a plain file."""
        path = tmp_path / "Server.log"
        path.write_text("\n".join(sample_serilog_logs) + "\n")
        entries = parser.parse_file(path)
        assert len(entries) == 4
        assert entries[-1].level == LogLevel.CRITICAL

    def test_parse_gzip_file(self, parser, tmp_path, sample_serilog_logs):
        """Test parsing a gzip-compressed file."""
        path = tmp_path / "Server.log.gz"
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write("\n".join(sample_serilog_logs) + "\n")
        assert len(parser.parse_file(path)) == 4

    def test_parse_missing_file(self, parser, tmp_path):
        """Test missing file raises."""
        with pytest.raises(FileNotFoundError):
            parser.parse_file(tmp_path / "nope.log")


class TestStrategyRegistry:
    """Tests for strategy registration."""

    def test_default_order(self):
        """JSON is tried first, then the text formats."""
        assert default_registry().list_strategies() == [
            "json",
            "level_first",
            "bracketed",
            "timestamp_bracket_level",
            "timestamp_level",
        ]

    def test_register_at_position(self, clock):
        """A custom strategy can take priority."""
        registry = default_registry()
        custom = RegexLineStrategy("pipe", r"^(?P<level>\w+)\|(?P<message>.*)$")
        registry.register(custom, position=0)
        assert registry.list_strategies()[0] == "pipe"

        parser = FormatDetectingParser(registry, clock=clock)
        entry = parser.parse("warn|pipe delimited")
        assert entry.level == LogLevel.WARNING
        assert entry.message == "pipe delimited"

    def test_register_rejects_non_strategy(self):
        """Objects without try_parse are refused."""
        with pytest.raises(TypeError):
            StrategyRegistry().register(object())

    def test_unregister_and_get(self):
        """Test lookup and removal by name."""
        registry = default_registry()
        assert registry.get("bracketed") is not None
        assert registry.unregister("bracketed")
        assert registry.get("bracketed") is None
        assert not registry.unregister("bracketed")
        assert len(registry) == 4


class TestHelpers:
    """Tests for timestamp, source and exception helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-01 10:15:32", datetime(2024, 3, 1, 10, 15, 32)),
        ("2024-03-01T10:15:32.250", datetime(2024, 3, 1, 10, 15, 32, 250000)),
        ("2024/03/01 10:15:32", datetime(2024, 3, 1, 10, 15, 32)),
        ("Mar 1 2024 10:15:32", datetime(2024, 3, 1, 10, 15, 32)),
    ])
    def test_parse_timestamp(self, value, expected):
        """Test explicit formats and the dateutil fallback."""
        assert parse_timestamp(value) == expected

    def test_parse_timestamp_invalid(self):
        """Unparseable values give None."""
        assert parse_timestamp("not a time") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None

    @pytest.mark.parametrize("path,expected", [
        ("/logs/Server.log", "Server"),
        ("/logs/desktop-20240301.log", "Desktop"),
        ("launcher.log", "Launcher"),
        ("UpdateAgent.jsonl", "Agent"),
        ("ErrorLogViewer.log", "LogViewer"),
        ("billing.2024-03-01.log", "billing"),
        ("", "Unknown"),
    ])
    def test_infer_source(self, path, expected):
        """Test source inference from file names."""
        assert infer_source(path) == expected

    def test_extract_exception(self):
        """Test exception fragments in free text."""
        info = extract_exception("Failed: System.TimeoutException: Operation timed out at Client.Send()")
        assert info.type == "System.TimeoutException"
        assert info.message == "Operation timed out"
        assert info.stack_trace == "Client.Send()"
        assert extract_exception("all good") is None
        assert extract_exception_type("ArgumentException: bad value") == "ArgumentException"
