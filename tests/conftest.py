"""
Pytest fixtures for logintel tests.
"""

import pytest
from datetime import datetime, timedelta

from logintel.core.config import EngineConfig
from logintel.core.models import LogEntry, LogLevel


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# Sample log lines for each format

@pytest.fixture
def sample_json_logs() -> list[str]:
    """Sample JSON structured log lines."""
    return [
        '{"Timestamp": "2024-03-01T10:15:32.123", "Level": "Information", "Message": "Application started", "Category": "Startup"}',
        '{"timestamp": "2024-03-01 10:15:33", "level": "debug", "msg": "Processing request", "thread": 7}',
        '{"time": "2024-03-01T10:15:34", "severity": "error", "message": "Database connection failed", "exception": {"Type": "System.Data.SqlException", "Message": "Timeout expired", "StackTrace": "at Db.Open()"}}',
        '{"@timestamp": "2024-03-01T10:15:35", "levelname": "WARNING", "text": "Cache miss for key user:42", "host": "web-01"}',
    ]


@pytest.fixture
def sample_level_first_logs() -> list[str]:
    """Level word first, then timestamp, then an optional status glyph."""
    return [
        "START 2024-03-01 10:15:32.123 🚀 Launcher starting",
        "OK 2024-03-01 10:15:33.000 ✅ Update check complete",
        "WARN 2024-03-01 10:15:34.500 Disk space low",
        "ERROR 2024-03-01 10:15:35.250 ❌ Download failed",
    ]


@pytest.fixture
def sample_bracketed_logs() -> list[str]:
    """Bracketed timestamp and level."""
    return [
        "[2024-03-01 10:15:32] [INFO] Service started",
        "[2024-03-01 10:15:33] [SUCCESS] Update applied",
        "[2024-03-01 10:15:34] [error] Update rolled back",
    ]


@pytest.fixture
def sample_serilog_logs() -> list[str]:
    """Timestamp followed by a bracketed level, as written by file sinks."""
    return [
        "2024-03-01 10:15:32.123 [Information] Server listening on port 5000",
        "2024-03-01 10:15:33.456 [Warning] Slow request: 2300 ms",
        "2024-03-01 10:15:34.789 [Error] Unhandled NullReferenceException: Object reference not set at Server.Handle()",
        "2024-03-01 10:15:35.000 [Fatal] Server crashed",
    ]


@pytest.fixture
def sample_plain_logs() -> list[str]:
    """Timestamp-first lines with a bare level word, and lines with no structure."""
    return [
        "2024-03-01T10:15:32 ERROR something broke",
        "2024-03-01 10:15:33 - connection reset by peer",
        "Just some text without structure",
        "System.IO.IOException: The process cannot access the file",
    ]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 1, 12, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    """A clock frozen at 2024-03-01 12:00 until advanced."""
    return FakeClock(fixed_now)


@pytest.fixture
def make_entry(fixed_now):
    """Factory for entries with sensible defaults."""

    def _make(
        message: str = "Test log message",
        level: LogLevel = LogLevel.INFORMATION,
        source: str = "Server",
        timestamp: datetime | None = None,
        **kwargs,
    ) -> LogEntry:
        return LogEntry(
            timestamp=timestamp or fixed_now,
            level=level,
            source=source,
            message=message,
            **kwargs,
        )

    return _make


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    """Engine config with state kept under tmp_path."""
    return EngineConfig(
        state_dir=tmp_path / "state",
        poll_interval=0.05,
        new_file_delay=0.01,
        historical_hours=24 * 365 * 50,
    )


@pytest.fixture
def log_dir(tmp_path):
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory
