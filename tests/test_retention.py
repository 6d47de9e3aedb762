"""
Tests for log retention, rotation and archival.
"""

import gzip
import os
import pytest
from datetime import timedelta
from pathlib import Path

from logintel.core.models import RetentionPolicy
from logintel.infrastructure.retention import RetentionManager


class Recorder:
    """Offset bookkeeper that remembers what it was told."""

    def __init__(self):
        self.moved: list[tuple[Path, Path]] = []
        self.removed: list[Path] = []

    def file_moved(self, old_path, new_path):
        self.moved.append((old_path, new_path))

    def file_removed(self, path):
        self.removed.append(path)


def make_file(directory: Path, name: str, clock, days_old: float = 0, content: str = "line\n") -> Path:
    """Create a file whose modification time is ``days_old`` before the clock."""
    path = directory / name
    path.write_text(content)
    ts = (clock() - timedelta(days=days_old)).timestamp()
    os.utime(path, (ts, ts))
    return path


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def manager(clock, recorder):
    return RetentionManager(RetentionPolicy(), bookkeeper=recorder, clock=clock)


class TestRotation:
    """Tests for archive, compress, purge and size budget."""

    def test_archive_old_logs(self, manager, recorder, log_dir, clock):
        """Only .log files past retention are renamed, with the clock's date."""
        old = make_file(log_dir, "app.log", clock, days_old=40)
        make_file(log_dir, "fresh.log", clock, days_old=1)
        make_file(log_dir, "old.jsonl", clock, days_old=40)

        archived = manager.archive_old_logs(log_dir)

        target = log_dir / "app.log.20240301.archive"
        assert archived == [target]
        assert target.read_text() == "line\n"
        assert not old.exists()
        assert (log_dir / "fresh.log").exists()
        assert (log_dir / "old.jsonl").exists()
        assert recorder.moved == [(old, target)]

    def test_archive_replaces_existing(self, manager, log_dir, clock):
        """A same-named archive from earlier that day is overwritten."""
        make_file(log_dir, "app.log.20240301.archive", clock, content="stale\n")
        make_file(log_dir, "app.log", clock, days_old=40, content="new\n")
        manager.archive_old_logs(log_dir)
        assert (log_dir / "app.log.20240301.archive").read_text() == "new\n"

    def test_compress_archives(self, manager, recorder, log_dir, clock):
        """Archives become gzip files that keep their modification time."""
        archive = make_file(log_dir, "app.log.20240201.archive", clock, days_old=5, content="hello\n" * 100)
        mtime = archive.stat().st_mtime

        compressed = manager.compress_archives(log_dir)

        target = log_dir / "app.log.20240201.archive.gz"
        assert compressed == [target]
        assert not archive.exists()
        assert target.stat().st_mtime == pytest.approx(mtime)
        with gzip.open(target, "rt") as f:
            assert f.read() == "hello\n" * 100
        assert recorder.moved == [(archive, target)]

    def test_compress_skips_existing_target(self, manager, log_dir, clock):
        """An archive whose .gz already exists is left alone."""
        make_file(log_dir, "a.archive", clock)
        make_file(log_dir, "a.archive.gz", clock, content="existing")
        assert manager.compress_archives(log_dir) == []
        assert (log_dir / "a.archive").exists()

    def test_delete_old_archives(self, manager, recorder, log_dir, clock):
        """Compressed archives past the archive age are deleted."""
        old = make_file(log_dir, "a.log.20240101.archive.gz", clock, days_old=31)
        make_file(log_dir, "b.log.20240220.archive.gz", clock, days_old=10)
        make_file(log_dir, "c.log", clock, days_old=100)

        assert manager.delete_old_archives(log_dir) == 1
        assert not old.exists()
        assert recorder.removed == [old]
        assert (log_dir / "c.log").exists()

    def test_enforce_size_limit(self, clock, log_dir):
        """The oldest logs are archived until the rest fit the budget."""
        manager = RetentionManager(RetentionPolicy(max_total_size_mb=1), clock=clock)
        chunk = "x" * 600_000
        make_file(log_dir, "oldest.log", clock, days_old=3, content=chunk)
        make_file(log_dir, "middle.log", clock, days_old=2, content=chunk)
        make_file(log_dir, "newest.log", clock, days_old=1, content=chunk)

        archived = manager.enforce_size_limit(log_dir)

        assert archived == [
            log_dir / "oldest.log.20240301.archive",
            log_dir / "middle.log.20240301.archive",
        ]
        assert (log_dir / "newest.log").exists()

    def test_within_budget(self, manager, log_dir, clock):
        """Nothing is archived under the budget."""
        make_file(log_dir, "app.log", clock)
        assert manager.enforce_size_limit(log_dir) == []

    def test_rotate(self, clock, log_dir):
        """A full pass archives and compresses in one go."""
        manager = RetentionManager(RetentionPolicy(max_archive_age_days=90), clock=clock)
        make_file(log_dir, "app.log", clock, days_old=40)
        make_file(log_dir, "ancient.log.20230101.archive.gz", clock, days_old=400)

        report = manager.rotate(log_dir)

        assert report.archived == [log_dir / "app.log.20240301.archive"]
        assert report.compressed == [log_dir / "app.log.20240301.archive.gz"]
        assert report.deleted_archives == 1
        assert report.budget_archived == []
        assert sorted(p.name for p in log_dir.iterdir()) == ["app.log.20240301.archive.gz"]

    def test_missing_directory(self, manager, tmp_path):
        """A directory that does not exist is an empty one."""
        report = manager.rotate(tmp_path / "nowhere")
        assert report.archived == []
        assert report.deleted_archives == 0


class TestRetentionPolicy:
    """Tests for cleanup and in-place compression."""

    def test_cleanup_requires_confirmation(self, manager, log_dir, clock):
        """Nothing is deleted while both caller and policy want confirmation."""
        make_file(log_dir, "app.log", clock, days_old=40)
        assert manager.cleanup_old_logs(log_dir) == 0
        assert (log_dir / "app.log").exists()
        assert manager.policy.last_cleanup is None

    def test_cleanup_confirmed(self, manager, recorder, log_dir, clock, fixed_now):
        """Old .log and .jsonl files are deleted once confirmed."""
        old_log = make_file(log_dir, "app.log", clock, days_old=40)
        old_jsonl = make_file(log_dir, "events.jsonl", clock, days_old=40)
        make_file(log_dir, "notes.txt", clock, days_old=40)
        make_file(log_dir, "today.log", clock)

        assert manager.cleanup_old_logs(log_dir, require_confirmation=False) == 2
        assert sorted(p.name for p in log_dir.iterdir()) == ["notes.txt", "today.log"]
        assert sorted(recorder.removed) == sorted([old_log, old_jsonl])
        assert manager.policy.last_cleanup == fixed_now

    def test_policy_without_confirmation(self, clock, log_dir):
        """A policy that does not ask for confirmation deletes directly."""
        manager = RetentionManager(RetentionPolicy(require_confirmation=False), clock=clock)
        make_file(log_dir, "app.log", clock, days_old=40)
        assert manager.cleanup_old_logs(log_dir) == 1

    def test_disabled_policy(self, clock, log_dir):
        """A disabled policy never deletes."""
        manager = RetentionManager(RetentionPolicy(enabled=False), clock=clock)
        make_file(log_dir, "app.log", clock, days_old=40)
        assert manager.cleanup_old_logs(log_dir, require_confirmation=False) == 0

    def test_compress_old_logs(self, manager, recorder, log_dir, clock):
        """Logs past compress_after_days are gzipped in place; bytes saved are reported."""
        path = make_file(log_dir, "app.log", clock, days_old=8, content="repetitive line\n" * 1000)
        make_file(log_dir, "recent.log", clock, days_old=2)

        saved = manager.compress_old_logs(log_dir)

        target = log_dir / "app.log.gz"
        assert saved == 16000 - target.stat().st_size
        assert not path.exists()
        assert (log_dir / "recent.log").exists()
        assert recorder.moved == [(path, target)]

    def test_compress_old_logs_keeps_existing_gz(self, manager, log_dir, clock):
        """A .log.gz from an earlier pass is never overwritten."""
        earlier = log_dir / "app.log.gz"
        with gzip.open(earlier, "wt") as f:
            f.write("earlier archive\n")
        path = make_file(log_dir, "app.log", clock, days_old=10, content="new content\n")

        assert manager.compress_old_logs(log_dir) == 0

        assert path.exists()
        with gzip.open(earlier, "rt") as f:
            assert f.read() == "earlier archive\n"

    def test_compression_disabled(self, clock, log_dir):
        manager = RetentionManager(RetentionPolicy(compress_old_logs=False), clock=clock)
        make_file(log_dir, "app.log", clock, days_old=8)
        assert manager.compress_old_logs(log_dir) == 0
        assert (log_dir / "app.log").exists()

    def test_run_scheduled_cleanup(self, manager, log_dir, clock):
        """The automatic pass compresses, then deletes without confirmation."""
        make_file(log_dir, "week.log", clock, days_old=8, content="a" * 5000)
        make_file(log_dir, "month.log", clock, days_old=40, content="b" * 5000)

        saved, removed = manager.run_scheduled_cleanup(log_dir)

        assert saved > 0
        # Both were compressed first, so no .log is left to delete
        assert removed == 0
        assert sorted(p.name for p in log_dir.iterdir()) == ["month.log.gz", "week.log.gz"]


class TestStartupSweep:
    """Tests for the startup clearing helpers."""

    def test_clear_directory(self, manager, log_dir, clock):
        """Active logs go; archives stay unless asked."""
        make_file(log_dir, "app.log", clock)
        make_file(log_dir, "events.jsonl", clock)
        make_file(log_dir, "app.log.20240101.archive.gz", clock)
        make_file(log_dir, "config.json", clock)

        assert manager.clear_directory(log_dir) == 2
        assert sorted(p.name for p in log_dir.iterdir()) == ["app.log.20240101.archive.gz", "config.json"]
        assert manager.clear_directory(log_dir, include_archives=True) == 1

    def test_delete_files_older_than(self, manager, log_dir, clock):
        make_file(log_dir, "stale.log", clock, days_old=2)
        make_file(log_dir, "fresh.log", clock)
        assert manager.delete_files_older_than(log_dir, timedelta(hours=24)) == 1
        assert [p.name for p in log_dir.iterdir()] == ["fresh.log"]


class TestReporting:
    """Tests for directory statistics."""

    def test_get_log_statistics(self, manager, log_dir, clock):
        """Counts by kind, plus files past retention."""
        make_file(log_dir, "app.log", clock, content="12345")
        make_file(log_dir, "old.log", clock, days_old=40, content="12345")
        make_file(log_dir, "events.jsonl", clock, content="12345")
        make_file(log_dir, "a.archive.gz", clock, days_old=40, content="12345")

        assert manager.get_log_statistics(log_dir) == {
            "total_files": 4,
            "total_size_bytes": 20,
            "compressed_files": 1,
            "log_files": 2,
            "json_files": 1,
            "old_files": 2,
            "uncompressed_old_files": 1,
        }

    def test_get_directory_stats(self, manager, log_dir, clock, fixed_now):
        """Active logs and archives are totalled separately."""
        make_file(log_dir, "app.log", clock, days_old=1, content="1234")
        make_file(log_dir, "other.txt", clock, days_old=3, content="12")
        make_file(log_dir, "app.log.20240101.archive", clock, content="123456")

        stats = manager.get_directory_stats(log_dir)

        assert stats.active_log_count == 2
        assert stats.archive_count == 1
        assert stats.total_log_size == 6
        assert stats.total_archive_size == 6
        assert stats.total_size == 12
        assert stats.oldest_log == fixed_now - timedelta(days=3)
        assert stats.newest_log == fixed_now - timedelta(days=1)


class TestAutoCleanup:
    """Tests for the daily cleanup schedule."""

    def test_requires_auto_clean(self, manager, log_dir):
        """The default policy does not schedule anything."""
        assert manager.start_auto_cleanup(log_dir) is False

    def test_schedule_once(self, clock, log_dir):
        """Only one schedule runs at a time."""
        manager = RetentionManager(RetentionPolicy(auto_clean=True), clock=clock)
        try:
            assert manager.start_auto_cleanup(log_dir) is True
            assert manager.start_auto_cleanup(log_dir) is False
        finally:
            manager.stop_auto_cleanup()
        assert manager._timer is None

    def test_next_run_at_two_am(self, manager, clock):
        """From noon, the next run is fourteen hours away."""
        assert manager._seconds_until_next_run() == 14 * 3600
        clock.advance(hours=-11)
        assert manager._seconds_until_next_run() == 3600
