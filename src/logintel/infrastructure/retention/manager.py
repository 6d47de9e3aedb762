"""
Retention and rotation of log files.

Every filesystem operation is attempted per file: a file that is locked,
missing or unreadable is logged and skipped and the batch continues.
Renames and deletions are reported to an optional offset bookkeeper so a
running watcher does not re-read or lose track of files.
"""

import gzip
import logging
import os
import shutil
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator

from logintel.core.exceptions import RetentionOpError
from logintel.core.models import DirectoryStats, RetentionPolicy, RotationReport
from logintel.domain.services import OffsetBookkeeper

__all__ = ["RetentionManager", "ACTIVE_SUFFIXES"]

logger = logging.getLogger(__name__)


ACTIVE_SUFFIXES = (".log", ".jsonl", ".txt")
ARCHIVE_SUFFIX = ".archive"
ARCHIVE_GZ_SUFFIX = ".archive.gz"
AUTO_CLEANUP_HOUR = 2


def _is_archive(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(ARCHIVE_SUFFIX) or name.endswith(".gz")


def _is_active(path: Path) -> bool:
    return path.suffix.lower() in ACTIVE_SUFFIXES


class RetentionManager:
    """
    Applies a ``RetentionPolicy`` to one log directory at a time.

    Rotation lifecycle of an active ``app.log``:
        app.log -> app.log.20240101.archive -> app.log.20240101.archive.gz -> deleted
    """

    def __init__(
        self,
        policy: RetentionPolicy | None = None,
        bookkeeper: OffsetBookkeeper | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.policy = policy or RetentionPolicy()
        self.bookkeeper = bookkeeper
        self.clock = clock
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()

    # Startup sweep

    def clear_directory(self, directory: Path, include_archives: bool = False) -> int:
        """Delete every active log file, and optionally every archive."""
        removed = 0
        for path in self._files(directory):
            if _is_active(path) or (include_archives and _is_archive(path)):
                if self._delete(path):
                    removed += 1
        logger.info(f"Cleared {removed} files from {directory}")
        return removed

    def delete_files_older_than(self, directory: Path, max_age: timedelta) -> int:
        """Delete active log files last written more than ``max_age`` ago."""
        removed = 0
        for path in self._files(directory):
            if _is_active(path) and self._age(path) > max_age:
                if self._delete(path):
                    removed += 1
        return removed

    # Rotation

    def archive_old_logs(self, directory: Path) -> list[Path]:
        """
        Rename ``.log`` files older than ``retention_days`` to
        ``<name>.<yyyymmdd>.archive``, replacing any same-named archive.
        """
        max_age = timedelta(days=self.policy.retention_days)
        archived = []
        for path in self._files(directory):
            if path.suffix.lower() == ".log" and self._age(path) > max_age:
                target = self._archive(path)
                if target is not None:
                    archived.append(target)
        if archived:
            logger.info(f"Archived {len(archived)} log files in {directory}")
        return archived

    def compress_archives(self, directory: Path) -> list[Path]:
        """Gzip every ``.archive`` file and delete the uncompressed copy."""
        compressed = []
        for path in self._files(directory):
            if not path.name.endswith(ARCHIVE_SUFFIX):
                continue
            target = path.with_name(path.name + ".gz")
            if target.exists():
                logger.debug(f"Skipping {path.name}: {target.name} already exists")
                continue
            if self._gzip(path, target):
                compressed.append(target)
        return compressed

    def delete_old_archives(self, directory: Path) -> int:
        """Delete ``.archive.gz`` files older than ``max_archive_age_days``."""
        max_age = timedelta(days=self.policy.max_archive_age_days)
        removed = 0
        for path in self._files(directory):
            if path.name.endswith(ARCHIVE_GZ_SUFFIX) and self._age(path) > max_age:
                if self._delete(path):
                    removed += 1
        return removed

    def enforce_size_limit(self, directory: Path) -> list[Path]:
        """Archive the oldest ``.log`` files until active logs fit the size budget."""
        logs = []
        for path in self._files(directory):
            if path.suffix.lower() != ".log":
                continue
            try:
                stat = path.stat()
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
                continue
            logs.append((stat.st_mtime, stat.st_size, path))

        total = sum(size for _, size, _ in logs)
        budget = self.policy.max_total_size_bytes
        archived = []
        for _, size, path in sorted(logs):
            if total <= budget:
                break
            target = self._archive(path)
            if target is not None:
                archived.append(target)
                total -= size
        if archived:
            logger.info(f"Size budget exceeded: archived {len(archived)} files in {directory}")
        return archived

    def rotate(self, directory: Path) -> RotationReport:
        """Archive, compress, purge, then enforce the size budget."""
        directory = Path(directory)
        report = RotationReport()
        report.archived = self.archive_old_logs(directory)
        report.compressed = self.compress_archives(directory)
        report.deleted_archives = self.delete_old_archives(directory)
        report.budget_archived = self.enforce_size_limit(directory)
        return report

    # Retention policy

    def cleanup_old_logs(self, directory: Path, require_confirmation: bool = True) -> int:
        """
        Delete ``.log`` and ``.jsonl`` files older than ``retention_days``.

        Nothing is deleted while both the caller and the policy ask for
        confirmation.
        """
        if not self.policy.enabled:
            return 0
        if require_confirmation and self.policy.require_confirmation:
            logger.info("Cleanup requires confirmation; no files deleted")
            return 0

        max_age = timedelta(days=self.policy.retention_days)
        removed = 0
        for path in self._files(directory):
            if path.suffix.lower() in (".log", ".jsonl") and self._age(path) > max_age:
                if self._delete(path):
                    removed += 1

        self.policy.last_cleanup = self.clock()
        logger.info(f"Retention cleanup deleted {removed} files from {directory}")
        return removed

    def compress_old_logs(self, directory: Path) -> int:
        """
        Gzip ``.log`` files older than ``compress_after_days`` in place.

        Returns:
            Bytes saved
        """
        if not self.policy.compress_old_logs:
            return 0

        max_age = timedelta(days=self.policy.compress_after_days)
        saved = 0
        for path in self._files(directory):
            if path.suffix.lower() != ".log" or self._age(path) <= max_age:
                continue
            target = path.with_name(path.name + ".gz")
            if target.exists():
                logger.debug(f"Skipping {path.name}: {target.name} already exists")
                continue
            try:
                original_size = path.stat().st_size
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
                continue
            if self._gzip(path, target):
                saved += original_size - target.stat().st_size
        if saved:
            logger.info(f"Compressed old logs in {directory}, saved {saved:,} bytes")
        return saved

    # Reporting

    def get_log_statistics(self, directory: Path) -> dict[str, int]:
        max_age = timedelta(days=self.policy.retention_days)
        stats = {
            "total_files": 0,
            "total_size_bytes": 0,
            "compressed_files": 0,
            "log_files": 0,
            "json_files": 0,
            "old_files": 0,
            "uncompressed_old_files": 0,
        }
        for path in self._files(directory):
            try:
                size = path.stat().st_size
            except OSError:
                continue
            suffix = path.suffix.lower()
            stats["total_files"] += 1
            stats["total_size_bytes"] += size
            if suffix == ".gz":
                stats["compressed_files"] += 1
            elif suffix == ".log":
                stats["log_files"] += 1
            elif suffix in (".json", ".jsonl"):
                stats["json_files"] += 1
            if self._age(path) > max_age:
                stats["old_files"] += 1
                if suffix != ".gz":
                    stats["uncompressed_old_files"] += 1
        return stats

    def get_directory_stats(self, directory: Path) -> DirectoryStats:
        stats = DirectoryStats()
        for path in self._files(directory):
            try:
                stat = path.stat()
            except OSError:
                continue
            if _is_archive(path):
                stats.archive_count += 1
                stats.total_archive_size += stat.st_size
            elif _is_active(path):
                modified = datetime.fromtimestamp(stat.st_mtime)
                stats.active_log_count += 1
                stats.total_log_size += stat.st_size
                if stats.oldest_log is None or modified < stats.oldest_log:
                    stats.oldest_log = modified
                if stats.newest_log is None or modified > stats.newest_log:
                    stats.newest_log = modified
        return stats

    # Scheduled cleanup

    def start_auto_cleanup(self, directory: Path) -> bool:
        """
        Run compress-then-cleanup every day at 02:00 without confirmation.

        Returns:
            False if the policy is disabled or a schedule is already running
        """
        if not (self.policy.enabled and self.policy.auto_clean):
            return False
        with self._timer_lock:
            if self._timer is not None:
                return False
            self._schedule(Path(directory), self._seconds_until_next_run())
        logger.info(f"Automatic cleanup scheduled for {directory}")
        return True

    def stop_auto_cleanup(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def run_scheduled_cleanup(self, directory: Path) -> tuple[int, int]:
        """One automatic pass. Returns (bytes saved, files deleted)."""
        saved = self.compress_old_logs(directory)
        removed = self.cleanup_old_logs(directory, require_confirmation=False)
        return saved, removed

    def _seconds_until_next_run(self) -> float:
        now = self.clock()
        next_run = now.replace(hour=AUTO_CLEANUP_HOUR, minute=0, second=0, microsecond=0)
        if next_run <= now:
            next_run += timedelta(days=1)
        return (next_run - now).total_seconds()

    def _schedule(self, directory: Path, delay: float) -> None:
        self._timer = threading.Timer(delay, self._auto_cleanup_tick, args=(directory,))
        self._timer.daemon = True
        self._timer.start()

    def _auto_cleanup_tick(self, directory: Path) -> None:
        try:
            self.run_scheduled_cleanup(directory)
        except Exception:
            logger.exception("Automatic cleanup failed")
        with self._timer_lock:
            if self._timer is not None:
                self._schedule(directory, timedelta(days=1).total_seconds())

    # Per-file operations

    def _files(self, directory: Path) -> Iterator[Path]:
        directory = Path(directory)
        if not directory.is_dir():
            return iter(())
        return (p for p in sorted(directory.iterdir()) if p.is_file())

    def _age(self, path: Path) -> timedelta:
        try:
            modified = path.stat().st_mtime
        except OSError:
            return timedelta(0)
        return self.clock() - datetime.fromtimestamp(modified)

    def _archive(self, path: Path) -> Path | None:
        stamp = self.clock().strftime("%Y%m%d")
        target = path.with_name(f"{path.name}.{stamp}{ARCHIVE_SUFFIX}")
        try:
            os.replace(path, target)
        except OSError as e:
            self._report(RetentionOpError(str(e), str(path), "archive"))
            return None
        if self.bookkeeper is not None:
            self.bookkeeper.file_moved(path, target)
        return target

    def _gzip(self, source: Path, target: Path) -> bool:
        try:
            with open(source, "rb") as src, gzip.open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            stat = source.stat()
            os.utime(target, (stat.st_atime, stat.st_mtime))
            source.unlink()
        except OSError as e:
            self._report(RetentionOpError(str(e), str(source), "compress"))
            # Never leave a half-written archive next to the original
            if source.exists() and target.exists():
                target.unlink(missing_ok=True)
            return False
        if self.bookkeeper is not None:
            self.bookkeeper.file_moved(source, target)
        return True

    def _delete(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            self._report(RetentionOpError(str(e), str(path), "delete"))
            return False
        if self.bookkeeper is not None:
            self.bookkeeper.file_removed(path)
        return True

    @staticmethod
    def _report(error: RetentionOpError) -> None:
        logger.warning(f"Retention {error.operation} failed for {error.file_path}: {error.message}")
