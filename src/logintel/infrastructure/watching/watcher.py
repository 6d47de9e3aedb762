"""
Ingestion watcher: tails a directory of log files.

Two mechanisms cooperate. A poll loop reads whatever was appended to
every known file since its cursor, and a watchdog observer reacts to
creations (delayed full read), renames (cursor follows the file) and
deletions (cursor dropped).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from logintel.core.config import EngineConfig
from logintel.core.exceptions import IngestionIOError, WatcherFault
from logintel.core.models import LogEntry
from logintel.domain.services import EntryProcessor, StartupSweeper
from logintel.infrastructure.sources import (
    FileCursor,
    TailReader,
    discover_log_files,
    is_log_file,
)
from logintel.infrastructure.store import EntryStore
from logintel.infrastructure.watching.signatures import SignatureCache
from logintel.parsers import FormatDetectingParser

__all__ = ["IngestionWatcher"]

logger = logging.getLogger(__name__)


class _LogEventHandler(FileSystemEventHandler):
    """Forwards watchdog events for log files to the watcher."""

    def __init__(self, watcher: "IngestionWatcher"):
        self.watcher = watcher

    def on_created(self, event) -> None:
        if event.is_directory:
            return
        path = Path(event.src_path)
        if is_log_file(path):
            self.watcher.schedule_new_file(path)

    def on_moved(self, event) -> None:
        if event.is_directory:
            return
        self.watcher.file_moved(Path(event.src_path), Path(event.dest_path))

    def on_deleted(self, event) -> None:
        if event.is_directory:
            return
        self.watcher.file_removed(Path(event.src_path))


class IngestionWatcher:
    """
    Turns a directory of growing log files into stored, de-duplicated
    canonical entries.

    Every new entry is parsed, checked against the seen-signature cache,
    added to the store (which assigns its id and fires ``entry_added``
    and ``entries_added``) and handed to the entry processor, normally the
    alert engine.

    Example:
        watcher = IngestionWatcher(FormatDetectingParser(), EntryStore(), EngineConfig())
        watcher.start_monitoring(Path("/var/log/myapp"))
        ...
        watcher.stop_monitoring()
    """

    def __init__(
        self,
        parser: FormatDetectingParser,
        store: EntryStore,
        config: EngineConfig | None = None,
        signatures: SignatureCache | None = None,
        processor: EntryProcessor | None = None,
        sweeper: StartupSweeper | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.parser = parser
        self.store = store
        self.config = config or EngineConfig()
        self.signatures = signatures or SignatureCache(
            self.config.seen_signatures_path,
            self.config.log_retention_days,
            clock,
        )
        self.processor = processor
        self.sweeper = sweeper
        self.clock = clock

        self.reader = TailReader()
        self.directory: Path | None = None

        self._cursors: dict[Path, FileCursor] = {}
        self._cursor_locks: dict[Path, threading.Lock] = {}
        self._cursors_lock = threading.Lock()
        self._publish_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._poll_thread: threading.Thread | None = None
        self._observer: Observer | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._timers: set[threading.Timer] = set()
        self._timers_lock = threading.Lock()
        self._running = False

    # Events live on the store; exposed here for convenience
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
    def is_running(self) -> bool:
        return self._running

    def start_monitoring(self, directory: str | Path) -> bool:
        """
        Start tailing a directory.

        Creates the directory if needed, applies the startup sweep, loads
        recent history into the store, then starts the observer and the
        poll loop.

        Returns:
            True if monitoring started
        """
        if self._running:
            logger.warning(f"Already monitoring {self.directory}")
            return False

        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create log directory {directory}: {e}")
            return False

        self.directory = directory
        self._stop_event.clear()
        self.signatures.load()
        self._sweep(directory)

        since = self.clock() - timedelta(hours=self.config.historical_hours)
        history, cursors = self._read_history(directory, since)
        with self._cursors_lock:
            self._cursors = {c.path: c for c in cursors}
        for entry in history:
            self.signatures.add(entry.signature(), entry.timestamp)
        self.store.add_many(history)
        logger.info(f"Loaded {len(history)} historical entries from {len(cursors)} files in {directory}")

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.poll_workers,
            thread_name_prefix="logintel-tail",
        )
        self._start_observer(directory)

        self._poll_thread = threading.Thread(
            target=self._poll_loop,
            name="logintel-poll",
            daemon=True,
        )
        self._running = True
        self._poll_thread.start()
        logger.info(f"Monitoring {directory} every {self.config.poll_interval}s")
        return True

    def stop_monitoring(self) -> None:
        """Stop the poll loop, observer and pending reads, then persist signatures."""
        if not self._running:
            return

        self._stop_event.set()
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=max(5.0, self.config.poll_interval * 2))
            self._poll_thread = None

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        self.signatures.save()
        self._running = False
        logger.info(f"Stopped monitoring {self.directory}")

    def poll_once(self) -> list[LogEntry]:
        """
        Run one tail tick over every log file in the directory.

        Returns:
            Entries that were new and got stored
        """
        if self.directory is None:
            return []

        cursors = self._refresh_cursors(self.directory)
        pending = [c for c in cursors if self.reader.has_new_data(c)]
        if not pending:
            return []

        if self._executor is not None and len(pending) > 1:
            futures = [self._executor.submit(self._read_cursor, c) for c in pending]
            batches = [f.result() for f in futures]
        else:
            batches = [self._read_cursor(c) for c in pending]

        parsed = [entry for batch in batches for entry in batch]
        return self.ingest(parsed)

    def schedule_new_file(self, path: Path) -> None:
        """Read a freshly created file in full after a short delay."""
        if self._stop_event.is_set():
            return
        timer = threading.Timer(self.config.new_file_delay, self._read_new_file, args=(path,))
        timer.daemon = True
        with self._timers_lock:
            self._timers.add(timer)
        timer.start()

    def file_moved(self, old_path: Path, new_path: Path) -> None:
        """Carry a file's cursor over to its new name so it is not re-read."""
        old_path, new_path = Path(old_path), Path(new_path)
        with self._cursors_lock:
            cursor = self._cursors.pop(old_path, None)
            lock = self._cursor_locks.pop(old_path, None)
            if cursor is None or not is_log_file(new_path):
                return
            if new_path.suffix.lower() == ".gz" and old_path.suffix.lower() != ".gz":
                # Compressed in place: keep the line count, byte offsets no longer apply
                cursor.offset = 0
            cursor.path = new_path
            self._cursors[new_path] = cursor
            if lock is not None:
                self._cursor_locks[new_path] = lock
        logger.debug(f"Cursor moved {old_path} -> {new_path} at offset {cursor.offset}")

    def file_removed(self, path: Path) -> None:
        path = Path(path)
        with self._cursors_lock:
            removed = self._cursors.pop(path, None)
            self._cursor_locks.pop(path, None)
        if removed is not None:
            logger.debug(f"Dropped cursor for {path}")

    def get_all_entries(self) -> list[LogEntry]:
        return self.store.get_all()

    def clear_logs(self) -> None:
        self.store.clear()

    def load_historical_logs(self, directory: str | Path, since: datetime | None = None) -> list[LogEntry]:
        """
        Read log files modified since a cutoff without storing anything.

        Returns:
            Up to ``max_entries`` entries at or after ``since``, oldest first
        """
        entries, _ = self._read_history(Path(directory), since)
        return entries

    def _read_history(self, directory: Path, since: datetime | None) -> tuple[list[LogEntry], list[FileCursor]]:
        cutoff_ts = since.timestamp() if since else None
        entries: list[LogEntry] = []
        cursors: list[FileCursor] = []
        seen: set[str] = set()

        for path in discover_log_files(directory):
            cursor = FileCursor(path)
            try:
                recent = cutoff_ts is None or path.stat().st_mtime >= cutoff_ts
                lines = self.reader.read_new_lines(cursor)
            except OSError as e:
                error = IngestionIOError(f"Cannot read {path.name}: {e}", str(path))
                logger.warning(str(error))
                continue
            cursors.append(cursor)
            if not recent:
                continue

            for line_number, text in lines:
                entry = self.parser.parse(text, str(path), line_number)
                if entry is None or (since is not None and entry.timestamp < since):
                    continue
                signature = entry.signature()
                if signature in seen:
                    continue
                seen.add(signature)
                entries.append(entry)

        entries.sort(key=lambda e: e.timestamp)
        return entries[-self.config.max_entries:], cursors

    def _sweep(self, directory: Path) -> None:
        if self.sweeper is None:
            return
        if self.config.clear_logs_on_startup:
            removed = self.sweeper.clear_directory(directory)
            logger.info(f"Startup sweep removed {removed} log files")
        elif self.config.delete_old_files_on_startup:
            max_age = timedelta(hours=self.config.old_file_threshold_hours)
            removed = self.sweeper.delete_files_older_than(directory, max_age)
            logger.info(f"Startup sweep removed {removed} files older than {max_age}")

    def _start_observer(self, directory: Path) -> None:
        try:
            observer = Observer()
            observer.schedule(_LogEventHandler(self), str(directory), recursive=True)
            observer.start()
        except Exception as e:
            fault = WatcherFault(f"Filesystem notifications unavailable, polling only: {e}")
            logger.error(str(fault))
            return
        self._observer = observer

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.config.poll_interval):
            try:
                self.poll_once()
            except Exception:
                logger.exception("Poll tick failed")

    def _refresh_cursors(self, directory: Path) -> list[FileCursor]:
        present = discover_log_files(directory)
        with self._cursors_lock:
            for path in present:
                if path not in self._cursors:
                    self._cursors[path] = FileCursor(path)
            for path in set(self._cursors) - set(present):
                del self._cursors[path]
                self._cursor_locks.pop(path, None)
            return list(self._cursors.values())

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._cursors_lock:
            return self._cursor_locks.setdefault(path, threading.Lock())

    def _read_cursor(self, cursor: FileCursor) -> list[LogEntry]:
        """Parse whatever was appended to one file. Errors skip the file for this tick."""
        with self._lock_for(cursor.path):
            try:
                lines = self.reader.read_new_lines(cursor)
            except OSError as e:
                error = IngestionIOError(f"Cannot read {cursor.path.name}: {e}", str(cursor.path))
                logger.warning(str(error))
                return []
        path = str(cursor.path)
        entries = []
        for line_number, text in lines:
            entry = self.parser.parse(text, path, line_number)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read_new_file(self, path: Path) -> None:
        with self._timers_lock:
            self._timers = {t for t in self._timers if t.is_alive() and t is not threading.current_thread()}
        if self._stop_event.is_set() or not path.exists():
            return
        with self._cursors_lock:
            cursor = self._cursors.setdefault(path, FileCursor(path))
        try:
            self.ingest(self._read_cursor(cursor))
        except Exception:
            logger.exception(f"Failed to ingest new file {path}")

    def ingest(self, entries: list[LogEntry]) -> list[LogEntry]:
        """De-duplicate, store and forward entries. Returns the stored ones."""
        if not entries:
            return []
        with self._publish_lock:
            fresh = [e for e in entries if self.signatures.add_if_new(e.signature(), e.timestamp)]
            stored = self.store.add_many(fresh)
        if self.processor is not None:
            for entry in stored:
                try:
                    self.processor.process_entry(entry)
                except Exception:
                    logger.exception(f"Entry processor failed on entry {entry.id}")
        if stored:
            logger.debug(f"Ingested {len(stored)} new entries")
        return stored
