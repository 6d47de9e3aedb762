"""
Bounded, thread-safe in-memory store of canonical entries.
"""

import itertools
import logging
import threading
from collections import OrderedDict
from typing import Iterable

from logintel.core.events import EventHook
from logintel.core.models import LogEntry

__all__ = ["EntryStore"]

logger = logging.getLogger(__name__)


class EntryStore:
    """
    Id -> entry map in insertion order, capped at ``max_entries``.

    The store assigns ids: every added entry gets the next integer, so ids
    are unique and increase with insertion. Once over capacity the oldest
    inserted entries are evicted.

    Events:
        entry_added(entry)
        entries_added(list[LogEntry])
        cleared()
    """

    def __init__(self, max_entries: int = 5000):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[int, LogEntry] = OrderedDict()
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

        self.entry_added = EventHook("entry_added")
        self.entries_added = EventHook("entries_added")
        self.cleared = EventHook("cleared")

    def add(self, entry: LogEntry) -> LogEntry:
        """Assign an id, store, and announce a single entry."""
        with self._lock:
            self._insert(entry)
            self._evict()
        self.entry_added.fire(entry)
        return entry

    def add_many(self, entries: Iterable[LogEntry]) -> list[LogEntry]:
        """Store a batch; ids follow the iteration order."""
        added = []
        with self._lock:
            for entry in entries:
                self._insert(entry)
                added.append(entry)
            self._evict()
        if added:
            for entry in added:
                self.entry_added.fire(entry)
            self.entries_added.fire(added)
        return added

    def get(self, entry_id: int) -> LogEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def get_page(self, skip: int = 0, take: int = 100) -> list[LogEntry]:
        """A page of entries, newest timestamp first."""
        return self.get_all()[skip:skip + take]

    def get_all(self) -> list[LogEntry]:
        """Every entry, newest timestamp first."""
        with self._lock:
            entries = list(self._entries.values())
        return sorted(entries, key=lambda e: (e.timestamp, e.id), reverse=True)

    def snapshot(self) -> list[LogEntry]:
        """Every entry in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def recent(self, count: int) -> list[LogEntry]:
        """The last ``count`` inserted entries, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            return list(self._entries.values())[-count:]

    def clear(self) -> None:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {removed} entries from store")
        self.cleared.fire()

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, entry_id: int) -> bool:
        with self._lock:
            return entry_id in self._entries

    def _insert(self, entry: LogEntry) -> None:
        entry.id = next(self._ids)
        self._entries[entry.id] = entry

    def _evict(self) -> None:
        overflow = len(self._entries) - self.max_entries
        for _ in range(overflow):
            self._entries.popitem(last=False)
        if overflow > 0:
            logger.debug(f"Evicted {overflow} oldest entries")
