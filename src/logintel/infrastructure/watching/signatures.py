"""
Persisted set of content signatures already ingested.
"""

import json
import logging
import os
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from logintel.core.exceptions import PersistenceError

__all__ = ["SignatureCache"]

logger = logging.getLogger(__name__)


class SignatureCache:
    """
    Signature -> first-seen time, pruned to a retention horizon.

    Persisted as a flat JSON object. Load and save failures are logged
    and never stop ingestion; the cache simply starts empty.
    """

    def __init__(
        self,
        path: Path | None = None,
        retention_days: int = 7,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.path = Path(path) if path else None
        self.retention = timedelta(days=retention_days)
        self.clock = clock
        self._seen: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def add_if_new(self, signature: str, seen_at: datetime | None = None) -> bool:
        """Record a signature; False if it was already known."""
        with self._lock:
            if signature in self._seen:
                return False
            self._seen[signature] = seen_at or self.clock()
            return True

    def add(self, signature: str, seen_at: datetime | None = None) -> None:
        with self._lock:
            self._seen.setdefault(signature, seen_at or self.clock())

    def __contains__(self, signature: str) -> bool:
        with self._lock:
            return signature in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def prune(self) -> int:
        """Drop signatures older than the retention horizon."""
        cutoff = self.clock() - self.retention
        with self._lock:
            stale = [sig for sig, seen in self._seen.items() if seen < cutoff]
            for sig in stale:
                del self._seen[sig]
        if stale:
            logger.debug(f"Pruned {len(stale)} expired signatures")
        return len(stale)

    def load(self) -> bool:
        """
        Load persisted signatures, replacing the in-memory set.

        Returns:
            True if a file was loaded
        """
        if self.path is None or not self.path.exists():
            return False
        try:
            loaded = self._read()
        except PersistenceError as e:
            logger.warning(f"Starting with empty signature cache: {e}")
            return False
        with self._lock:
            self._seen = loaded
        self.prune()
        logger.info(f"Loaded {len(self)} seen signatures from {self.path}")
        return True

    def save(self) -> bool:
        """
        Prune then persist.

        Returns:
            True if the file was written
        """
        if self.path is None:
            return False
        self.prune()
        with self._lock:
            data = {sig: seen.isoformat() for sig, seen in self._seen.items()}
        try:
            self._write(data)
        except PersistenceError as e:
            logger.error(f"Failed to save signature cache: {e}")
            return False
        return True

    def _read(self) -> dict[str, datetime]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read signature cache: {e}", str(self.path))
        if not isinstance(raw, dict):
            raise PersistenceError("Signature cache is not a JSON object", str(self.path))

        seen = {}
        for sig, stamp in raw.items():
            try:
                seen[sig] = datetime.fromisoformat(stamp)
            except (TypeError, ValueError):
                continue
        return seen

    def _write(self, data: dict[str, str]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write signature cache: {e}", str(self.path))
