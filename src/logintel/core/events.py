"""
Observer hooks.

Subscribers run on the thread that fires the event. A subscriber that
raises is logged and skipped; it never breaks the producer.
"""

import logging
import threading
from typing import Any, Callable

__all__ = ["EventHook"]

logger = logging.getLogger(__name__)


class EventHook:
    """
    A named list of callbacks.

    Example:
        store.entry_added.subscribe(lambda entry: print(entry.message))
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: list[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable[..., Any]) -> None:
        with self._lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Callable[..., Any]) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def fire(self, *args: Any) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Subscriber to '{self.name}' failed")

    def __len__(self) -> int:
        return len(self._handlers)
