"""Thread-safe mapping from original listener ids to wrapped listeners."""

from __future__ import annotations

import threading

from .listener import Listener


class ListenerCache:
    """Remembers which wrapped listener was registered for an original one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Listener] = {}

    def store_wrapped(self, original_id: str, wrapped: Listener) -> None:
        with self._lock:
            self._entries[original_id] = wrapped

    def get_wrapped(self, original_id: str) -> Listener | None:
        """The wrapped listener for ``original_id``, or ``None``."""
        with self._lock:
            return self._entries.get(original_id)

    def delete_wrapped(self, original_id: str) -> None:
        with self._lock:
            self._entries.pop(original_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, original_id: object) -> bool:
        with self._lock:
            return original_id in self._entries