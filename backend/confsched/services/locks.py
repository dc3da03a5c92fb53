from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = Lock()
        self.holders = 0


class KeyedLock:
    """One mutex per key while someone holds or waits on it; serialises writers of the same conference."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._registry_lock = Lock()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entries)

    def _acquire_entry(self, key: str) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.holders += 1
            return entry

    def _release_entry(self, key: str, entry: _Entry) -> None:
        with self._registry_lock:
            entry.holders -= 1
            if entry.holders <= 0 and self._entries.get(key) is entry:
                del self._entries[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        normalized = str(key or "").strip()
        entry = self._acquire_entry(normalized)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(normalized, entry)

    def clear(self) -> None:
        with self._registry_lock:
            self._entries.clear()


schedule_locks = KeyedLock()
