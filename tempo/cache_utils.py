from __future__ import annotations

from threading import Lock
from time import monotonic
from typing import Callable, Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Process-local key/value store whose entries expire after ``ttl_seconds``.

    A TTL of zero disables storage entirely.
    """

    def __init__(self, ttl_seconds: int = 60, clock: Callable[[], float] = monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._store: dict[str, tuple[float, V]] = {}
        self._lock = Lock()

    def set(self, key: str, value: V) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._store[key] = (self._clock(), value)

    def get(self, key: str) -> V | None:
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            ts, val = item
            if self._clock() - ts > self.ttl:
                self._store.pop(key, None)
                return None
            return val

    def pop(self, key: str) -> V | None:
        value = self.get(key)
        with self._lock:
            self._store.pop(key, None)
        return value

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
