"""
Bounded TTL cache for store lookups.

Entries expire after ``ttl_seconds`` and the oldest entry is evicted once
``maxsize`` is reached.  Keys are tuples whose first element is the user
id so that everything cached for one user can be dropped at once.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_MAXSIZE = 512


class TTLCache:
    """Small LRU cache with per-entry expiry."""

    def __init__(
        self,
        maxsize: int = DEFAULT_MAXSIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._timer = timer
        self._entries: OrderedDict[tuple, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: tuple, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires_at, value = entry
        if self._timer() >= expires_at:
            del self._entries[key]
            return default
        self._entries.move_to_end(key)
        return value

    def set(self, key: tuple, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.maxsize:
            self._entries.popitem(last=False)
        self._entries[key] = (self._timer() + self.ttl_seconds, value)

    def invalidate(self, key: tuple) -> None:
        self._entries.pop(key, None)

    def invalidate_user(self, user_id: str) -> None:
        """Drop every entry cached for one user."""
        for key in [k for k in self._entries if k and k[0] == user_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()
