from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from ..config import SETTINGS

CacheEntry = Tuple[float, bytes]

MAX_ENTRIES = 16


class RenderCache:
    """Encoded paintings keyed by request path.

    Entries expire after ``ttl`` seconds (``SETTINGS.cache_ttl`` when unset)
    and the least recently used one is dropped once ``MAX_ENTRIES`` is hit.
    The most recent successful painting is kept separately as a fallback for
    when the source goes away.
    """

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.time,
        max_entries: int = MAX_ENTRIES,
    ) -> None:
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._ttl = ttl
        self._clock = clock
        self._max_entries = max_entries
        self._last_good: bytes = b""

    @property
    def ttl(self) -> float:
        return SETTINGS.cache_ttl if self._ttl is None else self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, data = entry
        if self._clock() - stored_at > self.ttl:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return data

    def put(self, key: str, data: bytes) -> None:
        self._entries[key] = (self._clock(), data)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def store_painting(self, key: str, data: bytes) -> None:
        self.put(key, data)
        self._last_good = data

    def last_painting(self) -> Optional[bytes]:
        return self._last_good or None

    def clear(self) -> None:
        """Drop cached renders; the last painting survives as a fallback."""

        self._entries.clear()


CACHE = RenderCache()
