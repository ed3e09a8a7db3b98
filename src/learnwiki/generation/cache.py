"""Short-lived cache of recent generations.

The cache only saves repeat LLM calls for identical requests made close
together. Nothing depends on a hit: a miss, an eviction or a cold cache
just means the collaborator is called again.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, Optional, Protocol

from learnwiki.constants import CACHE_KEY_DELIMITER, CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS


def cache_key(kind: str, text: str, scope: Optional[str] = None) -> str:
    """Key for a request: kind, normalized text and an optional scope."""
    key = f"{kind}{CACHE_KEY_DELIMITER}{text.lower().strip()}"
    if scope:
        key = f"{key}{CACHE_KEY_DELIMITER}{scope}"
    return key


class GenerationCache(Protocol):
    """Interface for swappable generation caches."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def clear(self) -> None: ...


class InMemoryGenerationCache:
    """Bounded LRU cache with a per-entry time to live."""

    def __init__(
        self,
        max_entries: int = CACHE_MAX_ENTRIES,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
