# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 1000
EVICTION_SHARE = 0.2


class ResponseCache:
    """
    In-process response cache with a TTL and a size cap.

    When an insert pushes the cache over ``max_entries`` the oldest 20% of
    entries are dropped in one pass. Safe to share between worker threads.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = max(int(max_entries), 1)
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(*parts: Any) -> str:
        raw = "|".join("" if part is None else str(part) for part in parts)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def __len__(self) -> int:
        with self._lock:
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
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            if len(self._entries) > self.max_entries:
                self._evict_oldest()

    def _evict_oldest(self) -> None:
        # dicts keep insertion order and set() re-inserts, so the head is the oldest.
        drop = max(int(len(self._entries) * EVICTION_SHARE), 1)
        for key in list(self._entries)[:drop]:
            del self._entries[key]
        logger.debug("Response cache over %s entries, evicted %s", self.max_entries, drop)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
