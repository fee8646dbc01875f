# Overview: In-process TTL response cache with key and prefix invalidation.

"""
Short-lived response cache.

Not a correctness mechanism: entries are dropped on expiry, on prefix
invalidation after a committed write, or when the process restarts. A
crash between commit and invalidation leaves a stale entry for at most
the entry's TTL.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable


PRODUCTS_PREFIX = "products:"
TRANSACTIONS_PREFIX = "transactions:"
REPORTS_PREFIX = "reports:"
MARKET_PREFIX = "market:"


class TTLCache:
    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self.misses += 1
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._items[key]
                self.misses += 1
                return None
            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._items[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def delete_prefix(self, *prefixes: str) -> int:
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefixes)]
            for key in doomed:
                del self._items[key]
            return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [k for k, (expires_at, _) in self._items.items() if now >= expires_at]
            for key in doomed:
                del self._items[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict:
        with self._lock:
            total = self.hits + self.misses
            return {
                "items": len(self._items),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(self.hits / total, 4) if total else 0.0,
            }

    def get_or_set(self, key: str, builder: Callable[[], Any], ttl: float | None = None) -> Any:
        value = self.get(key)
        if value is None:
            value = builder()
            self.set(key, value, ttl)
        return value


cache = TTLCache()


def invalidate(*prefixes: str) -> int:
    return cache.delete_prefix(*prefixes)
