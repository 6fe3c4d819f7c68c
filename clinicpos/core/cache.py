"""
Process-local read cache.

Services cache whole read results under an entity prefix
(``investments:list:0:100``, ``ledger:all``, ``bills:search:inv7`` …) and
drop every prefix a write can affect.  Ledger views are derived from
investments, investors and contributions, so writes to any of those also
clear ``ledger:``.

Entries carry their own deadline (``CACHE_TTL``) and the least recently read
entry is evicted once ``CACHE_MAX_SIZE`` is reached.  One event loop serves
all requests, so no locking.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Optional, Tuple

from clinicpos.core.config import settings

logger = logging.getLogger(__name__)

INVESTORS = "investors:"
INVESTMENTS = "investments:"
CONTRIBUTIONS = "contributions:"
LEDGER = "ledger:"
BILLS = "bills:"
MEDICINES = "medicines:"


class TTLCache:
    def __init__(self, ttl: float = 30.0, max_size: int = 1000, enabled: bool = True):
        self.ttl = ttl
        self.max_size = max_size
        self.enabled = enabled
        # key -> (expires_at, value), least recently read first
        self._store: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Cached value for ``key``; ``None`` when absent or past its deadline."""
        if not self.enabled:
            return None

        item = self._store.get(key)
        if item is not None and item[0] <= time.monotonic():
            del self._store[key]
            item = None
        if item is None:
            self._misses += 1
            return None

        self._store.move_to_end(key)
        self._hits += 1
        return item[1]

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        self._store[key] = (time.monotonic() + self.ttl, value)
        self._store.move_to_end(key)
        while len(self._store) > self.max_size:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("cache full, evicted %s", evicted)

    def invalidate(self, *prefixes: str) -> int:
        """Drop every key starting with one of ``prefixes``; returns the count."""
        if not self.enabled:
            return 0
        stale = [key for key in self._store if key.startswith(prefixes)]
        for key in stale:
            del self._store[key]
        if stale:
            logger.debug("cache invalidated %d keys under %s", len(stale), ", ".join(prefixes))
        return len(stale)

    def clear(self) -> None:
        self._store.clear()

    def get_stats(self) -> dict:
        lookups = self._hits + self._misses
        return {
            "enabled": self.enabled,
            "size": len(self._store),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{self._hits / lookups:.1%}" if lookups else "N/A",
        }


cache = TTLCache(
    ttl=settings.CACHE_TTL,
    max_size=settings.CACHE_MAX_SIZE,
    enabled=settings.CACHE_ENABLED,
)
