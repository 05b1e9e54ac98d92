"""Time-boxed memoization of search results"""

import copy
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from loguru import logger

from .config import CACHE_TTL
from .models import CacheEntry, ScrapeResult


class ResultCache:
    """
    In-memory TTL cache keyed by route + date.

    Expiry is checked lazily on read; ``sweep()`` can be called periodically
    to bound memory. Results go in and come out as copies, so callers never
    share mutable state with the cache.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = timedelta(seconds=ttl)
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: CacheEntry, now: datetime) -> bool:
        return now - entry.written_at >= self.ttl

    def get(self, key: str) -> Optional[ScrapeResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self.clock()):
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        return copy.deepcopy(entry.result)

    def set(self, key: str, result: ScrapeResult) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            result=copy.deepcopy(result),
            written_at=self.clock(),
        )
        logger.debug(f"Cached result for {key} ({len(result.items)} items)")

    def sweep(self) -> int:
        """Drop expired entries, returning how many were removed"""
        now = self.clock()
        expired = [k for k, e in self._entries.items() if self._expired(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
