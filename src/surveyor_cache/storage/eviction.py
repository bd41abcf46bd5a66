from __future__ import annotations

import logging
from datetime import datetime

from surveyor_cache.schemas import CacheEntry, now_utc

from .directory import CacheDirectory
from .index import IndexStore

logger = logging.getLogger(__name__)


def eviction_order_key(entry: CacheEntry) -> tuple[datetime, str]:
    return (entry.expires_at, entry.filename)


class EvictionEngine:
    def __init__(self, directory: CacheDirectory, index: IndexStore) -> None:
        self._directory = directory
        self._index = index

    def purge_expired(self) -> int:
        now = now_utc()
        expired = [entry for entry in self._index.entries() if entry.is_expired(now)]
        if not expired:
            return 0

        removed = 0
        try:
            for entry in expired:
                self._directory.remove(entry.filename)
                self._index.discard(entry.filename)
                removed += 1
        finally:
            if removed:
                self._index.save()

        logger.info("expired entries purged count=%d", removed)
        return removed

    def enforce_max_bytes(self, limit: int) -> list[str]:
        """Evict oldest-expiring entries until tracked bytes fit under ``limit``.

        Entries go in ``(expires_at, filename)`` order. Returns the evicted
        filenames in the order they were removed.
        """
        if limit < 0:
            raise ValueError("limit must be >= 0")

        total = self._index.total_bytes()
        if total <= limit:
            return []

        evicted: list[str] = []
        try:
            for entry in sorted(self._index.entries(), key=eviction_order_key):
                if total <= limit:
                    break
                self._directory.remove(entry.filename)
                self._index.discard(entry.filename)
                total -= entry.size_bytes
                evicted.append(entry.filename)
        finally:
            self._index.save()

        logger.info(
            "cache trimmed to limit limit=%d total=%d evicted=%d",
            limit,
            total,
            len(evicted),
        )
        return evicted
