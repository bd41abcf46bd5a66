from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from surveyor_cache.schemas import DEFAULT_MIME, CacheEntry, now_utc

from .directory import CacheDirectory
from .index import IndexStore

logger = logging.getLogger(__name__)

DEFAULT_RECOVERY_TTL = timedelta(days=14)


class RecoveryScanner:
    """Rebuilds index metadata from the files actually present on disk."""

    def __init__(
        self,
        directory: CacheDirectory,
        index: IndexStore,
        *,
        ttl: timedelta = DEFAULT_RECOVERY_TTL,
    ) -> None:
        if ttl < timedelta(0):
            raise ValueError("recovery ttl must be >= 0")

        self._directory = directory
        self._index = index
        self._ttl = ttl

    def rebuild(self) -> int:
        """Replace the whole index with entries synthesized from the directory."""
        now = now_utc()
        entries: list[CacheEntry] = []
        for path in self._directory.list_data_files():
            entry = self._synthesize(path, now)
            if entry is not None:
                entries.append(entry)

        self._index.replace_all(entries)
        self._index.save()
        logger.warning("index rebuilt from directory entries=%d", len(entries))
        return len(entries)

    def reconcile(self) -> bool:
        """Re-sync a loaded index with the directory.

        Untracked files are adopted as recovered entries, entries whose file is
        gone are dropped, and stale sizes are refreshed. Expiry of tracked
        entries is never changed. Saves only when something changed.
        """
        now = now_utc()
        on_disk = {path.name: path for path in self._directory.list_data_files()}
        changed = False

        for entry in self._index.entries():
            path = on_disk.get(entry.filename)
            if path is None:
                self._index.discard(entry.filename)
                logger.warning("index entry dropped filename=%s reason=file_missing", entry.filename)
                changed = True
                continue

            size = path.stat().st_size
            if size != entry.size_bytes:
                self._index.put(entry.model_copy(update={"size_bytes": size}))
                logger.info(
                    "index entry resized filename=%s bytes=%d->%d",
                    entry.filename,
                    entry.size_bytes,
                    size,
                )
                changed = True

        for name, path in on_disk.items():
            if name in self._index:
                continue
            entry = self._synthesize(path, now)
            if entry is None:
                continue
            self._index.put(entry)
            logger.warning("orphan file adopted filename=%s bytes=%d", name, entry.size_bytes)
            changed = True

        if changed:
            self._index.save()
        return changed

    def _synthesize(self, path: Path, now: datetime) -> CacheEntry | None:
        try:
            return CacheEntry(
                filename=path.name,
                expires_at=now + self._ttl,
                size_bytes=path.stat().st_size,
                mime=DEFAULT_MIME,
                meta={"recovered": True},
            )
        except ValidationError:
            logger.warning("untrackable file skipped filename=%s", path.name)
            return None
