from __future__ import annotations

import logging
import shutil
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from surveyor_cache.schemas import DEFAULT_MIME, CacheEntry, FileMeta, now_utc

from .appender import Appender
from .counter import SessionCounter
from .directory import CacheDirectory, sanitize_filename
from .eviction import EvictionEngine
from .index import IndexStore
from .recovery import DEFAULT_RECOVERY_TTL, RecoveryScanner

logger = logging.getLogger(__name__)

_COUNT_CHUNK_SIZE = 64 * 1024


class TTLFileCache:
    """Durable directory of TTL-tracked session files.

    Every public method holds one re-entrant lock for its whole
    load-mutate-save cycle, so the index and the session counter never see
    interleaved writers inside a process. Separate processes sharing a
    directory are not coordinated.
    """

    def __init__(
        self,
        directory: CacheDirectory,
        *,
        recovery_ttl: timedelta = DEFAULT_RECOVERY_TTL,
    ) -> None:
        self._directory = directory
        self._index = IndexStore(directory)
        self._counter = SessionCounter(directory)
        self._recovery = RecoveryScanner(directory, self._index, ttl=recovery_ttl)
        self._appender = Appender(directory, self._index)
        self._eviction = EvictionEngine(directory, self._index)
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        root: str | Path,
        *,
        recovery_ttl: timedelta = DEFAULT_RECOVERY_TTL,
    ) -> TTLFileCache:
        cache = cls(CacheDirectory(root), recovery_ttl=recovery_ttl)
        cache.reload()
        return cache

    def reload(self) -> None:
        """Load or rebuild the index, initialize the counter, purge expired files.

        Safe to call any number of times on the same directory.
        """
        with self._lock:
            if self._index.load():
                self._recovery.reconcile()
            else:
                self._recovery.rebuild()
            self._counter.ensure_initialized()
            purged = self._eviction.purge_expired()
            logger.info(
                "cache opened root=%s entries=%d purged=%d",
                self._directory.root,
                len(self._index),
                purged,
            )

    @property
    def root(self) -> Path:
        return self._directory.root

    # Session counter

    def next_session_number(self) -> int:
        with self._lock:
            return self._counter.next()

    def session_counter_value(self) -> int:
        with self._lock:
            return self._counter.current()

    def reset_session_counter(self, value: int) -> None:
        with self._lock:
            self._counter.reset(value)

    # Writes

    def ensure_header(
        self,
        name: str,
        header_line: str,
        ttl: timedelta,
        *,
        mime: str = DEFAULT_MIME,
        meta: dict[str, Any] | None = None,
    ) -> Path:
        with self._lock:
            return self._appender.ensure_header(name, header_line, ttl, mime=mime, meta=meta)

    def append_line(
        self,
        name: str,
        line: str,
        ttl: timedelta,
        *,
        mime: str = DEFAULT_MIME,
        meta: dict[str, Any] | None = None,
    ) -> Path:
        with self._lock:
            return self._appender.append_line(name, line, ttl, mime=mime, meta=meta)

    # Eviction

    def purge_expired(self) -> int:
        with self._lock:
            return self._eviction.purge_expired()

    def enforce_max_bytes(self, limit: int) -> list[str]:
        with self._lock:
            return self._eviction.enforce_max_bytes(limit)

    def mark_uploaded(self, name: str) -> bool:
        with self._lock:
            filename = sanitize_filename(name)
            file_removed = self._directory.remove(filename)
            entry = self._index.discard(filename)
            self._index.save()
            logger.info(
                "cache file released filename=%s tracked=%s file_removed=%s",
                filename,
                entry is not None,
                file_removed,
            )
            return file_removed or entry is not None

    # Read-only views

    def entry(self, name: str) -> CacheEntry | None:
        with self._lock:
            return self._index.get(sanitize_filename(name))

    def entries(self) -> list[CacheEntry]:
        with self._lock:
            return self._index.entries()

    def total_bytes(self) -> int:
        with self._lock:
            return self._index.total_bytes()

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)

    def list_active(self) -> list[Path]:
        with self._lock:
            return [self._directory.path_for(entry.filename) for entry in self._active_entries()]

    def describe_active(self) -> list[FileMeta]:
        with self._lock:
            return [self._describe(entry) for entry in self._active_entries()]

    def preview(self, name: str, max_lines: int = 300) -> list[list[str]]:
        if max_lines < 1:
            raise ValueError("max_lines must be >= 1")

        with self._lock:
            path = self._tracked_path(name)
            rows: list[list[str]] = []
            with path.open("r", encoding="utf-8", newline="") as handle:
                for raw_line in handle:
                    if len(rows) >= max_lines:
                        break
                    rows.append(raw_line.rstrip("\r\n").split(","))
            return rows

    def export(self, name: str, destination: str | Path, *, remove: bool = False) -> Path:
        with self._lock:
            source = self._tracked_path(name)
            target = Path(destination)
            if target.is_dir():
                target = target / source.name
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            logger.info("cache file exported filename=%s destination=%s", source.name, target)

            if remove:
                self.mark_uploaded(source.name)
            return target

    def _active_entries(self) -> list[CacheEntry]:
        now = now_utc()
        return [entry for entry in self._index.entries() if entry.is_active(now)]

    def _tracked_path(self, name: str) -> Path:
        filename = sanitize_filename(name)
        path = self._directory.path_for(filename)
        if filename not in self._index or not path.is_file():
            raise FileNotFoundError(f"cache file not tracked: {filename}")
        return path

    def _describe(self, entry: CacheEntry) -> FileMeta:
        path = self._directory.path_for(entry.filename)
        try:
            stat = path.stat()
            newlines = _count_newlines(path)
        except OSError as exc:
            logger.warning("cache file unreadable filename=%s error=%s", entry.filename, exc)
            return FileMeta(
                name=entry.filename,
                path=path,
                modified=datetime.fromtimestamp(0, tz=timezone.utc),
                expires_at=entry.expires_at,
                error=str(exc),
            )

        return FileMeta(
            name=entry.filename,
            path=path,
            size_bytes=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            record_count=max(newlines - 1, 0),
            expires_at=entry.expires_at,
        )


def _count_newlines(path: Path) -> int:
    count = 0
    with path.open("rb") as handle:
        while chunk := handle.read(_COUNT_CHUNK_SIZE):
            count += chunk.count(b"\n")
    return count
