from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from surveyor_cache.schemas import DEFAULT_MIME, CacheEntry, now_utc

from .directory import CacheDirectory, sanitize_filename
from .index import IndexStore

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


class Appender:
    """Header-once, append-many writer that keeps the index in sync."""

    def __init__(self, directory: CacheDirectory, index: IndexStore) -> None:
        self._directory = directory
        self._index = index

    def ensure_header(
        self,
        name: str,
        header_line: str,
        ttl: timedelta,
        *,
        mime: str = DEFAULT_MIME,
        meta: dict[str, Any] | None = None,
    ) -> Path:
        _validate_ttl(ttl)
        _validate_line(header_line)

        filename = sanitize_filename(name)
        path = self._directory.path_for(filename)
        if path.exists() and path.stat().st_size > 0:
            return path

        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(header_line + LINE_TERMINATOR)
            handle.flush()

        entry = CacheEntry(
            filename=filename,
            expires_at=now_utc() + ttl,
            size_bytes=path.stat().st_size,
            mime=mime,
            meta=meta,
        )
        self._index.put(entry)
        self._index.save()
        logger.info(
            "cache file created filename=%s expires_at=%s",
            filename,
            entry.expires_at.isoformat(),
        )
        return path

    def append_line(
        self,
        name: str,
        line: str,
        ttl: timedelta,
        *,
        mime: str = DEFAULT_MIME,
        meta: dict[str, Any] | None = None,
    ) -> Path:
        _validate_ttl(ttl)
        _validate_line(line)

        filename = sanitize_filename(name)
        path = self._directory.path_for(filename)
        with path.open("a", encoding="utf-8", newline="") as handle:
            handle.write(line + LINE_TERMINATOR)
            handle.flush()

        existing = self._index.get(filename)
        if existing is None:
            expires_at = now_utc() + ttl
            kept_meta = meta
        else:
            # Appends never extend the window fixed when the file was created.
            expires_at = existing.expires_at
            kept_meta = meta if meta is not None else existing.meta

        self._index.put(
            CacheEntry(
                filename=filename,
                expires_at=expires_at,
                size_bytes=path.stat().st_size,
                mime=mime,
                meta=kept_meta,
            )
        )
        self._index.save()
        return path


def _validate_ttl(ttl: timedelta) -> None:
    if ttl < timedelta(0):
        raise ValueError("ttl must be >= 0")


def _validate_line(line: str) -> None:
    if "\n" in line or "\r" in line:
        raise ValueError("line must not contain line terminators")
