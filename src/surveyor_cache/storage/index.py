from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from pydantic import ValidationError

from surveyor_cache.schemas import CACHE_ENTRY_LIST, CacheEntry

from .directory import INDEX_FILENAME, CacheDirectory

logger = logging.getLogger(__name__)


class IndexStore:
    """In-memory filename -> CacheEntry mapping backed by a JSON snapshot.

    Mutators only touch memory. Callers persist with :meth:`save` after each
    mutating batch; the snapshot is always rewritten in full.
    """

    def __init__(self, directory: CacheDirectory) -> None:
        self._directory = directory
        self._entries: dict[str, CacheEntry] = {}

    def load(self) -> bool:
        path = self._directory.index_path
        if not path.exists():
            logger.warning("index snapshot missing path=%s", path)
            return False

        try:
            entries = CACHE_ENTRY_LIST.validate_json(path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning(
                "index snapshot unreadable path=%s error=%s",
                path,
                str(exc).splitlines()[0],
            )
            return False

        self._entries = {entry.filename: entry for entry in entries}
        logger.info("index loaded entries=%d", len(self._entries))
        return True

    def save(self) -> None:
        records = [entry.to_record() for entry in self.entries()]
        self._directory.write_control(
            INDEX_FILENAME,
            json.dumps(records, ensure_ascii=False),
        )
        logger.debug("index saved entries=%d", len(records))

    def get(self, filename: str) -> CacheEntry | None:
        return self._entries.get(filename)

    def entries(self) -> list[CacheEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.filename)

    def total_bytes(self) -> int:
        return sum(entry.size_bytes for entry in self._entries.values())

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.filename] = entry

    def discard(self, filename: str) -> CacheEntry | None:
        return self._entries.pop(filename, None)

    def replace_all(self, entries: Iterable[CacheEntry]) -> None:
        self._entries = {entry.filename: entry for entry in entries}

    def __contains__(self, filename: object) -> bool:
        return filename in self._entries

    def __len__(self) -> int:
        return len(self._entries)
