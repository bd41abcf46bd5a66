from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

INDEX_FILENAME = ".index.json"
COUNTER_FILENAME = ".session_counter"
_TEMP_SUFFIX = ".tmp"
RESERVED_FILENAMES = frozenset(
    {
        INDEX_FILENAME,
        COUNTER_FILENAME,
        INDEX_FILENAME + _TEMP_SUFFIX,
        COUNTER_FILENAME + _TEMP_SUFFIX,
    }
)

# Allow only alphanumerics, underscore, dot, and dash.
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(name: str) -> str:
    """Map a caller-supplied name onto the cache's safe filename alphabet.

    Every character outside ``[A-Za-z0-9._-]`` becomes ``_``. Names that would
    resolve to the directory itself or to a control file are rejected.
    """
    safe = _UNSAFE_CHARS_RE.sub("_", name)
    if not safe or safe in {".", ".."}:
        raise ValueError(f"invalid cache filename: {name!r}")
    if safe in RESERVED_FILENAMES:
        raise ValueError(f"cache filename is reserved: {name!r}")
    return safe


class CacheDirectory:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_FILENAME

    @property
    def counter_path(self) -> Path:
        return self.root / COUNTER_FILENAME

    def path_for(self, name: str) -> Path:
        return self.root / sanitize_filename(name)

    def list_data_files(self) -> list[Path]:
        return sorted(
            (
                path
                for path in self.root.iterdir()
                if path.is_file() and path.name not in RESERVED_FILENAMES
            ),
            key=lambda path: path.name,
        )

    def remove(self, name: str) -> bool:
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("cache file removed path=%s", path)
        return True

    def write_control(self, filename: str, text: str) -> None:
        """Durably replace a control file: temp write, fsync, then rename."""
        if filename not in RESERVED_FILENAMES:
            raise ValueError(f"not a control file: {filename!r}")

        target = self.root / filename
        temp_path = self.root / (filename + _TEMP_SUFFIX)
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, target)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
