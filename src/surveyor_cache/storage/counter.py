from __future__ import annotations

import logging
import re
from pathlib import Path

from .directory import COUNTER_FILENAME, CacheDirectory

logger = logging.getLogger(__name__)

_COUNTER_RE = re.compile(r"[0-9]+")


class CounterUnreadableError(ValueError):
    """The persisted session counter exists but does not hold a decimal integer."""


class SessionCounter:
    """Durable monotonic session number generator.

    The counter file holds plain decimal text. A missing file counts as ``0``;
    an unparseable one raises :class:`CounterUnreadableError` instead of
    silently restarting, since a restart would reuse session numbers.
    """

    def __init__(self, directory: CacheDirectory) -> None:
        self._directory = directory

    @property
    def path(self) -> Path:
        return self._directory.counter_path

    def ensure_initialized(self) -> bool:
        if self.path.exists():
            return False
        self._write(0)
        logger.info("session counter initialized path=%s", self.path)
        return True

    def current(self) -> int:
        if not self.path.exists():
            return 0

        try:
            raw = self.path.read_bytes().decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            raise CounterUnreadableError(
                f"session counter is not valid text path={self.path}"
            ) from exc
        if not _COUNTER_RE.fullmatch(raw):
            raise CounterUnreadableError(
                f"session counter is unreadable path={self.path} raw={raw[:32]!r}"
            )
        return int(raw)

    def next(self) -> int:
        value = self.current() + 1
        self._write(value)
        logger.info("session counter advanced value=%d", value)
        return value

    def reset(self, value: int) -> None:
        if value < 0:
            raise ValueError("session counter value must be >= 0")
        self._write(value)
        logger.warning("session counter reset value=%d", value)

    def _write(self, value: int) -> None:
        self._directory.write_control(COUNTER_FILENAME, str(value))
