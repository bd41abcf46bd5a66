from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

from surveyor_cache.config import DEFAULT_MAX_BYTES, DEFAULT_TTL_DAYS, AppConfig
from surveyor_cache.schemas import (
    DEFAULT_MIME,
    SESSION_HEADER,
    SensorReading,
    SessionInfo,
    format_utc_iso,
    now_utc,
)
from surveyor_cache.storage import TTLFileCache

from .naming import build_session_filename, fallback_session_filename

logger = logging.getLogger(__name__)


class SessionRecorder:
    """Writes a stream of sensor readings into one cache file per session."""

    def __init__(
        self,
        cache: TTLFileCache,
        *,
        header: str = SESSION_HEADER,
        ttl: timedelta = timedelta(days=DEFAULT_TTL_DAYS),
        max_bytes: int = DEFAULT_MAX_BYTES,
        mime: str = DEFAULT_MIME,
        schema_name: str = "sensor_v1",
    ) -> None:
        if max_bytes < 0:
            raise ValueError("max_bytes must be >= 0")

        self.cache = cache
        self.header = header
        self.ttl = ttl
        self.max_bytes = max_bytes
        self.mime = mime
        self.schema_name = schema_name
        self._current: SessionInfo | None = None
        self._fallback_filename: str | None = None

    @classmethod
    def from_config(cls, cache: TTLFileCache, config: AppConfig) -> SessionRecorder:
        return cls(
            cache,
            header=config.session.header,
            ttl=config.cache.ttl,
            max_bytes=config.cache.max_bytes,
            mime=config.session.mime,
            schema_name=config.session.schema_name,
        )

    @property
    def current(self) -> SessionInfo | None:
        return self._current

    def start(self, *, device_name: str, device_id: str) -> SessionInfo:
        session_number = self.cache.next_session_number()
        started_at = now_utc()
        filename = build_session_filename(
            device_name=device_name,
            device_id=device_id,
            session_number=session_number,
            started_at=started_at,
        )
        path = self.cache.ensure_header(
            filename,
            self.header,
            self.ttl,
            mime=self.mime,
            meta={
                "schema": self.schema_name,
                "device_name": device_name,
                "device_id": device_id,
                "session_number": session_number,
                "session_started_utc": format_utc_iso(started_at),
            },
        )
        self._current = SessionInfo(
            session_number=session_number,
            filename=path.name,
            path=path,
            device_name=device_name,
            device_id=device_id,
            started_at=started_at,
        )
        logger.info(
            "session started number=%d filename=%s",
            session_number,
            path.name,
        )
        return self._current

    def record(self, reading: SensorReading) -> Path:
        """Append one reading, then trim the cache to its byte budget.

        File errors propagate; the caller decides whether to drop the reading.
        """
        filename = self._active_filename()
        self.cache.ensure_header(
            filename,
            self.header,
            self.ttl,
            mime=self.mime,
            meta={"schema": self.schema_name},
        )
        path = self.cache.append_line(filename, reading.to_line(), self.ttl, mime=self.mime)

        evicted = self.cache.enforce_max_bytes(self.max_bytes)
        if filename in evicted:
            logger.warning("active session file evicted filename=%s", filename)
        return path

    def stop(self) -> SessionInfo | None:
        finished = self._current
        self._current = None
        self._fallback_filename = None
        if finished is not None:
            logger.info("session stopped number=%d", finished.session_number)
        return finished

    def _active_filename(self) -> str:
        if self._current is not None:
            return self._current.filename
        if self._fallback_filename is None:
            self._fallback_filename = fallback_session_filename(now_utc())
            logger.warning("reading without session filename=%s", self._fallback_filename)
        return self._fallback_filename
