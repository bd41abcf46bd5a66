"""Surveyor cache: durable TTL file cache and session-log writer."""

from .config import AppConfig, load_config
from .schemas import CacheEntry, FileMeta, SensorReading, SessionInfo
from .session import SessionRecorder
from .storage import CounterUnreadableError, TTLFileCache

__all__ = [
    "AppConfig",
    "CacheEntry",
    "CounterUnreadableError",
    "FileMeta",
    "SensorReading",
    "SessionInfo",
    "SessionRecorder",
    "TTLFileCache",
    "load_config",
]
