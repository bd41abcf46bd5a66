"""TTL file cache: control files, snapshot index, recovery, appends, eviction."""

from .appender import Appender
from .cache import TTLFileCache
from .counter import CounterUnreadableError, SessionCounter
from .directory import (
    COUNTER_FILENAME,
    INDEX_FILENAME,
    RESERVED_FILENAMES,
    CacheDirectory,
    sanitize_filename,
)
from .eviction import EvictionEngine, eviction_order_key
from .index import IndexStore
from .recovery import DEFAULT_RECOVERY_TTL, RecoveryScanner

__all__ = [
    "COUNTER_FILENAME",
    "DEFAULT_RECOVERY_TTL",
    "INDEX_FILENAME",
    "RESERVED_FILENAMES",
    "Appender",
    "CacheDirectory",
    "CounterUnreadableError",
    "EvictionEngine",
    "IndexStore",
    "RecoveryScanner",
    "SessionCounter",
    "TTLFileCache",
    "eviction_order_key",
    "sanitize_filename",
]
