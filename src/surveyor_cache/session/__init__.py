"""Per-session CSV logging on top of the TTL file cache."""

from .naming import (
    build_session_filename,
    device_suffix,
    fallback_session_filename,
    format_utc_compact,
    slugify_device_name,
)
from .recorder import SessionRecorder

__all__ = [
    "SessionRecorder",
    "build_session_filename",
    "device_suffix",
    "fallback_session_filename",
    "format_utc_compact",
    "slugify_device_name",
]
