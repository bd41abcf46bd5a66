"""Filename conventions for survey session logs.

Example: ``survey_Gas_Sniffer_3c5a7f_session_007_2026-10-19_14-03-22Z.csv``
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

_SLUG_DROP_RE = re.compile(r"[^A-Za-z0-9._-]")

DEVICE_SUFFIX_LENGTH = 6


def slugify_device_name(name: str) -> str:
    cleaned = name.strip().replace(" ", "_")
    return _SLUG_DROP_RE.sub("", cleaned) or "device"


def device_suffix(device_id: str) -> str:
    compact = device_id.replace(":", "").lower()
    return compact[-DEVICE_SUFFIX_LENGTH:]


def format_utc_compact(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d_%H-%M-%SZ")


def build_session_filename(
    *,
    device_name: str,
    device_id: str,
    session_number: int,
    started_at: datetime,
) -> str:
    if session_number < 0:
        raise ValueError("session_number must be >= 0")

    return (
        f"survey_{slugify_device_name(device_name)}"
        f"_{device_suffix(device_id)}"
        f"_session_{session_number:03d}"
        f"_{format_utc_compact(started_at)}.csv"
    )


def fallback_session_filename(moment: datetime) -> str:
    """Name used when a reading arrives before any session was started."""
    return f"survey_fallback_session_{int(moment.timestamp() * 1000)}.csv"
