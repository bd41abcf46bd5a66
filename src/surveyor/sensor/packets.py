from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from surveyor_cache.schemas import SensorReading, format_utc_iso, now_utc

from .location import LocationFix

logger = logging.getLogger(__name__)

# device_timestamp,err,methane_ppm,ethane_ppm
DEVICE_PACKET_FIELDS = 4


@dataclass(slots=True, frozen=True)
class DevicePacket:
    device_timestamp: str
    error_code: str
    methane_ppm: str
    ethane_ppm: str


def parse_packet(raw: str | bytes) -> DevicePacket | None:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    if not text:
        return None

    parts = text.split(",")
    if len(parts) != DEVICE_PACKET_FIELDS:
        logger.debug("packet rejected fields=%d raw=%r", len(parts), text[:80])
        return None

    return DevicePacket(
        device_timestamp=parts[0],
        error_code=parts[1],
        methane_ppm=parts[2],
        ethane_ppm=parts[3],
    )


def build_reading(
    packet: DevicePacket,
    location: LocationFix | None = None,
    *,
    captured_at: datetime | None = None,
) -> SensorReading:
    """Stamp a packet with capture time and the latest phone location.

    The device's own timestamp is dropped; rows carry the capture time in UTC.
    """
    stamp = captured_at or now_utc()
    fix = location or LocationFix.unknown()
    return SensorReading(
        gps_utc=format_utc_iso(stamp),
        error_code=packet.error_code,
        methane_ppm=packet.methane_ppm,
        ethane_ppm=packet.ethane_ppm,
        latitude=fix.latitude,
        longitude=fix.longitude,
    )
