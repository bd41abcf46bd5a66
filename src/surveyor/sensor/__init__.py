"""Sensor packet parsing and location helpers for the surveyor CLI."""

from .location import LocationFix
from .packets import DEVICE_PACKET_FIELDS, DevicePacket, build_reading, parse_packet

__all__ = [
    "DEVICE_PACKET_FIELDS",
    "DevicePacket",
    "LocationFix",
    "build_reading",
    "parse_packet",
]
