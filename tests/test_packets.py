from __future__ import annotations

from datetime import datetime, timezone

import pytest

from surveyor.sensor import DevicePacket, LocationFix, build_reading, parse_packet


def test_parse_packet_splits_four_fields() -> None:
    packet = parse_packet("  183422,0,2.41,0.05\r\n")

    assert packet == DevicePacket(
        device_timestamp="183422",
        error_code="0",
        methane_ppm="2.41",
        ethane_ppm="0.05",
    )


def test_parse_packet_accepts_bytes() -> None:
    packet = parse_packet(b"1,3,1.90,0.00")

    assert packet is not None
    assert packet.error_code == "3"


@pytest.mark.parametrize("raw", ["", "   ", "1,2,3", "1,2,3,4,5", b"\n"])
def test_parse_packet_rejects_malformed_input(raw) -> None:
    assert parse_packet(raw) is None


def test_build_reading_stamps_capture_time_and_location() -> None:
    packet = parse_packet("999,0,2.41,0.05")
    captured = datetime(2026, 10, 19, 14, 3, 22, 120000, tzinfo=timezone.utc)

    reading = build_reading(
        packet,
        LocationFix.from_options(" 52.3702 ", "4.8952"),
        captured_at=captured,
    )

    assert reading.to_line() == "2026-10-19T14:03:22.120000Z,0,2.41,0.05,52.3702,4.8952"


def test_build_reading_without_location_leaves_columns_empty(clock) -> None:
    reading = build_reading(parse_packet("1,0,1,2"))

    assert reading.gps_utc == "2027-01-15T08:00:00Z"
    assert reading.to_line() == "2027-01-15T08:00:00Z,0,1,2,,"


def test_location_fix_known_only_with_both_coordinates() -> None:
    assert LocationFix.from_options("52.1", "4.3").is_known
    assert not LocationFix.from_options("52.1", None).is_known
    assert not LocationFix.unknown().is_known
