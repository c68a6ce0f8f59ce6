from __future__ import annotations

import datetime as dt
import struct
from dataclasses import dataclass
from typing import Optional

from telemetry_relay.errors import FrameLengthError

# latitude (i32 microdeg), longitude (i32 microdeg), battery (u8), big-endian
FRAME_STRUCT = struct.Struct(">iiB")
FRAME_LENGTH = FRAME_STRUCT.size
MICRODEGREES_PER_DEGREE = 1_000_000


def format_timestamp(value: dt.datetime) -> str:
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TelemetryReading:
    """
    One decoded telemetry frame.

    Attributes:
        timestamp: When the frame was decoded by the relay (not device time).
        latitude_deg: Latitude in signed degrees.
        longitude_deg: Longitude in signed degrees.
        battery_level: Battery byte as sent by the device (0-255, unchecked).
    """
    timestamp: dt.datetime
    latitude_deg: float
    longitude_deg: float
    battery_level: int

    @classmethod
    def from_bytes(cls, raw: bytes, now: Optional[dt.datetime] = None) -> "TelemetryReading":
        if len(raw) != FRAME_LENGTH:
            raise FrameLengthError(len(raw), expected=FRAME_LENGTH)
        lat_microdeg, lon_microdeg, battery_level = FRAME_STRUCT.unpack(raw)
        return cls(
            timestamp=now if now is not None else dt.datetime.now(dt.timezone.utc),
            latitude_deg=lat_microdeg / MICRODEGREES_PER_DEGREE,
            longitude_deg=lon_microdeg / MICRODEGREES_PER_DEGREE,
            battery_level=battery_level,
        )

    def to_line(self) -> str:
        return (
            f"telemetry lat={self.latitude_deg:.6f},lon={self.longitude_deg:.6f},"
            f"battery={self.battery_level} timestamp={format_timestamp(self.timestamp)}\n"
        )

    def as_dict(self) -> dict:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "latitude_deg": self.latitude_deg,
            "longitude_deg": self.longitude_deg,
            "battery_level": self.battery_level,
        }


def decode_frame(raw: bytes, now: Optional[dt.datetime] = None) -> TelemetryReading:
    """
    Decode a 9-byte telemetry frame.

    Args:
        raw: Exactly ``FRAME_LENGTH`` bytes.
        now: Observation time to stamp on the reading; defaults to the current UTC time.

    Returns:
        The decoded ``TelemetryReading``.

    Raises:
        FrameLengthError: If ``raw`` is not exactly ``FRAME_LENGTH`` bytes long.
    """
    return TelemetryReading.from_bytes(raw, now=now)


def encode_frame(latitude_deg: float, longitude_deg: float, battery_level: int) -> bytes:
    """Build the wire frame for the given coordinates, rounded to the nearest microdegree."""
    try:
        return FRAME_STRUCT.pack(
            round(latitude_deg * MICRODEGREES_PER_DEGREE),
            round(longitude_deg * MICRODEGREES_PER_DEGREE),
            battery_level,
        )
    except struct.error as exc:
        raise ValueError(f"Values do not fit a telemetry frame: {exc}") from exc
