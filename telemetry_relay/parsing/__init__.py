"""
Decoding of the binary telemetry frames sent by devices.

Each frame is 9 bytes, big-endian: latitude and longitude as signed 32-bit
microdegrees followed by a single battery byte.
"""
from telemetry_relay.parsing.frame import (
    FRAME_LENGTH,
    TelemetryReading,
    decode_frame,
    encode_frame,
)

__all__ = ["FRAME_LENGTH", "TelemetryReading", "decode_frame", "encode_frame"]
