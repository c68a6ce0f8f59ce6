from telemetry_relay.core.hexline import decode_hex_line, encode_hex_line
from telemetry_relay.errors import (
    BindError,
    ForwardError,
    FrameLengthError,
    HexFormatError,
    RelayError,
    TransportReadError,
)
from telemetry_relay.parsing.frame import TelemetryReading, decode_frame, encode_frame
from telemetry_relay.relay_app import AcceptLoop, Forwarder, RelaySettings
from telemetry_relay.relay import RelayServer
from importlib.metadata import PackageNotFoundError, version

__all__ = [
    "AcceptLoop",
    "BindError",
    "ForwardError",
    "Forwarder",
    "FrameLengthError",
    "HexFormatError",
    "RelayError",
    "RelayServer",
    "RelaySettings",
    "TelemetryReading",
    "TransportReadError",
    "decode_frame",
    "decode_hex_line",
    "encode_frame",
    "encode_hex_line",
]

try:
    __version__ = version("telemetry-relay")
except PackageNotFoundError:
    __version__ = "0.0.0"
