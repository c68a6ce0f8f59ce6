from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for every error raised by the telemetry relay."""
    pass


class FrameError(RelayError, ValueError):
    """Raised when a received line cannot be turned into a telemetry reading."""
    pass


class FrameLengthError(FrameError):
    def __init__(self, length: int, expected: int = 9) -> None:
        super().__init__(f"invalid frame length: expected {expected} bytes, got {length}")
        self.length = length
        self.expected = expected


class HexFormatError(FrameError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid hex data: {reason}")
        self.reason = reason


class ForwardError(RelayError, ConnectionError):
    """Raised when a reading could not be delivered to the collector."""

    def __init__(self, target: Any, reason: str) -> None:
        super().__init__(f"forward to {target} failed: {reason}")
        self.target = target
        self.reason = reason


class TransportReadError(RelayError, ConnectionError):
    """Raised when an inbound connection fails while reading (not a clean close)."""

    def __init__(self, peer: Any, reason: str) -> None:
        super().__init__(f"read from {peer} failed: {reason}")
        self.peer = peer
        self.reason = reason


class BindError(RelayError, OSError):
    """Raised when the listening socket cannot be acquired."""

    def __init__(self, address: Any, reason: str) -> None:
        super().__init__(f"cannot bind {address}: {reason}")
        self.address = address
        self.reason = reason


__all__ = [
    "BindError",
    "ForwardError",
    "FrameError",
    "FrameLengthError",
    "HexFormatError",
    "RelayError",
    "TransportReadError",
]
