from __future__ import annotations

import binascii

from telemetry_relay.errors import HexFormatError


def decode_hex_line(line: str) -> bytes:
    """
    Decode one already-trimmed line of hex text into raw bytes.

    Only an even-length run of hex digits is accepted; separators, ``0x``
    prefixes and surrounding whitespace are rejected. An empty line decodes
    to ``b""``.
    """
    try:
        return binascii.unhexlify(line)
    except ValueError as exc:
        raise HexFormatError(str(exc)) from exc


def encode_hex_line(raw: bytes) -> str:
    return raw.hex().upper()
