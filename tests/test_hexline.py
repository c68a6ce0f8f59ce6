"""Tests for hex line decoding."""
import pytest

from telemetry_relay.core import decode_hex_line, encode_hex_line
from telemetry_relay.errors import FrameError, HexFormatError


def test_decode_simple():
    assert decode_hex_line("0102FF") == bytes([0x01, 0x02, 0xFF])


def test_decode_mixed_case():
    assert decode_hex_line("aBcD") == bytes([0xAB, 0xCD])


def test_decode_empty_line():
    assert decode_hex_line("") == b""


@pytest.mark.parametrize("line", ["00", "FDF93380FC8AFD8057", "ff" * 32])
def test_decoded_length_is_half_the_text(line):
    assert len(decode_hex_line(line)) == len(line) // 2


@pytest.mark.parametrize(
    "line",
    [
        "0",
        "ABC",
        "zz",
        "0x01",
        "01 02",
        "01:02",
        " 0102",
        "0102\n",
        "éé",
    ],
)
def test_decode_rejects_malformed(line):
    with pytest.raises(HexFormatError) as excinfo:
        decode_hex_line(line)
    assert excinfo.value.reason
    assert "invalid hex data" in str(excinfo.value)


def test_hex_format_error_is_frame_error():
    with pytest.raises(FrameError):
        decode_hex_line("G0")


def test_encode_hex_line_is_upper_case():
    assert encode_hex_line(bytes([0xAB, 0x01])) == "AB01"
    assert decode_hex_line(encode_hex_line(b"\x00\x7f\x80")) == b"\x00\x7f\x80"
