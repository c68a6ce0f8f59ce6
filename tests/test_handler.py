"""Tests for the per-connection handler using in-memory streams."""
import asyncio
import uuid
from unittest.mock import MagicMock

import pytest

from telemetry_relay.errors import ForwardError, TransportReadError
from telemetry_relay.relay_app.handler import ConnectionHandler, format_peer
from telemetry_relay.relay_app.logging import create_logger, get_ring_buffer

VALID_A = b"FDF93380FC8AFD8057"  # -34.0, -58.0, 87
VALID_B = b"026D3A48FB96C22A64"  # 40.712776, -74.005974, 100


class _RecordingForwarder:
    def __init__(self, fail_first: int = 0):
        self.readings = []
        self.fail_first = fail_first

    async def forward(self, reading):
        if self.fail_first:
            self.fail_first -= 1
            raise ForwardError("127.0.0.1:9", "connection refused")
        self.readings.append(reading)


class _BrokenReader:
    async def readuntil(self, separator=b"\n"):
        raise ConnectionResetError("connection reset by peer")


def _writer(peer=("10.0.0.7", 40000)):
    writer = MagicMock()
    writer.get_extra_info.return_value = peer
    return writer


def _logger():
    return create_logger(f"test-handler-{uuid.uuid4().hex}", ring_size=100, console=False)


def _events(logger, name=None):
    events = get_ring_buffer(logger).get_events()
    if name is None:
        return events
    return [e for e in events if e["event"] == name]


def _run(payload: bytes, forwarder=None, limit: int = 2**16):
    logger = _logger()
    forwarder = forwarder or _RecordingForwarder()
    writer = _writer()

    async def scenario():
        reader = asyncio.StreamReader(limit=limit)
        reader.feed_data(payload)
        reader.feed_eof()
        await ConnectionHandler(reader, writer, forwarder, logger).run()

    asyncio.run(scenario())
    return forwarder, logger, writer


def test_valid_line_is_forwarded():
    forwarder, logger, writer = _run(VALID_A + b"\n")
    assert len(forwarder.readings) == 1
    reading = forwarder.readings[0]
    assert reading.latitude_deg == pytest.approx(-34.0)
    assert reading.longitude_deg == pytest.approx(-58.0)
    assert reading.battery_level == 87
    decoded = _events(logger, "frame_decoded")
    assert decoded[0]["details"]["peer"] == "10.0.0.7:40000"
    assert decoded[0]["details"]["battery_level"] == 87
    assert _events(logger, "connection_closed")
    writer.close.assert_called_once()


def test_lines_are_trimmed_and_crlf_tolerated():
    forwarder, _, _ = _run(b"  " + VALID_A + b"  \r\n\t" + VALID_B + b"\r\n")
    assert [r.battery_level for r in forwarder.readings] == [87, 100]


def test_short_frame_is_logged_and_connection_continues():
    forwarder, logger, _ = _run(b"FDF93380FC8AFD80\n" + VALID_B + b"\n")
    failures = _events(logger, "frame_decode_failed")
    assert len(failures) == 1
    assert "got 8" in failures[0]["details"]["reason"]
    assert failures[0]["level"] == "WARNING"
    assert [r.battery_level for r in forwarder.readings] == [100]


def test_bad_hex_is_logged_and_connection_continues():
    forwarder, logger, _ = _run(b"not-hex\nABC\n" + VALID_A + b"\n")
    reasons = [e["details"]["reason"] for e in _events(logger, "frame_decode_failed")]
    assert len(reasons) == 2
    assert all("invalid hex data" in reason for reason in reasons)
    assert len(forwarder.readings) == 1


def test_empty_lines_are_silent():
    forwarder, logger, _ = _run(b"\n   \n\r\n" + VALID_A + b"\n\n")
    assert [e["event"] for e in _events(logger)] == ["frame_decoded", "connection_closed"]
    assert len(forwarder.readings) == 1


def test_readings_forwarded_in_arrival_order():
    lines = [VALID_A, VALID_B] * 5
    forwarder, _, _ = _run(b"\n".join(lines) + b"\n")
    assert [r.battery_level for r in forwarder.readings] == [87, 100] * 5


def test_forward_failure_does_not_stop_processing():
    forwarder, logger, _ = _run(VALID_A + b"\n" + VALID_B + b"\n", forwarder=_RecordingForwarder(fail_first=1))
    failed = _events(logger, "forward_failed")
    assert len(failed) == 1
    assert failed[0]["details"]["reason"] == "connection refused"
    assert [r.battery_level for r in forwarder.readings] == [100]
    assert _events(logger, "connection_closed")


def test_last_line_without_terminator_is_processed():
    forwarder, _, _ = _run(VALID_A)
    assert len(forwarder.readings) == 1


def test_oversized_line_is_dropped_and_connection_continues():
    # lines are buffered up to the stream limit; anything longer is rejected
    forwarder, logger, _ = _run(b"A" * 200 + b"\n" + VALID_B + b"\n", limit=32)
    failures = _events(logger, "frame_decode_failed")
    assert failures[0]["details"]["reason"] == "line too long"
    assert [r.battery_level for r in forwarder.readings] == [100]


def test_oversized_line_split_across_chunks_is_dropped_whole():
    # the tail of the long line arrives later and ends in 18 valid hex chars
    logger = _logger()
    forwarder = _RecordingForwarder()

    async def scenario():
        reader = asyncio.StreamReader(limit=32)
        task = asyncio.create_task(ConnectionHandler(reader, _writer(), forwarder, logger).run())
        reader.feed_data(b"A" * 40)
        await asyncio.sleep(0.01)
        reader.feed_data(b"B" * 40)
        await asyncio.sleep(0.01)
        reader.feed_data(VALID_B + b"\n" + VALID_A + b"\n")
        reader.feed_eof()
        await task

    asyncio.run(scenario())
    assert [r.battery_level for r in forwarder.readings] == [87]
    failures = _events(logger, "frame_decode_failed")
    assert [f["details"]["reason"] for f in failures] == ["line too long"]
    assert _events(logger, "connection_closed")


def test_oversized_line_cut_off_by_eof():
    forwarder, logger, _ = _run(b"A" * 100, limit=32)
    assert forwarder.readings == []
    assert _events(logger, "connection_closed")


def test_non_utf8_bytes_are_a_decode_failure():
    forwarder, logger, _ = _run(b"\xff\xfe\n" + VALID_A + b"\n")
    assert len(_events(logger, "frame_decode_failed")) == 1
    assert len(forwarder.readings) == 1


def test_read_error_raises_transport_error_and_closes_writer():
    logger = _logger()
    writer = _writer()

    async def scenario():
        await ConnectionHandler(_BrokenReader(), writer, _RecordingForwarder(), logger).run()

    with pytest.raises(TransportReadError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.peer == "10.0.0.7:40000"
    assert "reset" in excinfo.value.reason
    assert isinstance(excinfo.value.__cause__, ConnectionResetError)
    writer.close.assert_called_once()
    assert not _events(logger, "connection_closed")


def test_queued_readings_are_flushed_before_close():
    class _SlowForwarder(_RecordingForwarder):
        async def forward(self, reading):
            await asyncio.sleep(0.01)
            await super().forward(reading)

    forwarder, _, _ = _run(VALID_A + b"\n" + VALID_B + b"\n", forwarder=_SlowForwarder())
    assert len(forwarder.readings) == 2


@pytest.mark.parametrize(
    "peername, expected",
    [
        (("127.0.0.1", 5000), "127.0.0.1:5000"),
        (("::1", 5000, 0, 0), "[::1]:5000"),
        (None, "None"),
    ],
)
def test_format_peer(peername, expected):
    assert format_peer(peername) == expected
