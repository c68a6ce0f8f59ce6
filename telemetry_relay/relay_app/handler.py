from __future__ import annotations

import asyncio
import logging
from typing import Optional

from telemetry_relay.core.hexline import decode_hex_line
from telemetry_relay.errors import ForwardError, FrameError, TransportReadError
from telemetry_relay.parsing.frame import TelemetryReading, decode_frame
from telemetry_relay.relay_app.forwarder import Forwarder
from telemetry_relay.relay_app.logging import log_event


def format_peer(peername) -> str:
    if isinstance(peername, tuple) and len(peername) >= 2:
        host, port = peername[0], peername[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(peername)


def parse_line(line: str) -> TelemetryReading:
    """Decode one trimmed, non-empty line of hex into a reading."""
    return decode_frame(decode_hex_line(line))


class ConnectionHandler:
    """
    Drives one inbound device connection until the peer closes it.

    Lines are decoded as they arrive. Decoded readings go onto a per-connection
    queue drained by a single forwarding task, so forwards keep arrival order
    while never holding up the next read.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        forwarder: Forwarder,
        logger: logging.Logger,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.forwarder = forwarder
        self.logger = logger
        self.peer = format_peer(writer.get_extra_info("peername"))
        self._queue: asyncio.Queue[Optional[TelemetryReading]] = asyncio.Queue()

    async def run(self) -> None:
        worker = asyncio.create_task(self._forward_worker(), name=f"forward-{self.peer}")
        try:
            await self._read_lines()
        except asyncio.CancelledError:
            worker.cancel()
            raise
        finally:
            self._queue.put_nowait(None)
            await asyncio.gather(worker, return_exceptions=True)
            self.writer.close()

    async def _read_lines(self) -> None:
        while True:
            try:
                raw = await self._read_line()
            except OSError as exc:
                raise TransportReadError(self.peer, str(exc) or type(exc).__name__) from exc

            if raw is None:
                self._log("frame_decode_failed", {"peer": self.peer, "reason": "line too long"}, logging.WARNING)
                continue
            if not raw:
                self._log("connection_closed", {"peer": self.peer})
                return

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            try:
                reading = parse_line(line)
            except FrameError as exc:
                self._log("frame_decode_failed", {"peer": self.peer, "reason": str(exc)}, logging.WARNING)
                continue

            self._log("frame_decoded", {"peer": self.peer, **reading.as_dict()})
            self._queue.put_nowait(reading)

    async def _read_line(self) -> Optional[bytes]:
        """
        Read one line including its terminator.

        Returns ``b""`` at end of stream, the unterminated tail if the peer
        closed mid-line, or ``None`` when the line exceeded the stream limit
        and was dropped up to and including its terminator.
        """
        try:
            return await self.reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as exc:
            return exc.partial
        except asyncio.LimitOverrunError as exc:
            overrun = exc.consumed
        await self._discard_line(overrun)
        return None

    async def _discard_line(self, consumed: int) -> None:
        # the rest of an oversized line may still be in flight; drop until its newline
        await self.reader.readexactly(consumed)
        while True:
            try:
                await self.reader.readuntil(b"\n")
                return
            except asyncio.LimitOverrunError as exc:
                await self.reader.readexactly(exc.consumed)
            except asyncio.IncompleteReadError:
                return

    async def _forward_worker(self) -> None:
        while True:
            reading = await self._queue.get()
            if reading is None:
                return
            try:
                await self.forwarder.forward(reading)
            except ForwardError as exc:
                self._log(
                    "forward_failed",
                    {"peer": self.peer, "target": str(exc.target), "reason": exc.reason},
                    logging.WARNING,
                )

    def _log(self, event: str, details: dict, level: int = logging.INFO) -> None:
        log_event(self.logger, event, details, level)
