import asyncio
import logging

from telemetry_relay.errors import ForwardError
from telemetry_relay.parsing.frame import TelemetryReading
from telemetry_relay.relay_app.config import RelayAddress
from telemetry_relay.relay_app.logging import log_event


class Forwarder:
    """Writes each reading to the collector over its own short-lived TCP connection."""

    def __init__(self, target: RelayAddress, logger: logging.Logger, connect_timeout: float = 5.0):
        self.target = target
        self.logger = logger
        self.connect_timeout = connect_timeout

    async def forward(self, reading: TelemetryReading) -> None:
        line = reading.to_line().encode("utf-8")
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.target.host, self.target.port),
                timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise ForwardError(self.target, str(exc) or type(exc).__name__) from exc
        try:
            writer.write(line)
            await writer.drain()
        except OSError as exc:
            raise ForwardError(self.target, str(exc)) from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                # line already flushed; a reset on close is not a delivery failure
                log_event(
                    self.logger,
                    "forward_close_failed",
                    {"target": str(self.target), "error": str(exc)},
                    logging.DEBUG,
                )
