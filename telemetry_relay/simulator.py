"""
Device simulator that feeds telemetry lines to a running relay.

Each line is a hex-encoded 9-byte frame. Coordinates can drift by a fixed
step per frame so the collector sees a moving device.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Iterator, List

from telemetry_relay.core.hexline import encode_hex_line
from telemetry_relay.parsing.frame import encode_frame
from telemetry_relay.relay_app.config import RelayAddress
from telemetry_relay.relay_app.logging import create_logger, log_event


def build_lines(
    latitude_deg: float,
    longitude_deg: float,
    battery_level: int,
    count: int,
    drift_deg: float = 0.0,
) -> Iterator[str]:
    for i in range(count):
        raw = encode_frame(latitude_deg + i * drift_deg, longitude_deg + i * drift_deg, battery_level)
        yield encode_hex_line(raw)


async def send_lines(target: RelayAddress, lines: List[str], interval: float = 0.0) -> int:
    """Send ``lines`` over one connection and return how many were written."""
    _reader, writer = await asyncio.open_connection(target.host, target.port)
    sent = 0
    try:
        for line in lines:
            writer.write(line.encode("ascii") + b"\n")
            await writer.drain()
            sent += 1
            if interval:
                await asyncio.sleep(interval)
    finally:
        writer.close()
        await writer.wait_closed()
    return sent


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send simulated device telemetry to the relay.")
    parser.add_argument("--target", type=str, default="127.0.0.1:9000", help="Relay host:port")
    parser.add_argument("--lat", type=float, default=-34.0, help="Starting latitude in degrees")
    parser.add_argument("--lon", type=float, default=-58.0, help="Starting longitude in degrees")
    parser.add_argument("--battery", type=int, default=87, help="Battery level byte (0-255)")
    parser.add_argument("--count", type=int, default=10, help="Number of frames to send")
    parser.add_argument("--drift", type=float, default=0.0, help="Degrees added to both coordinates per frame")
    parser.add_argument("--interval", type=float, default=1.0, help="Delay between frames in seconds")
    args = parser.parse_args(argv)

    logger = create_logger("telemetry_relay.simulator", ring_size=50)
    target = RelayAddress.parse(args.target)
    lines = list(build_lines(args.lat, args.lon, args.battery, args.count, args.drift))
    try:
        sent = asyncio.run(send_lines(target, lines, interval=max(0.0, args.interval)))
    except OSError as exc:
        log_event(logger, "simulator_failed", {"target": str(target), "error": str(exc)}, logging.ERROR)
        return 1
    except KeyboardInterrupt:
        return 0
    log_event(logger, "simulator_done", {"target": str(target), "sent": sent})
    return 0


if __name__ == "__main__":
    sys.exit(main())
