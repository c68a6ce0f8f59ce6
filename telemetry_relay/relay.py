import argparse
import asyncio
import sys

from telemetry_relay.errors import BindError
from telemetry_relay.relay_app import AcceptLoop, RelaySettings, create_logger, get_settings
from telemetry_relay.relay_app.logging import log_event


class RelayServer:
    def __init__(self, settings: RelaySettings) -> None:
        self.settings = settings
        self.logger = create_logger("telemetry_relay", ring_size=settings.log_ring_size, level=settings.log_level)
        self.accept_loop = AcceptLoop(settings, self.logger)

    async def serve(self) -> None:
        log_event(self.logger, "relay_starting", {"listen": self.settings.bind_addr, "forward": self.settings.forward_addr})
        self.accept_loop.bind()
        try:
            await self.accept_loop.serve_forever()
        finally:
            await self.accept_loop.close()

    def start(self) -> int:
        try:
            asyncio.run(self.serve())
        except BindError:
            return 1
        except KeyboardInterrupt:
            return 0
        return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Relay hex-encoded IoT telemetry frames to a metrics collector.")
    parser.add_argument("--bind", type=str, default=None, help="host:port to listen on (env TELEMETRY_BIND_ADDR).")
    parser.add_argument("--forward", type=str, default=None, help="host:port of the collector (env METRICS_FORWARD_ADDR).")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (env LOG_LEVEL).")
    args = parser.parse_args(argv)

    overrides = {}
    if args.bind:
        overrides["bind_addr"] = args.bind
    if args.forward:
        overrides["forward_addr"] = args.forward
    if args.log_level:
        overrides["log_level"] = args.log_level
    settings = RelaySettings(**overrides) if overrides else get_settings()
    server = RelayServer(settings)
    return server.start()


if __name__ == "__main__":
    sys.exit(main())
