from telemetry_relay.relay_app.config import RelayAddress, RelaySettings, get_settings
from telemetry_relay.relay_app.forwarder import Forwarder
from telemetry_relay.relay_app.handler import ConnectionHandler
from telemetry_relay.relay_app.logging import create_logger
from telemetry_relay.relay_app.server import AcceptLoop

__all__ = [
    "AcceptLoop",
    "ConnectionHandler",
    "Forwarder",
    "RelayAddress",
    "RelaySettings",
    "create_logger",
    "get_settings",
]
