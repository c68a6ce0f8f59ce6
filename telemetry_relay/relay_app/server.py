from __future__ import annotations

import asyncio
import logging
import socket
from typing import Optional, Tuple

from telemetry_relay.errors import BindError, TransportReadError
from telemetry_relay.relay_app.config import RelaySettings
from telemetry_relay.relay_app.forwarder import Forwarder
from telemetry_relay.relay_app.handler import ConnectionHandler, format_peer
from telemetry_relay.relay_app.jobs import JobManager
from telemetry_relay.relay_app.logging import log_event


class AcceptLoop:
    """
    Owns the listening socket and spawns one handler task per device connection.

    Accept failures are logged and retried after ``accept_retry_delay``; the
    loop only ends when it is cancelled or closed. Failing to bind is the one
    fatal error.
    """

    def __init__(self, settings: RelaySettings, logger: logging.Logger, forwarder: Optional[Forwarder] = None):
        self.settings = settings
        self.logger = logger
        self.forwarder = forwarder or Forwarder(
            settings.forward_address, logger, connect_timeout=settings.forward_connect_timeout
        )
        self.jobs = JobManager()
        self._sock: Optional[socket.socket] = None
        self._serve_task: Optional[asyncio.Task] = None

    @property
    def address(self) -> Tuple[str, int]:
        if self._sock is None:
            raise RuntimeError("AcceptLoop is not bound")
        host, port = self._sock.getsockname()[:2]
        return host, port

    def bind(self) -> None:
        address = self.settings.bind_address
        family = socket.AF_INET6 if ":" in address.host else socket.AF_INET
        try:
            sock = socket.create_server((address.host, address.port), family=family)
        except OSError as exc:
            log_event(self.logger, "bind_failed", {"address": str(address), "error": str(exc)}, logging.ERROR)
            raise BindError(address, str(exc)) from exc
        sock.setblocking(False)
        self._sock = sock

    async def serve_forever(self) -> None:
        if self._sock is None:
            self.bind()
        self._serve_task = asyncio.current_task()
        try:
            while True:
                try:
                    conn, peername = await self._accept()
                except OSError as exc:
                    log_event(self.logger, "accept_failed", {"error": str(exc)}, logging.WARNING)
                    await asyncio.sleep(self.settings.accept_retry_delay)
                    continue
                peer = format_peer(peername)
                log_event(self.logger, "connection_accepted", {"peer": peer})
                self.jobs.start(self._run_connection(conn, peer), name=f"connection-{peer}")
        finally:
            self._serve_task = None

    async def _accept(self) -> Tuple[socket.socket, object]:
        loop = asyncio.get_running_loop()
        return await loop.sock_accept(self._sock)

    async def _run_connection(self, conn: socket.socket, peer: str) -> None:
        try:
            reader, writer = await asyncio.open_connection(sock=conn, limit=self.settings.max_line_bytes)
        except OSError as exc:
            conn.close()
            log_event(self.logger, "connection_error", {"peer": peer, "error": str(exc)}, logging.WARNING)
            return
        handler = ConnectionHandler(reader, writer, self.forwarder, self.logger)
        try:
            await handler.run()
        except TransportReadError as exc:
            log_event(self.logger, "connection_error", {"peer": peer, "error": exc.reason}, logging.WARNING)
        except Exception as exc:  # pragma: no cover - unexpected handler failure
            log_event(self.logger, "connection_error", {"peer": peer, "error": str(exc)}, logging.ERROR, exc_info=True)

    async def close(self) -> None:
        serve_task = self._serve_task
        if serve_task is not None and serve_task is not asyncio.current_task():
            serve_task.cancel()
            await asyncio.gather(serve_task, return_exceptions=True)
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        await self.jobs.stop()
