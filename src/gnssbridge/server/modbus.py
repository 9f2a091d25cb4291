"""Asyncio Modbus TCP server backed by a :class:`RegisterBank`."""

from __future__ import annotations

import asyncio
import logging
import socket
import time
from collections.abc import Callable
from typing import Any

from gnssbridge._constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MODBUS_PORT,
    READ_BUFFER_SIZE,
    STATUS_HOLDING_WINDOW,
    STATUS_INPUT_WINDOW,
)
from gnssbridge.exceptions import BridgeServerError, ModbusFrameError
from gnssbridge.models.fix import FixUpdate
from gnssbridge.models.status import ModbusStatus, ServiceResult
from gnssbridge.protocol.modbus import handle_frame, split_frames
from gnssbridge.state.registers import RegisterBank

_logger = logging.getLogger(__name__)


def _tune_socket(writer: asyncio.StreamWriter) -> None:
    sock = writer.get_extra_info("socket")
    if sock is None:
        return
    try:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    except OSError:
        _logger.debug("Could not set socket options", exc_info=True)


class ModbusTcpServer:
    """Modbus TCP server serving one shared register bank.

    A fresh :class:`RegisterBank` is created on every :meth:`start` and kept
    after :meth:`stop` so the last values stay visible in :meth:`status`.

    Usage::

        server = ModbusTcpServer()
        await server.start(502, "0.0.0.0")
        server.apply_fix(update, timezone_offset_hours=8)
        await server.stop()
    """

    def __init__(
        self,
        *,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_connections = max_connections
        self._clock = clock
        self._bank = RegisterBank(clock=clock)
        self._server: asyncio.Server | None = None
        self._clients: set[asyncio.StreamWriter] = set()
        self._port = DEFAULT_MODBUS_PORT
        self._address: str | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def bank(self) -> RegisterBank:
        return self._bank

    @property
    def port(self) -> int:
        return self._port

    @property
    def connections(self) -> int:
        return len(self._clients)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, port: int | None = None, host: str | None = None) -> ServiceResult:
        """Bind and start accepting clients.

        A running server is stopped first. Raises :class:`BridgeServerError`
        when the address cannot be bound.
        """
        await self.stop()
        port = DEFAULT_MODBUS_PORT if port is None else port
        host = host or DEFAULT_HOST

        self._bank = RegisterBank(clock=self._clock)
        try:
            server = await asyncio.start_server(self._handle_client, host, port)
        except OSError as exc:
            raise BridgeServerError(
                f"Cannot start Modbus TCP server on {host}:{port}: {exc}",
                port=port,
                address=host,
            ) from exc

        bound = server.sockets[0].getsockname() if server.sockets else (host, port)
        self._server = server
        self._address, self._port = bound[0], bound[1]
        _logger.info("Modbus TCP server started on %s:%s", self._address, self._port)
        return ServiceResult(
            success=True,
            port=self._port,
            address=self._address,
            message=f"Modbus TCP server started on {self._address}:{self._port}",
        )

    async def stop(self) -> ServiceResult:
        """Close every client connection and release the port."""
        for writer in list(self._clients):
            writer.transport.abort()
        self._clients.clear()

        server = self._server
        self._server = None
        if server is not None:
            server.close()
            await server.wait_closed()
            _logger.info("Modbus TCP server stopped on %s:%s", self._address, self._port)
        return ServiceResult(success=True, port=self._port, address=self._address)

    def status(self) -> ModbusStatus:
        holding, inputs = self._bank.snapshot()
        return ModbusStatus(
            is_running=self.is_running,
            port=self._port,
            address=self._address,
            connections=self.connections,
            holding_registers=holding[:STATUS_HOLDING_WINDOW],
            input_registers=inputs[:STATUS_INPUT_WINDOW],
        )

    def apply_fix(self, update: FixUpdate, timezone_offset_hours: int) -> None:
        self._bank.apply_fix(update, timezone_offset_hours)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer: Any = writer.get_extra_info("peername")
        if len(self._clients) >= self._max_connections:
            _logger.warning("Rejecting Modbus client %s: %d connections open", peer, len(self._clients))
            writer.transport.abort()
            return

        _tune_socket(writer)
        self._clients.add(writer)
        _logger.debug("Modbus client connected peer=%s", peer)
        try:
            while True:
                data = await reader.read(READ_BUFFER_SIZE)
                if not data:
                    break
                for frame in split_frames(data):
                    try:
                        response = handle_frame(self._bank, frame)
                    except ModbusFrameError as exc:
                        _logger.debug("Dropping Modbus frame from %s: %s", peer, exc)
                        continue
                    writer.write(response)
                await writer.drain()
        except (ConnectionError, OSError) as exc:
            _logger.debug("Modbus client %s connection error: %s", peer, exc)
        finally:
            self._clients.discard(writer)
            writer.close()
            _logger.debug("Modbus client disconnected peer=%s", peer)
