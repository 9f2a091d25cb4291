"""Asyncio NTP server answering from the host clock plus a fixed hour offset.

The reply claims stratum 1 with reference id ``GPS``, but the time comes
from the host clock shifted by ``offset_hours``; the receiver's own time
field is never consulted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from gnssbridge._constants import DEFAULT_HOST, DEFAULT_NTP_PORT, DEFAULT_TIMEZONE_OFFSET_HOURS
from gnssbridge.exceptions import BridgeServerError, NtpPacketError
from gnssbridge.models.ntp import NtpTimestamp
from gnssbridge.models.status import NtpStatus, ServiceResult
from gnssbridge.protocol.ntp import build_reply, parse_packet, serialize_packet

_logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


class _NtpDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, server: NtpServer) -> None:
        self._server = server
        self._transport: asyncio.DatagramTransport | None = None
        self.closed: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]

    def connection_lost(self, exc: Exception | None) -> None:
        self._transport = None
        if not self.closed.done():
            self.closed.set_result(None)

    def datagram_received(self, data: bytes, addr: Any) -> None:
        try:
            reply = self._server.handle_datagram(data)
        except NtpPacketError as exc:
            _logger.warning("Dropping NTP datagram from %s: %s", addr, exc)
            return
        if self._transport is None:
            return
        try:
            self._transport.sendto(reply, addr)
        except OSError as exc:
            _logger.warning("NTP reply to %s failed: %s", addr, exc)
            return
        _logger.debug("NTP request from %s", addr)

    def error_received(self, exc: Exception) -> None:
        _logger.warning("NTP socket error: %s", exc)


class NtpServer:
    """UDP NTP server.

    Parameters
    ----------
    offset_hours : int
        Whole hours added to the host clock. Replaced atomically by
        :meth:`set_offset` while the server runs.
    clock : callable
        Source of Unix time in seconds. Defaults to :func:`time.time`.
    """

    def __init__(
        self,
        offset_hours: int = DEFAULT_TIMEZONE_OFFSET_HOURS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._offset_hours = int(offset_hours)
        self._clock = clock
        self._transport: asyncio.DatagramTransport | None = None
        self._protocol: _NtpDatagramProtocol | None = None
        self._port = DEFAULT_NTP_PORT
        self._host = DEFAULT_HOST
        self._address: str | None = None

    @property
    def is_running(self) -> bool:
        return self._transport is not None

    @property
    def port(self) -> int:
        return self._port

    @property
    def offset_hours(self) -> int:
        return self._offset_hours

    def set_offset(self, hours: int) -> None:
        self._offset_hours = int(hours)
        _logger.info("NTP offset set to UTC%+d", self._offset_hours)

    def current_time(self) -> NtpTimestamp:
        """Host clock plus the configured offset, as an NTP timestamp."""
        return NtpTimestamp.from_unix(self._clock() + self._offset_hours * SECONDS_PER_HOUR)

    def handle_datagram(self, data: bytes) -> bytes:
        """Build the reply datagram for one request.

        Raises :class:`NtpPacketError` for datagrams that cannot be parsed.
        """
        request = parse_packet(data)
        return serialize_packet(build_reply(request, self.current_time()))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, port: int | None = None, host: str | None = None) -> ServiceResult:
        """Bind the UDP socket. A running server is stopped first.

        Raises :class:`BridgeServerError` when the address cannot be bound.
        """
        await self.stop()
        port = DEFAULT_NTP_PORT if port is None else port
        host = host or DEFAULT_HOST

        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                lambda: _NtpDatagramProtocol(self),
                local_addr=(host, port),
            )
        except OSError as exc:
            raise BridgeServerError(
                f"Cannot start NTP server on {host}:{port}: {exc}",
                port=port,
                address=host,
            ) from exc

        bound = transport.get_extra_info("sockname") or (host, port)
        self._transport = transport
        self._protocol = protocol
        self._host = host
        self._address, self._port = bound[0], bound[1]
        _logger.info("NTP server started on %s:%s (UTC%+d)", self._address, self._port, self._offset_hours)
        return ServiceResult(
            success=True,
            port=self._port,
            address=self._address,
            message=f"NTP server started on {self._address}:{self._port}",
        )

    async def stop(self) -> ServiceResult:
        """Close the socket and wait until the port is released."""
        transport, protocol = self._transport, self._protocol
        self._transport = None
        self._protocol = None
        if transport is not None:
            transport.close()
            if protocol is not None:
                await protocol.closed
            _logger.info("NTP server stopped on %s:%s", self._address, self._port)
        return ServiceResult(success=True, port=self._port, address=self._address)

    def status(self) -> NtpStatus:
        return NtpStatus(
            is_running=self.is_running,
            port=self._port,
            host=self._host,
            address=self._address or self._host,
            offset_hours=self._offset_hours,
        )
