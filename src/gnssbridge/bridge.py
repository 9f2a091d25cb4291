"""Application context wiring the decoder, register bank and servers together."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterable, Callable, Iterable
from typing import Any

from gnssbridge.config import BridgeConfig, parse_gnss_mode
from gnssbridge.exceptions import BridgeServerError
from gnssbridge.ingestion.nmea import decode
from gnssbridge.models.fix import FixUpdate, GnssMode
from gnssbridge.models.status import ModbusStatus, NtpStatus, ServiceResult
from gnssbridge.server._base import BridgeService
from gnssbridge.server.modbus import ModbusTcpServer
from gnssbridge.server.ntp import NtpServer
from gnssbridge.state.events import FixBus
from gnssbridge.state.policy import UpdateGate
from gnssbridge.state.satellites import SatelliteTracker

_logger = logging.getLogger(__name__)


class BridgeContext:
    """Owns the fix bus, both servers and the runtime settings.

    Decoded fixes are published on :attr:`bus`. The register bank is one
    subscriber: while the Modbus server runs, it takes at most one fix per
    ``config.update_interval`` and silently drops the rest. The satellite
    tracker is another.

    Usage::

        async with BridgeContext(BridgeConfig.from_env()) as bridge:
            await bridge.start_modbus()
            await bridge.start_ntp()
            bridge.feed_line("$GNGGA,...")
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        gate_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or BridgeConfig()
        self._mode = self._config.gnss_mode
        self._timezone_offset = self._config.timezone_offset_hours
        self._gate = UpdateGate(self._config.update_interval, clock=gate_clock)

        self.bus = FixBus()
        self.modbus = ModbusTcpServer(max_connections=self._config.max_connections, clock=clock)
        self.ntp = NtpServer(self._config.ntp_offset_hours, clock=clock)
        self.satellites = SatelliteTracker()

        self.bus.subscribe(self._update_registers)
        self.bus.subscribe(self.satellites.on_fix)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BridgeContext:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop both servers. Safe to call repeatedly."""
        await self.modbus.stop()
        await self.ntp.stop()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def mode(self) -> GnssMode:
        return self._mode

    @property
    def timezone_offset(self) -> int:
        return self._timezone_offset

    @property
    def services(self) -> dict[str, BridgeService]:
        return {"modbus": self.modbus, "ntp": self.ntp}

    def set_mode(self, mode: GnssMode | str) -> None:
        self._mode = parse_gnss_mode(mode)
        _logger.info("GNSS mode set to %s", self._mode.value)

    def set_timezone(self, hours: int) -> None:
        self._timezone_offset = int(hours)
        _logger.info("Timezone set to UTC%+d", self._timezone_offset)

    def set_ntp_offset(self, hours: int) -> None:
        self.ntp.set_offset(hours)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def feed_line(self, line: str) -> FixUpdate | None:
        """Decode one receiver line and publish the result, if any."""
        update = decode(line, self._mode, verify_checksum=self._config.verify_checksum)
        if update is not None:
            self.bus.publish(update)
        return update

    async def feed_lines(self, lines: AsyncIterable[str] | Iterable[str]) -> int:
        """Feed every line from *lines*; return how many decoded to a fix."""
        decoded = 0
        if isinstance(lines, AsyncIterable):
            async for line in lines:
                if self.feed_line(line) is not None:
                    decoded += 1
        else:
            for line in lines:
                if self.feed_line(line) is not None:
                    decoded += 1
        return decoded

    def _update_registers(self, update: FixUpdate) -> None:
        if not self.modbus.is_running:
            return
        if not self._gate.ready():
            return
        self.modbus.apply_fix(update, self._timezone_offset)

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    async def _start_service(self, name: str, service: BridgeService, port: int, host: str) -> ServiceResult:
        try:
            return await service.start(port, host)
        except BridgeServerError as exc:
            _logger.error("Failed to start %s server: %s", name, exc)
            return ServiceResult(success=False, port=exc.port, address=exc.address, message=str(exc))

    async def start_modbus(self, port: int | None = None, host: str | None = None) -> ServiceResult:
        self._gate.reset()
        return await self._start_service(
            "Modbus TCP",
            self.modbus,
            self._config.modbus_port if port is None else port,
            host or self._config.modbus_host,
        )

    async def stop_modbus(self) -> ServiceResult:
        return await self.modbus.stop()

    def modbus_status(self) -> ModbusStatus:
        return self.modbus.status()

    async def start_ntp(
        self,
        port: int | None = None,
        offset_hours: int | None = None,
        host: str | None = None,
    ) -> ServiceResult:
        if offset_hours is not None:
            self.ntp.set_offset(offset_hours)
        return await self._start_service(
            "NTP",
            self.ntp,
            self._config.ntp_port if port is None else port,
            host or self._config.ntp_host,
        )

    async def stop_ntp(self) -> ServiceResult:
        return await self.ntp.stop()

    def ntp_status(self) -> NtpStatus:
        return self.ntp.status()
