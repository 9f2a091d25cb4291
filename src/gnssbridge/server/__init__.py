"""Network services: Modbus TCP and NTP."""

from gnssbridge.server._base import BridgeService
from gnssbridge.server.modbus import ModbusTcpServer
from gnssbridge.server.ntp import NtpServer

__all__ = ["BridgeService", "ModbusTcpServer", "NtpServer"]
