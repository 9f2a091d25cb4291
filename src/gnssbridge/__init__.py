"""gnssbridge - Bridge a GNSS NMEA stream to Modbus TCP registers and an NTP service."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("gnssbridge")
except PackageNotFoundError:
    __version__ = "0+local"
from gnssbridge.bridge import BridgeContext
from gnssbridge.config import BridgeConfig
from gnssbridge.exceptions import (
    BridgeConfigError,
    BridgeServerError,
    GnssBridgeError,
    ModbusFrameError,
    NtpPacketError,
    ProtocolError,
)
from gnssbridge.ingestion.nmea import decode
from gnssbridge.models import (
    ActiveSatellites,
    FixDate,
    FixQuality,
    FixStatus,
    FixTime,
    FixType,
    FixUpdate,
    GnssMode,
    ModbusStatus,
    NtpPacket,
    NtpStatus,
    NtpTimestamp,
    Position,
    SatelliteInfo,
    SatellitesInView,
    ServiceResult,
)
from gnssbridge.server import BridgeService, ModbusTcpServer, NtpServer
from gnssbridge.state.events import FixBus
from gnssbridge.state.policy import UpdateGate
from gnssbridge.state.registers import HoldingRegister, InputRegister, RegisterBank

__all__ = [
    "__version__",
    "ActiveSatellites",
    "BridgeConfig",
    "BridgeConfigError",
    "BridgeContext",
    "BridgeServerError",
    "BridgeService",
    "FixBus",
    "FixDate",
    "FixQuality",
    "FixStatus",
    "FixTime",
    "FixType",
    "FixUpdate",
    "GnssBridgeError",
    "GnssMode",
    "HoldingRegister",
    "InputRegister",
    "ModbusFrameError",
    "ModbusStatus",
    "ModbusTcpServer",
    "NtpPacket",
    "NtpPacketError",
    "NtpServer",
    "NtpStatus",
    "NtpTimestamp",
    "Position",
    "ProtocolError",
    "RegisterBank",
    "SatelliteInfo",
    "SatellitesInView",
    "ServiceResult",
    "UpdateGate",
    "decode",
]
