"""Data models for decoded fixes, NTP packets and server status."""

from gnssbridge.models._base import BridgeBaseModel, CodeEnum
from gnssbridge.models.fix import (
    ActiveSatellites,
    FixDate,
    FixQuality,
    FixStatus,
    FixTime,
    FixType,
    FixUpdate,
    GnssMode,
    Position,
    SatelliteInfo,
    SatellitesInView,
)
from gnssbridge.models.ntp import NtpPacket, NtpTimestamp
from gnssbridge.models.status import ModbusStatus, NtpStatus, ServiceResult

__all__ = [
    "ActiveSatellites",
    "BridgeBaseModel",
    "CodeEnum",
    "FixDate",
    "FixQuality",
    "FixStatus",
    "FixTime",
    "FixType",
    "FixUpdate",
    "GnssMode",
    "ModbusStatus",
    "NtpPacket",
    "NtpStatus",
    "NtpTimestamp",
    "Position",
    "SatelliteInfo",
    "SatellitesInView",
    "ServiceResult",
]
