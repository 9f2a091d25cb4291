"""Custom exception hierarchy for gnssbridge."""

from __future__ import annotations


class GnssBridgeError(Exception):
    """Base exception for all gnssbridge errors."""


class BridgeConfigError(GnssBridgeError):
    """Invalid or missing configuration."""


class BridgeServerError(GnssBridgeError):
    """A server could not bind or listen (port in use, permission denied)."""

    def __init__(
        self,
        message: str,
        *,
        port: int | None = None,
        address: str = "",
    ) -> None:
        self.port = port
        self.address = address
        super().__init__(message)


class ProtocolError(GnssBridgeError):
    """Inbound bytes could not be understood by a protocol handler."""


class ModbusFrameError(ProtocolError):
    """MBAP frame is too short or carries a non-Modbus protocol id.

    The server drops such frames without answering and keeps the
    connection open.
    """


class NtpPacketError(ProtocolError):
    """NTP datagram is shorter than 48 bytes or otherwise unparseable."""
