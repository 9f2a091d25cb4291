"""Lifecycle results and status snapshots reported by the servers."""

from __future__ import annotations

from pydantic import Field

from gnssbridge.models._base import BridgeBaseModel


class ServiceResult(BridgeBaseModel):
    """Outcome of a start or stop request.

    A failed start carries ``success=False`` and the bind error in
    ``message``; it is reported once and never retried.
    """

    success: bool
    port: int | None = None
    address: str | None = None
    message: str = ""


class ModbusStatus(BridgeBaseModel):
    is_running: bool = False
    port: int | None = None
    address: str | None = None
    connections: int = 0
    holding_registers: list[int] = Field(default_factory=list)
    input_registers: list[int] = Field(default_factory=list)


class NtpStatus(BridgeBaseModel):
    is_running: bool = False
    port: int | None = None
    host: str | None = None
    address: str | None = None
    offset_hours: int = 0
