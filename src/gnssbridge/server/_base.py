"""Lifecycle interface shared by the bridge's network services."""

from __future__ import annotations

from typing import Protocol

from gnssbridge.models._base import BridgeBaseModel
from gnssbridge.models.status import ServiceResult


class BridgeService(Protocol):
    """Structural interface implemented by the Modbus and NTP servers.

    ``stop`` must be idempotent and safe to call on a service that was
    never started. ``start`` raises :class:`~gnssbridge.exceptions.BridgeServerError`
    when the port cannot be bound.
    """

    @property
    def is_running(self) -> bool: ...

    async def start(self, port: int | None = None, host: str | None = None) -> ServiceResult: ...

    async def stop(self) -> ServiceResult: ...

    def status(self) -> BridgeBaseModel: ...
