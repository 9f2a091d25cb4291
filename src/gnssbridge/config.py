"""Bridge configuration for gnssbridge."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from gnssbridge._constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MODBUS_PORT,
    DEFAULT_NTP_PORT,
    DEFAULT_TIMEZONE_OFFSET_HOURS,
    DEFAULT_UPDATE_INTERVAL,
)
from gnssbridge.exceptions import BridgeConfigError
from gnssbridge.models.fix import GnssMode


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def parse_gnss_mode(value: str | GnssMode) -> GnssMode:
    """Return the :class:`GnssMode` for *value*, raising :class:`BridgeConfigError` otherwise."""
    if isinstance(value, GnssMode):
        return value
    try:
        return GnssMode(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in GnssMode)
        raise BridgeConfigError(f"gnss mode must be one of {choices}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Bridge configuration.

    Parameters
    ----------
    modbus_host : str
        Address the Modbus TCP server binds to.
    modbus_port : int
        Modbus TCP port. Defaults to 502.
    ntp_host : str
        Address the NTP server binds to.
    ntp_port : int
        NTP UDP port. Defaults to 123.
    ntp_offset_hours : int
        Whole-hour offset added to the host clock in NTP replies.
    timezone_offset_hours : int
        Offset written to the timezone holding register with every fix.
    gnss_mode : GnssMode
        Talker filter applied by the decoder (``auto``, ``beidou``, ``gps``).
    update_interval : float
        Minimum seconds between two register bank updates. Fixes arriving
        inside the interval are discarded.
    max_connections : int
        Maximum concurrent Modbus clients. Extra connections are closed.
    verify_checksum : bool
        Reject sentences whose ``*hh`` checksum does not match.
    """

    modbus_host: str = DEFAULT_HOST
    modbus_port: int = DEFAULT_MODBUS_PORT
    ntp_host: str = DEFAULT_HOST
    ntp_port: int = DEFAULT_NTP_PORT
    ntp_offset_hours: int = DEFAULT_TIMEZONE_OFFSET_HOURS
    timezone_offset_hours: int = DEFAULT_TIMEZONE_OFFSET_HOURS
    gnss_mode: GnssMode = GnssMode.AUTO
    update_interval: float = DEFAULT_UPDATE_INTERVAL
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    verify_checksum: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "gnss_mode", parse_gnss_mode(self.gnss_mode))
        for name in ("modbus_port", "ntp_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise BridgeConfigError(f"{name} must be between 0 and 65535, got {port}")
        if self.update_interval < 0:
            raise BridgeConfigError(f"update_interval must not be negative, got {self.update_interval}")
        if self.max_connections < 1:
            raise BridgeConfigError(f"max_connections must be at least 1, got {self.max_connections}")

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads optional ``GNSSBRIDGE_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        BridgeConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "GNSSBRIDGE_MODBUS_HOST": ("modbus_host", str),
            "GNSSBRIDGE_MODBUS_PORT": ("modbus_port", int),
            "GNSSBRIDGE_NTP_HOST": ("ntp_host", str),
            "GNSSBRIDGE_NTP_PORT": ("ntp_port", int),
            "GNSSBRIDGE_NTP_OFFSET_HOURS": ("ntp_offset_hours", int),
            "GNSSBRIDGE_TIMEZONE_OFFSET_HOURS": ("timezone_offset_hours", int),
            "GNSSBRIDGE_GNSS_MODE": ("gnss_mode", parse_gnss_mode),
            "GNSSBRIDGE_UPDATE_INTERVAL": ("update_interval", float),
            "GNSSBRIDGE_MAX_CONNECTIONS": ("max_connections", int),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, convert) in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = convert(val.strip())
            except ValueError as exc:
                raise BridgeConfigError(f"{env_key} has an invalid value: {val!r}") from exc

        if "verify_checksum" not in overrides:
            config_kwargs["verify_checksum"] = _env_bool(env.get("GNSSBRIDGE_VERIFY_CHECKSUM"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
