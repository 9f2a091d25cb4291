"""NTP packet and timestamp models."""

from __future__ import annotations

import math

from pydantic import Field, field_validator

from gnssbridge._constants import NTP_EPOCH_DELTA, NTP_FRACTION_SCALE
from gnssbridge.models._base import BridgeBaseModel

_U32_MAX = 0xFFFFFFFF


class NtpTimestamp(BridgeBaseModel):
    """64-bit NTP timestamp: whole seconds since 1900-01-01 plus a binary fraction.

    Parameters
    ----------
    seconds : int
        Seconds since the NTP epoch, 32-bit unsigned.
    fraction : int
        Fraction of a second in units of 2**-32, 32-bit unsigned.
    """

    seconds: int = Field(default=0, ge=0, le=_U32_MAX)
    fraction: int = Field(default=0, ge=0, le=_U32_MAX)

    @classmethod
    def from_unix(cls, unix_seconds: float) -> NtpTimestamp:
        """Encode a Unix time.

        The seconds field wraps at 2**32 (NTP era rollover in 2036); a
        fraction that rounds up to a full second is clamped to the largest
        representable value instead of carrying.
        """
        whole = math.floor(unix_seconds)
        fraction = round((unix_seconds - whole) * NTP_FRACTION_SCALE)
        return cls(
            seconds=(whole + NTP_EPOCH_DELTA) & _U32_MAX,
            fraction=min(fraction, _U32_MAX),
        )

    def to_unix(self) -> float:
        return self.seconds - NTP_EPOCH_DELTA + self.fraction / NTP_FRACTION_SCALE

    @property
    def is_zero(self) -> bool:
        return self.seconds == 0 and self.fraction == 0


class NtpPacket(BridgeBaseModel):
    """A 48-byte NTP packet (RFC 1305/5905 header without extensions).

    Root delay and root dispersion are held in seconds; on the wire they
    are 32-bit fixed-point values with 16 fractional bits.
    """

    leap: int = Field(default=0, ge=0, le=3)
    version: int = Field(default=3, ge=0, le=7)
    mode: int = Field(default=3, ge=0, le=7)
    stratum: int = Field(default=0, ge=0, le=255)
    poll: int = Field(default=0, ge=0, le=255)
    precision: int = Field(default=0, ge=-128, le=127)
    root_delay: float = 0.0
    root_dispersion: float = 0.0
    reference_id: str = ""
    reference_timestamp: NtpTimestamp = Field(default_factory=NtpTimestamp)
    originate_timestamp: NtpTimestamp = Field(default_factory=NtpTimestamp)
    receive_timestamp: NtpTimestamp = Field(default_factory=NtpTimestamp)
    transmit_timestamp: NtpTimestamp = Field(default_factory=NtpTimestamp)

    @field_validator("reference_id")
    @classmethod
    def _max_four_chars(cls, value: str) -> str:
        if len(value) > 4:
            raise ValueError(f"reference_id holds at most 4 characters, got {value!r}")
        return value
