"""Decoded fix-update models produced by the NMEA decoder."""

from __future__ import annotations

from enum import StrEnum

from gnssbridge.models._base import BridgeBaseModel, CodeEnum, with_labels


class GnssMode(StrEnum):
    """Talker filter applied when decoding sentences."""

    AUTO = "auto"
    BEIDOU = "beidou"
    GPS = "gps"


class FixStatus(StrEnum):
    """RMC validity flag."""

    VALID = "A"
    INVALID = "V"


@with_labels(
    {
        0: "invalid",
        1: "GPS fix",
        2: "DGPS fix",
        3: "PPS fix",
        4: "RTK fixed",
        5: "RTK float",
        6: "estimated",
        7: "manual input",
        8: "simulation",
    }
)
class FixQuality(CodeEnum):
    """GGA fix quality indicator."""

    UNKNOWN = -1
    INVALID = 0
    GPS = 1
    DGPS = 2
    PPS = 3
    RTK_FIXED = 4
    RTK_FLOAT = 5
    ESTIMATED = 6
    MANUAL = 7
    SIMULATION = 8


@with_labels(
    {
        0: "invalid",
        1: "2D fix",
        2: "3D fix",
        3: "GPS+DR",
        4: "RTK fixed",
        5: "RTK float",
    }
)
class FixType(CodeEnum):
    """GSA fix type."""

    UNKNOWN = -1
    INVALID = 0
    FIX_2D = 1
    FIX_3D = 2
    GPS_DR = 3
    RTK_FIXED = 4
    RTK_FLOAT = 5


class FixDate(BridgeBaseModel):
    year: int
    month: int
    day: int

    @property
    def formatted(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


class FixTime(BridgeBaseModel):
    """UTC time of day reported by the receiver."""

    hour: int
    minute: int
    second: int

    @property
    def formatted(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"

    def shifted(self, offset_hours: int) -> FixTime:
        """Return the wall-clock time at *offset_hours* from UTC.

        Only the hour moves; it wraps around midnight without touching the date.
        """
        return self.model_copy(update={"hour": (self.hour + offset_hours) % 24})


class Position(BridgeBaseModel):
    """Signed decimal degrees, negative for south and west."""

    latitude: float
    longitude: float


class SatelliteInfo(BridgeBaseModel):
    """One satellite from a GSV sentence.

    ``snr`` is ``0`` when the receiver does not track the signal.
    """

    prn: int
    elevation: int = 0
    azimuth: int = 0
    snr: int = 0


class SatellitesInView(BridgeBaseModel):
    """One part of a multi-part GSV message."""

    message_total: int | None = None
    message_index: int | None = None
    total_in_view: int | None = None
    satellites: tuple[SatelliteInfo, ...] = ()


class ActiveSatellites(BridgeBaseModel):
    """GSA dilution of precision and active satellites."""

    mode: str | None = None
    fix_type: int | None = None
    prns: tuple[int, ...] = ()
    pdop: float | None = None
    hdop: float | None = None
    vdop: float | None = None

    @property
    def fix_type_label(self) -> str:
        return FixType(self.fix_type if self.fix_type is not None else -1).label


class FixUpdate(BridgeBaseModel):
    """Fields carried by a single decoded NMEA sentence.

    Every optional field is ``None`` when the sentence did not carry it
    (or carried something unparseable). ``None`` never means zero.

    Parameters
    ----------
    sentence : str
        Talker and sentence type without the ``$``, e.g. ``"GPRMC"``.
    raw : str
        The trimmed input line.
    mode : GnssMode
        Talker filter the sentence was accepted under.
    """

    sentence: str
    raw: str = ""
    mode: GnssMode = GnssMode.AUTO

    date: FixDate | None = None
    time: FixTime | None = None
    position: Position | None = None
    altitude: float | None = None
    altitude_unit: str | None = None
    satellites: int | None = None
    quality: int | None = None
    pdop: float | None = None
    hdop: float | None = None
    vdop: float | None = None
    status: FixStatus | None = None
    satellites_in_view: SatellitesInView | None = None
    active_satellites: ActiveSatellites | None = None

    @property
    def talker(self) -> str:
        return self.sentence[:2]

    @property
    def kind(self) -> str:
        """Sentence type without the talker, e.g. ``"RMC"``."""
        return self.sentence[2:]

    @property
    def is_valid(self) -> bool:
        return self.status == FixStatus.VALID

    @property
    def quality_label(self) -> str | None:
        if self.quality is None:
            return None
        return FixQuality(self.quality).label

    def populated_fields(self) -> list[str]:
        """Names of the optional fields this sentence carried."""
        return [
            name
            for name in type(self).model_fields
            if name not in {"sentence", "raw", "mode"} and getattr(self, name) is not None
        ]

