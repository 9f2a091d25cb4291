"""NMEA 0183 sentence decoding.

:func:`decode` turns one ASCII line from the receiver into a
:class:`~gnssbridge.models.fix.FixUpdate`, or ``None`` when the line is not a
sentence or its talker is filtered out by the current :class:`GnssMode`.

The decoder keeps no state between calls. Fields that are empty or fail to
parse are left out of the update rather than failing the whole sentence.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any

from gnssbridge.ingestion.normalize import field, int_or_zero, safe_float, safe_int, safe_str
from gnssbridge.models.fix import (
    ActiveSatellites,
    FixDate,
    FixStatus,
    FixTime,
    FixUpdate,
    GnssMode,
    Position,
    SatelliteInfo,
    SatellitesInView,
)

_logger = logging.getLogger(__name__)

_ACCEPTED_TALKERS: dict[GnssMode, tuple[str, ...]] = {
    GnssMode.BEIDOU: ("BD", "GN"),
    GnssMode.GPS: ("GP", "GN"),
}

RMC_SENTENCES = frozenset({"GPRMC", "GNRMC"})
GGA_SENTENCES = frozenset({"GPGGA", "GNGGA"})
GSV_SENTENCES = frozenset({"GPGSV", "BDGSV"})
GSA_SENTENCES = frozenset({"GPGSA", "BDGSA"})

GSV_SATELLITES_PER_MESSAGE = 4
GSA_MAX_PRNS = 12

# Two-digit years at or above the pivot belong to the 1900s.
_CENTURY_PIVOT = 80


def nmea_checksum(body: str) -> str:
    """XOR of every character between ``$`` and ``*``, as two upper-case hex digits."""
    return f"{reduce(lambda acc, ch: acc ^ ord(ch), body, 0):02X}"


def talker_allowed(sentence: str, mode: GnssMode) -> bool:
    talkers = _ACCEPTED_TALKERS.get(mode)
    if talkers is None:
        return True
    return sentence.startswith(talkers)


def parse_coordinate(value: str, hemisphere: str) -> float | None:
    """Convert ``ddmm.mmmm`` / ``dddmm.mmmm`` to signed decimal degrees.

    The two integer digits in front of the decimal point start the minutes;
    everything before them is degrees. ``S`` and ``W`` negate the result,
    which is rounded to 6 decimal places.
    """
    value = value.strip()
    if not value:
        return None
    dot = value.find(".")
    head = value if dot < 0 else value[:dot]
    if len(head) < 2:
        return None
    degrees = safe_int(head[:-2] or "0")
    minutes = safe_float(value[len(head) - 2 :])
    if degrees is None or minutes is None:
        return None
    decimal = degrees + minutes / 60
    if hemisphere.strip().upper() in ("S", "W"):
        decimal = -decimal
    return round(decimal, 6)


def parse_time(value: str) -> FixTime | None:
    """Parse ``hhmmss`` (fractional seconds are ignored)."""
    if len(value) < 6 or not value[:6].isdigit():
        return None
    hour, minute, second = int(value[0:2]), int(value[2:4]), int(value[4:6])
    if hour > 23 or minute > 59 or second > 60:
        return None
    return FixTime(hour=hour, minute=minute, second=second)


def parse_date(value: str) -> FixDate | None:
    """Parse ``ddmmyy``."""
    if len(value) < 6 or not value[:6].isdigit():
        return None
    day, month, yy = int(value[0:2]), int(value[2:4]), int(value[4:6])
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    year = 1900 + yy if yy >= _CENTURY_PIVOT else 2000 + yy
    return FixDate(year=year, month=month, day=day)


def _parse_position(parts: list[str], index: int) -> Position | None:
    latitude = parse_coordinate(field(parts, index), field(parts, index + 1))
    longitude = parse_coordinate(field(parts, index + 2), field(parts, index + 3))
    if latitude is None or longitude is None:
        return None
    return Position(latitude=latitude, longitude=longitude)


def _decode_rmc(parts: list[str]) -> dict[str, Any]:
    data: dict[str, Any] = {
        "time": parse_time(field(parts, 1)),
        "date": parse_date(field(parts, 9)),
        "status": FixStatus.INVALID,
    }
    if field(parts, 2) == FixStatus.VALID.value and field(parts, 3) and field(parts, 5):
        data["status"] = FixStatus.VALID
        data["position"] = _parse_position(parts, 3)
    return data


def _decode_gga(parts: list[str]) -> dict[str, Any]:
    return {
        "time": parse_time(field(parts, 1)),
        "position": _parse_position(parts, 2),
        "quality": safe_int(field(parts, 6)),
        "satellites": safe_int(field(parts, 7)),
        "hdop": safe_float(field(parts, 8)),
        "altitude": safe_float(field(parts, 9)),
        "altitude_unit": safe_str(field(parts, 10)),
    }


def _decode_gsv(parts: list[str]) -> dict[str, Any]:
    satellites: list[SatelliteInfo] = []
    for slot in range(GSV_SATELLITES_PER_MESSAGE):
        base = 4 + slot * 4
        prn = safe_int(field(parts, base))
        if prn is None:
            continue
        satellites.append(
            SatelliteInfo(
                prn=prn,
                elevation=int_or_zero(field(parts, base + 1)),
                azimuth=int_or_zero(field(parts, base + 2)),
                snr=int_or_zero(field(parts, base + 3)),
            )
        )
    view = SatellitesInView(
        message_total=safe_int(field(parts, 1)),
        message_index=safe_int(field(parts, 2)),
        total_in_view=safe_int(field(parts, 3)),
        satellites=tuple(satellites),
    )
    return {"satellites_in_view": view}


def _decode_gsa(parts: list[str]) -> dict[str, Any]:
    prns = [safe_int(field(parts, index)) for index in range(3, 3 + GSA_MAX_PRNS)]
    active = ActiveSatellites(
        mode=safe_str(field(parts, 1)),
        fix_type=safe_int(field(parts, 2)),
        prns=tuple(prn for prn in prns if prn is not None),
        pdop=safe_float(field(parts, 15)),
        hdop=safe_float(field(parts, 16)),
        vdop=safe_float(field(parts, 17)),
    )
    return {
        "active_satellites": active,
        "pdop": active.pdop,
        "hdop": active.hdop,
        "vdop": active.vdop,
    }


def decode(
    line: str,
    mode: GnssMode | str = GnssMode.AUTO,
    *,
    verify_checksum: bool = False,
) -> FixUpdate | None:
    """Decode one NMEA sentence.

    Parameters
    ----------
    line : str
        One line from the receiver, with or without the trailing ``\\r\\n``.
    mode : GnssMode or str
        ``beidou`` keeps only ``$BD``/``$GN`` talkers, ``gps`` keeps only
        ``$GP``/``$GN``; ``auto`` keeps everything.
    verify_checksum : bool
        Drop sentences whose ``*hh`` suffix does not match. Sentences without
        a checksum are accepted either way.

    Returns
    -------
    FixUpdate or None
        ``None`` for non-sentences, filtered talkers and checksum mismatches.
        Recognised RMC, GGA, GSV and GSA sentences carry their fields; any
        other accepted sentence yields an update with only its tag set.
    """
    mode = GnssMode(mode)
    trimmed = line.strip()
    if not trimmed.startswith("$"):
        return None

    body = trimmed[1:]
    star = body.rfind("*")
    checksum: str | None = None
    if star >= 0:
        checksum = body[star + 1 : star + 3]
        body = body[:star]

    if verify_checksum and checksum and checksum.upper() != nmea_checksum(body):
        _logger.debug("NMEA checksum mismatch line=%s expected=%s", trimmed, nmea_checksum(body))
        return None

    parts = body.split(",")
    sentence = parts[0].strip()
    if not sentence:
        return None
    if not talker_allowed(sentence, mode):
        return None

    data: dict[str, Any] = {}
    if sentence in RMC_SENTENCES:
        data = _decode_rmc(parts)
    elif sentence in GGA_SENTENCES:
        data = _decode_gga(parts)
    elif sentence in GSV_SENTENCES:
        data = _decode_gsv(parts)
    elif sentence in GSA_SENTENCES:
        data = _decode_gsa(parts)

    return FixUpdate(
        sentence=sentence,
        raw=trimmed,
        mode=mode,
        **{key: value for key, value in data.items() if value is not None},
    )
