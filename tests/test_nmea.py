from __future__ import annotations

import pytest

from gnssbridge.ingestion.nmea import decode, nmea_checksum, parse_coordinate, parse_date, parse_time
from gnssbridge.models.fix import (
    FixDate,
    FixQuality,
    FixStatus,
    FixTime,
    FixType,
    FixUpdate,
    GnssMode,
)

RMC = "$GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230394,003.1,W*6A"
GGA = "$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47"
GSA = "$GPGSA,A,3,04,05,,09,12,,,24,,,,,2.5,1.3,2.1*39"
GSV = "$GPGSV,3,1,11,03,03,111,00,04,15,270,00,06,01,010,00,13,06,292,00*74"


def test_rmc_example_sentence() -> None:
    update = decode(RMC)

    assert update is not None
    assert update.sentence == "GPRMC"
    assert update.kind == "RMC"
    assert update.talker == "GP"
    assert update.time == FixTime(hour=12, minute=35, second=19)
    assert update.date == FixDate(year=1994, month=3, day=23)
    assert update.status == FixStatus.VALID
    assert update.is_valid
    assert update.position is not None
    assert update.position.latitude == pytest.approx(48.1173)
    assert update.position.longitude == pytest.approx(11.516667)
    assert update.mode == GnssMode.AUTO


def test_rmc_void_status_has_time_but_no_position() -> None:
    update = decode("$GPRMC,081836,V,,,,,,,130998,,")

    assert update is not None
    assert update.status == FixStatus.INVALID
    assert not update.is_valid
    assert update.position is None
    assert update.time == FixTime(hour=8, minute=18, second=36)
    assert update.date == FixDate(year=1998, month=9, day=13)


def test_rmc_southern_western_hemispheres_are_negative() -> None:
    update = decode("$GNRMC,000000,A,3351.000,S,15112.600,W,0.0,0.0,010125,,")

    assert update is not None
    assert update.position is not None
    assert update.position.latitude == pytest.approx(-33.85)
    assert update.position.longitude == pytest.approx(-151.21)
    assert update.date == FixDate(year=2025, month=1, day=1)


def test_gga_fields() -> None:
    update = decode(GGA)

    assert update is not None
    assert update.quality == 1
    assert update.quality_label == "GPS fix"
    assert update.satellites == 8
    assert update.hdop == pytest.approx(0.9)
    assert update.altitude == pytest.approx(545.4)
    assert update.altitude_unit == "M"
    assert update.time == FixTime(hour=12, minute=35, second=19)
    assert update.date is None
    assert update.status is None


def test_gga_unparseable_numbers_are_omitted() -> None:
    update = decode("$GPGGA,123519,4807.038,N,01131.000,E,x,,abc,545.4,M,46.9,M,,")

    assert update is not None
    assert update.quality is None
    assert update.satellites is None
    assert update.hdop is None
    assert update.altitude == pytest.approx(545.4)
    assert "quality" not in update.populated_fields()
    assert "altitude" in update.populated_fields()


def test_gsv_satellites() -> None:
    update = decode(GSV)

    assert update is not None
    view = update.satellites_in_view
    assert view is not None
    assert view.message_total == 3
    assert view.message_index == 1
    assert view.total_in_view == 11
    assert [sat.prn for sat in view.satellites] == [3, 4, 6, 13]
    assert view.satellites[0].elevation == 3
    assert view.satellites[0].azimuth == 111


def test_gsv_missing_snr_means_not_tracked() -> None:
    update = decode("$BDGSV,1,1,02,01,45,120,,02,30,200,35")

    assert update is not None
    assert update.satellites_in_view is not None
    satellites = update.satellites_in_view.satellites
    assert len(satellites) == 2
    assert satellites[0].snr == 0
    assert satellites[1].snr == 35


def test_gsa_dops_and_prns() -> None:
    update = decode(GSA)

    assert update is not None
    active = update.active_satellites
    assert active is not None
    assert active.mode == "A"
    assert active.fix_type == 3
    assert active.fix_type_label == "GPS+DR"
    assert active.prns == (4, 5, 9, 12, 24)
    assert update.pdop == pytest.approx(2.5)
    assert update.hdop == pytest.approx(1.3)
    assert update.vdop == pytest.approx(2.1)


@pytest.mark.parametrize(
    ("mode", "line", "accepted"),
    [
        (GnssMode.BEIDOU, RMC, False),
        (GnssMode.BEIDOU, GGA, False),
        (GnssMode.BEIDOU, "$GNGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,,,,", True),
        (GnssMode.BEIDOU, "$BDGSV,1,1,01,01,45,120,30", True),
        (GnssMode.GPS, "$BDGSV,1,1,01,01,45,120,30", False),
        (GnssMode.GPS, GGA, True),
        (GnssMode.AUTO, "$BDGSV,1,1,01,01,45,120,30", True),
    ],
)
def test_talker_filter(mode: GnssMode, line: str, accepted: bool) -> None:
    assert (decode(line, mode) is not None) is accepted


def test_talker_prefix_is_case_sensitive() -> None:
    lowered = "$gpgga,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,,,,"

    assert decode(lowered, GnssMode.GPS) is None
    assert decode(lowered, GnssMode.BEIDOU) is None

    update = decode(lowered)
    assert update is not None
    assert update.sentence == "gpgga"
    assert update.populated_fields() == []


def test_mode_accepts_plain_strings() -> None:
    update = decode(GGA, "gps")

    assert update is not None
    assert update.mode == GnssMode.GPS


def test_non_sentences_are_ignored() -> None:
    assert decode("") is None
    assert decode("hello") is None
    assert decode("$") is None


def test_surrounding_whitespace_is_stripped() -> None:
    update = decode(f"  {RMC}\r\n")

    assert update is not None
    assert update.raw == RMC


def test_unrecognised_sentence_carries_only_its_tag() -> None:
    update = decode("$GPZDA,201530.00,04,07,2002,00,00*60")

    assert update == FixUpdate(sentence="GPZDA", raw="$GPZDA,201530.00,04,07,2002,00,00*60")
    assert update.populated_fields() == []


def test_checksum_verification_is_opt_in() -> None:
    corrupted = RMC[:-2] + "00"

    assert nmea_checksum(RMC[1:-3]) == "6A"
    assert decode(RMC, verify_checksum=True) is not None
    assert decode(corrupted, verify_checksum=True) is None
    assert decode(corrupted) is not None
    assert decode("$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,,,,", verify_checksum=True) is not None


def test_parse_coordinate() -> None:
    assert parse_coordinate("4807.038", "N") == pytest.approx(48.1173)
    assert parse_coordinate("01131.000", "E") == pytest.approx(11.516667)
    assert parse_coordinate("12000.000", "W") == pytest.approx(-120.0)
    assert parse_coordinate("", "N") is None
    assert parse_coordinate("7", "N") is None


def test_parse_time_and_date_range_checks() -> None:
    assert parse_time("235959.99") == FixTime(hour=23, minute=59, second=59)
    assert parse_time("250000") is None
    assert parse_time("12") is None
    assert parse_date("311299") == FixDate(year=1999, month=12, day=31)
    assert parse_date("010179") == FixDate(year=2079, month=1, day=1)
    assert parse_date("011399") is None


def test_code_tables_fall_back_to_unknown() -> None:
    assert FixQuality(4).label == "RTK fixed"
    assert FixQuality(42) is FixQuality.UNKNOWN
    assert FixQuality(42).label == "unknown"
    assert FixType(2).label == "3D fix"
    assert FixType(9).label == "unknown"

    update = decode("$GPGGA,123519,4807.038,N,01131.000,E,9,08,0.9,545.4,M,,,,")
    assert update is not None
    assert update.quality == 9
    assert update.quality_label == "unknown"


def test_fix_time_shift_wraps_hour_only() -> None:
    fix_time = FixTime(hour=20, minute=5, second=6)

    assert fix_time.shifted(8).formatted == "04:05:06"
    assert fix_time.shifted(-21).formatted == "23:05:06"
