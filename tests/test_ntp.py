from __future__ import annotations

import time

import pytest

from gnssbridge._constants import NTP_EPOCH_DELTA
from gnssbridge.exceptions import NtpPacketError
from gnssbridge.models.ntp import NtpPacket, NtpTimestamp
from gnssbridge.protocol.ntp import (
    build_request,
    clamp_poll,
    parse_packet,
    read_timestamp,
    serialize_packet,
    write_timestamp,
)
from gnssbridge.server.ntp import NtpServer

NOW = 1_700_000_000.25


def test_timestamp_wire_round_trip() -> None:
    timestamp = NtpTimestamp(seconds=3_900_000_000, fraction=0x80000001)

    data = write_timestamp(timestamp)

    assert len(data) == 8
    assert read_timestamp(data, 0) == timestamp


def test_timestamp_from_unix() -> None:
    assert NtpTimestamp().is_zero
    assert not NtpTimestamp.from_unix(0).is_zero
    assert NtpTimestamp.from_unix(0) == NtpTimestamp(seconds=NTP_EPOCH_DELTA, fraction=0)
    assert NtpTimestamp.from_unix(1.5) == NtpTimestamp(seconds=NTP_EPOCH_DELTA + 1, fraction=1 << 31)
    assert NtpTimestamp.from_unix(NOW).to_unix() == pytest.approx(NOW, abs=1e-6)


def test_fraction_rounding_up_is_clamped() -> None:
    timestamp = NtpTimestamp.from_unix(1 - 1e-12)

    assert timestamp.seconds == NTP_EPOCH_DELTA
    assert timestamp.fraction == 0xFFFFFFFF


def test_reply_fields() -> None:
    server = NtpServer(8, clock=lambda: NOW)
    client_transmit = NtpTimestamp(seconds=123, fraction=456)

    data = server.handle_datagram(build_request(client_transmit))
    reply = parse_packet(data)

    expected_now = NtpTimestamp.from_unix(NOW + 8 * 3600)
    assert len(data) == 48
    assert reply.leap == 0
    assert reply.version == 3
    assert reply.mode == 4
    assert reply.stratum == 1
    assert reply.poll == 6
    assert reply.precision == -20
    assert reply.reference_id == "GPS"
    assert reply.root_delay == 0
    assert reply.root_dispersion == 0
    assert reply.originate_timestamp == client_transmit
    assert reply.receive_timestamp == expected_now
    assert reply.transmit_timestamp == expected_now
    assert reply.reference_timestamp == expected_now


def test_reply_wire_layout() -> None:
    server = NtpServer(0, clock=lambda: NOW)

    data = server.handle_datagram(build_request(NtpTimestamp(seconds=1, fraction=2), poll=12))

    assert data[0] == 0x1C
    assert data[1] == 1
    assert data[2] == 10
    assert data[3] == 0xEC
    assert data[12:16] == b"GPS\x00"
    assert data[24:32] == b"\x00\x00\x00\x01\x00\x00\x00\x02"


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(0, 6), (1, 4), (4, 4), (7, 7), (10, 10), (17, 10)],
)
def test_poll_is_clamped(requested: int, expected: int) -> None:
    assert clamp_poll(requested) == expected


def test_offset_shifts_current_time() -> None:
    server = NtpServer(8)

    current = server.current_time().to_unix()

    assert abs(current - (time.time() + 8 * 3600)) < 1.0

    server.set_offset(-3)
    assert server.offset_hours == -3
    assert abs(server.current_time().to_unix() - (time.time() - 3 * 3600)) < 1.0


def test_short_datagram_raises() -> None:
    with pytest.raises(NtpPacketError):
        parse_packet(b"\x1b" + b"\x00" * 46)

    with pytest.raises(NtpPacketError):
        NtpServer(0).handle_datagram(b"")


def test_trailing_extension_bytes_are_ignored() -> None:
    request = build_request(NtpTimestamp(seconds=99, fraction=1)) + b"\x00" * 20

    reply = parse_packet(NtpServer(0, clock=lambda: NOW).handle_datagram(request))

    assert reply.originate_timestamp == NtpTimestamp(seconds=99, fraction=1)


def test_packet_serialization_round_trip() -> None:
    packet = NtpPacket(
        leap=3,
        version=4,
        mode=3,
        stratum=2,
        poll=6,
        precision=-6,
        root_delay=0.5,
        root_dispersion=0.25,
        reference_id="LOCL",
        transmit_timestamp=NtpTimestamp(seconds=5, fraction=6),
    )

    assert parse_packet(serialize_packet(packet)) == packet


def test_reference_id_longer_than_four_characters_is_rejected() -> None:
    with pytest.raises(ValueError):
        NtpPacket(reference_id="TOOLONG")
