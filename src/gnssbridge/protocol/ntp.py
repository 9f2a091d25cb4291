"""NTP packet codec and server reply construction."""

from __future__ import annotations

import struct

from gnssbridge._constants import (
    NTP_FIXED_POINT_SCALE,
    NTP_PACKET_SIZE,
    NTP_POLL_DEFAULT,
    NTP_POLL_MAX,
    NTP_POLL_MIN,
    NTP_PRECISION,
    NTP_REFERENCE_ID,
)
from gnssbridge.exceptions import NtpPacketError
from gnssbridge.models.ntp import NtpPacket, NtpTimestamp

# LI/VN/mode, stratum, poll, precision, root delay, root dispersion, reference id
_HEADER = struct.Struct(">BBBbII4s")
_TIMESTAMP = struct.Struct(">II")

_TIMESTAMP_OFFSETS = (16, 24, 32, 40)

LEAP_NO_WARNING = 0
NTP_VERSION = 3
MODE_SERVER = 4
STRATUM_PRIMARY = 1


def read_timestamp(data: bytes, offset: int) -> NtpTimestamp:
    seconds, fraction = _TIMESTAMP.unpack_from(data, offset)
    return NtpTimestamp(seconds=seconds, fraction=fraction)


def write_timestamp(timestamp: NtpTimestamp) -> bytes:
    return _TIMESTAMP.pack(timestamp.seconds, timestamp.fraction)


def _to_fixed_point(seconds: float) -> int:
    return round(seconds * NTP_FIXED_POINT_SCALE) & 0xFFFFFFFF


def parse_packet(data: bytes) -> NtpPacket:
    """Parse the first 48 bytes of an NTP datagram.

    Trailing extension fields or MACs are ignored. Raises
    :class:`NtpPacketError` when fewer than 48 bytes are available.
    """
    if len(data) < NTP_PACKET_SIZE:
        raise NtpPacketError(f"NTP packet too short: {len(data)} bytes")
    first, stratum, poll, precision, root_delay, root_dispersion, reference = _HEADER.unpack_from(data, 0)
    reference_ts, originate_ts, receive_ts, transmit_ts = (
        read_timestamp(data, offset) for offset in _TIMESTAMP_OFFSETS
    )
    return NtpPacket(
        leap=(first >> 6) & 0x03,
        version=(first >> 3) & 0x07,
        mode=first & 0x07,
        stratum=stratum,
        poll=poll,
        precision=precision,
        root_delay=root_delay / NTP_FIXED_POINT_SCALE,
        root_dispersion=root_dispersion / NTP_FIXED_POINT_SCALE,
        reference_id=reference.decode("latin-1").rstrip("\x00"),
        reference_timestamp=reference_ts,
        originate_timestamp=originate_ts,
        receive_timestamp=receive_ts,
        transmit_timestamp=transmit_ts,
    )


def serialize_packet(packet: NtpPacket) -> bytes:
    """Encode *packet* as a 48-byte datagram."""
    first = ((packet.leap & 0x03) << 6) | ((packet.version & 0x07) << 3) | (packet.mode & 0x07)
    header = _HEADER.pack(
        first,
        packet.stratum,
        packet.poll,
        packet.precision,
        _to_fixed_point(packet.root_delay),
        _to_fixed_point(packet.root_dispersion),
        packet.reference_id.encode("ascii", errors="replace")[:4].ljust(4, b"\x00"),
    )
    return header + b"".join(
        write_timestamp(ts)
        for ts in (
            packet.reference_timestamp,
            packet.originate_timestamp,
            packet.receive_timestamp,
            packet.transmit_timestamp,
        )
    )


def clamp_poll(poll: int) -> int:
    """Reply poll interval: the client's value (6 when unset) clamped to 4..10."""
    return min(NTP_POLL_MAX, max(NTP_POLL_MIN, poll or NTP_POLL_DEFAULT))


def build_reply(request: NtpPacket, now: NtpTimestamp) -> NtpPacket:
    """Server (mode 4) reply claiming stratum 1 with reference id ``GPS``.

    Reference, receive and transmit timestamps are all *now*; the
    originate timestamp echoes the request's transmit timestamp.
    """
    return NtpPacket(
        leap=LEAP_NO_WARNING,
        version=NTP_VERSION,
        mode=MODE_SERVER,
        stratum=STRATUM_PRIMARY,
        poll=clamp_poll(request.poll),
        precision=NTP_PRECISION,
        root_delay=0.0,
        root_dispersion=0.0,
        reference_id=NTP_REFERENCE_ID,
        reference_timestamp=now,
        originate_timestamp=request.transmit_timestamp,
        receive_timestamp=now,
        transmit_timestamp=now,
    )


def build_request(transmit: NtpTimestamp, *, version: int = NTP_VERSION, poll: int = 0) -> bytes:
    """Client (mode 3) request datagram carrying *transmit*."""
    return serialize_packet(NtpPacket(version=version, mode=3, poll=poll, transmit_timestamp=transmit))
