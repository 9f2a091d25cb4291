"""Local address discovery for choosing a bind address."""

from __future__ import annotations

import logging
import socket

_logger = logging.getLogger(__name__)

LOOPBACK = "127.0.0.1"


def local_ipv4_addresses() -> list[str]:
    """Non-loopback IPv4 addresses of this host, or ``["127.0.0.1"]`` if none."""
    addresses: list[str] = []
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        _logger.debug("Local address lookup failed: %s", exc)
        infos = []
    for info in infos:
        address = str(info[4][0])
        if address.startswith("127.") or address in addresses:
            continue
        addresses.append(address)
    return addresses or [LOOPBACK]
