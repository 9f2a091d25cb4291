"""Command-line runner: feed NMEA lines from a file or stdin into the bridge.

Serial port handling is left to the operating system or a tool such as
``socat``; pipe the receiver output in::

    socat /dev/ttyUSB0,b9600,raw - | gnssbridge --modbus-port 1502 --ntp-port 1123
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator
from typing import TextIO

from gnssbridge._netinfo import local_ipv4_addresses
from gnssbridge.bridge import BridgeContext
from gnssbridge.config import BridgeConfig
from gnssbridge.exceptions import BridgeConfigError
from gnssbridge.models.fix import FixUpdate, GnssMode

_logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Bridge an NMEA stream to a Modbus TCP register server and an NTP service.",
    )
    parser.add_argument("--input", "-i", help="Read NMEA lines from FILE instead of stdin")
    parser.add_argument("--host", help="Bind address for both servers (default: config / 0.0.0.0)")
    parser.add_argument("--modbus-port", type=int, help="Modbus TCP port (default: 502)")
    parser.add_argument("--ntp-port", type=int, help="NTP UDP port (default: 123)")
    parser.add_argument("--no-modbus", action="store_true", help="Do not start the Modbus TCP server")
    parser.add_argument("--no-ntp", action="store_true", help="Do not start the NTP server")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in GnssMode],
        help="Talker filter: auto, beidou or gps (default: auto)",
    )
    parser.add_argument("--timezone", type=int, help="Timezone offset hours written to the registers")
    parser.add_argument("--ntp-offset", type=int, help="Hours added to the host clock in NTP replies")
    parser.add_argument("--exit-on-eof", action="store_true", help="Stop when the input ends")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> BridgeConfig:
    overrides: dict[str, object] = {}
    if args.host:
        overrides["modbus_host"] = args.host
        overrides["ntp_host"] = args.host
    if args.modbus_port is not None:
        overrides["modbus_port"] = args.modbus_port
    if args.ntp_port is not None:
        overrides["ntp_port"] = args.ntp_port
    if args.mode:
        overrides["gnss_mode"] = args.mode
    if args.timezone is not None:
        overrides["timezone_offset_hours"] = args.timezone
    if args.ntp_offset is not None:
        overrides["ntp_offset_hours"] = args.ntp_offset
    return BridgeConfig.from_env(**overrides)


async def _read_lines(stream: TextIO) -> AsyncIterator[str]:
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        yield line


def _log_fix(bridge: BridgeContext, update: FixUpdate) -> None:
    if update.position is not None:
        local = update.time.shifted(bridge.timezone_offset).formatted if update.time else "--:--:--"
        _logger.info(
            "%s %s lat=%.6f lon=%.6f",
            update.sentence,
            local,
            update.position.latitude,
            update.position.longitude,
        )
    else:
        _logger.debug("%s fields=%s", update.sentence, ",".join(update.populated_fields()))


async def run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    async with BridgeContext(config) as bridge:
        bridge.bus.subscribe(lambda update: _log_fix(bridge, update))

        if not args.no_modbus:
            result = await bridge.start_modbus()
            if not result.success:
                _logger.error("%s", result.message)
                return 1
        if not args.no_ntp:
            result = await bridge.start_ntp()
            if not result.success:
                _logger.error("%s", result.message)
                return 1

        if config.modbus_host == "0.0.0.0" or config.ntp_host == "0.0.0.0":
            _logger.info("Reachable on %s", ", ".join(local_ipv4_addresses()))

        with contextlib.ExitStack() as stack:
            stream: TextIO = sys.stdin
            if args.input:
                stream = stack.enter_context(open(args.input, encoding="ascii", errors="replace"))
            decoded = await bridge.feed_lines(_read_lines(stream))
        _logger.info("Input ended after %d decoded sentences", decoded)

        if not args.exit_on_eof:
            await asyncio.Event().wait()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(run(args))
    except BridgeConfigError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
