#!/usr/bin/env python3
"""Poll a running gnssbridge Modbus TCP server and print the decoded fix.

Reads holding registers 1-22 and input registers 1-4 every interval and
prints them in human-readable form. Use it to check a bridge from the
PLC side without a PLC.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from gnssbridge.exceptions import GnssBridgeError  # noqa: E402
from gnssbridge.protocol.modbus import FunctionCode, build_request, decode_registers, parse_response  # noqa: E402
from gnssbridge.state.registers import HoldingRegister, InputRegister  # noqa: E402

_LOG = logging.getLogger("modbus_probe")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Poll gnssbridge Modbus registers.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bridge address.")
    parser.add_argument("--port", type=int, default=502, help="Modbus TCP port.")
    parser.add_argument("--unit", type=int, default=1, help="Modbus unit id.")
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between polls.",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=0,
        help="Number of polls (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


async def _read(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    transaction_id: int,
    function_code: FunctionCode,
    quantity: int,
    unit_id: int,
) -> list[int]:
    writer.write(build_request(transaction_id, function_code, 1, quantity, unit_id=unit_id))
    await writer.drain()
    header = await reader.readexactly(7)
    length = int.from_bytes(header[4:6], "big")
    _header, pdu = parse_response(header + await reader.readexactly(length))
    return decode_registers(pdu)


def _signed(word: int) -> int:
    return word - 0x10000 if word & 0x8000 else word


def _print_registers(holding: list[int], inputs: list[int]) -> None:
    def reg(register: HoldingRegister) -> int:
        return holding[register - 1]

    print("[probe] Holding registers")
    print(
        f"[probe]   date/time : {reg(HoldingRegister.YEAR):04d}-{reg(HoldingRegister.MONTH):02d}-"
        f"{reg(HoldingRegister.DAY):02d} {reg(HoldingRegister.HOUR):02d}:"
        f"{reg(HoldingRegister.MINUTE):02d}:{reg(HoldingRegister.SECOND):02d} UTC"
    )
    print(f"[probe]   latitude  : {reg(HoldingRegister.LATITUDE)} + {reg(HoldingRegister.LATITUDE_DECIMAL)}")
    print(f"[probe]   longitude : {reg(HoldingRegister.LONGITUDE)} + {reg(HoldingRegister.LONGITUDE_DECIMAL)}")
    print(f"[probe]   altitude  : {reg(HoldingRegister.ALTITUDE)}.{reg(HoldingRegister.ALTITUDE_DECIMAL)}")
    print(f"[probe]   satellites: {reg(HoldingRegister.SATELLITES)}  quality: {reg(HoldingRegister.QUALITY)}")
    print(
        f"[probe]   dop       : P={reg(HoldingRegister.PDOP)}.{reg(HoldingRegister.PDOP_DECIMAL)} "
        f"H={reg(HoldingRegister.HDOP)}.{reg(HoldingRegister.HDOP_DECIMAL)} "
        f"V={reg(HoldingRegister.VDOP)}.{reg(HoldingRegister.VDOP_DECIMAL)}"
    )
    print(f"[probe]   status    : {'valid' if reg(HoldingRegister.STATUS) else 'invalid'}")
    print(f"[probe]   timezone  : UTC{_signed(reg(HoldingRegister.TIMEZONE)):+d}")
    print(f"[probe] Input registers {dict(zip((r.name for r in InputRegister), inputs, strict=False))}")


async def _poll(args: argparse.Namespace) -> int:
    reader, writer = await asyncio.open_connection(args.host, args.port)
    _LOG.info("Connected to %s:%s", args.host, args.port)
    transaction_id = 0
    polls = 0
    try:
        while args.count == 0 or polls < args.count:
            transaction_id = (transaction_id + 2) & 0xFFFF
            holding = await _read(
                reader, writer, transaction_id, FunctionCode.READ_HOLDING_REGISTERS, len(HoldingRegister), args.unit
            )
            inputs = await _read(
                reader, writer, (transaction_id + 1) & 0xFFFF, FunctionCode.READ_INPUT_REGISTERS, len(InputRegister), args.unit
            )
            _print_registers(holding, inputs)
            polls += 1
            await asyncio.sleep(args.interval)
    finally:
        writer.close()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_poll(args))
    except KeyboardInterrupt:
        return 0
    except (OSError, GnssBridgeError, asyncio.IncompleteReadError) as exc:
        print(f"[probe] Poll failed: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
