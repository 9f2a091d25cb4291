"""Modbus TCP framing and function dispatch.

A request is a 7-byte MBAP header (transaction id, protocol id, length,
unit id, all big-endian) followed by a PDU starting with the function code.
Frames shorter than 12 bytes or with a non-zero protocol id are not
answered at all. Everything else gets either a normal response or a Modbus
exception response; nothing here closes a connection.

Supported functions: 0x03 read holding registers, 0x04 read input
registers, 0x06 write single holding register. Any other code is answered
with exception 0x01.
"""

from __future__ import annotations

import enum
import struct
from collections.abc import Iterator
from typing import NamedTuple

from gnssbridge._constants import MAX_READ_QUANTITY, MBAP_HEADER_SIZE, MIN_FRAME_SIZE, WORD_MASK
from gnssbridge.exceptions import ModbusFrameError
from gnssbridge.state.registers import RegisterBank

_MBAP = struct.Struct(">HHHB")
_ADDRESS_VALUE = struct.Struct(">HH")

EXCEPTION_FLAG = 0x80
MODBUS_PROTOCOL_ID = 0


class FunctionCode(enum.IntEnum):
    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_SINGLE_REGISTER = 0x06


_SUPPORTED_FUNCTIONS = frozenset(FunctionCode)


class ExceptionCode(enum.IntEnum):
    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03


class MbapHeader(NamedTuple):
    transaction_id: int
    protocol_id: int
    length: int
    unit_id: int

    def pack(self) -> bytes:
        return _MBAP.pack(self.transaction_id, self.protocol_id, self.length, self.unit_id)


def parse_header(frame: bytes) -> MbapHeader:
    """Parse and validate the MBAP header of *frame*.

    Raises :class:`ModbusFrameError` for frames shorter than 12 bytes or
    carrying a protocol id other than 0.
    """
    if len(frame) < MIN_FRAME_SIZE:
        raise ModbusFrameError(f"Modbus frame too short: {len(frame)} bytes")
    header = MbapHeader(*_MBAP.unpack_from(frame, 0))
    if header.protocol_id != MODBUS_PROTOCOL_ID:
        raise ModbusFrameError(f"Invalid Modbus protocol id: {header.protocol_id}")
    return header


def exception_pdu(function_code: int, code: ExceptionCode) -> bytes:
    return bytes(((function_code | EXCEPTION_FLAG) & 0xFF, code))


def _read_registers(bank: RegisterBank, function_code: FunctionCode, pdu: bytes) -> bytes:
    address, quantity = _ADDRESS_VALUE.unpack_from(pdu, 1)
    if not 1 <= quantity <= MAX_READ_QUANTITY:
        return exception_pdu(function_code, ExceptionCode.ILLEGAL_DATA_VALUE)
    if function_code == FunctionCode.READ_HOLDING_REGISTERS:
        values = bank.read_holding(address, quantity)
    else:
        values = bank.read_input(address, quantity)
    return struct.pack(f">BB{quantity}H", function_code, quantity * 2, *values)


def _write_single_register(bank: RegisterBank, pdu: bytes) -> bytes:
    address, value = _ADDRESS_VALUE.unpack_from(pdu, 1)
    if not 1 <= address <= bank.size:
        return exception_pdu(FunctionCode.WRITE_SINGLE_REGISTER, ExceptionCode.ILLEGAL_DATA_ADDRESS)
    stored = bank.write_holding(address, value)
    return struct.pack(">BHH", FunctionCode.WRITE_SINGLE_REGISTER, address, stored)


def handle_pdu(bank: RegisterBank, pdu: bytes) -> bytes:
    """Execute one request PDU against *bank* and return the response PDU."""
    if not pdu:
        raise ModbusFrameError("Empty Modbus PDU")
    function_code = pdu[0]
    if function_code not in _SUPPORTED_FUNCTIONS:
        return exception_pdu(function_code, ExceptionCode.ILLEGAL_FUNCTION)
    if len(pdu) < 1 + _ADDRESS_VALUE.size:
        raise ModbusFrameError(f"Modbus PDU too short for function 0x{function_code:02X}: {len(pdu)} bytes")

    code = FunctionCode(function_code)
    if code == FunctionCode.WRITE_SINGLE_REGISTER:
        return _write_single_register(bank, pdu)
    return _read_registers(bank, code, pdu)


def handle_frame(bank: RegisterBank, frame: bytes) -> bytes:
    """Answer one MBAP frame.

    The response header echoes the request's transaction id, protocol id
    and unit id; its length field is the byte length of the response PDU.
    Raises :class:`ModbusFrameError` for frames that must be dropped.
    """
    header = parse_header(frame)
    pdu = handle_pdu(bank, frame[MBAP_HEADER_SIZE:])
    response = header._replace(length=len(pdu) & WORD_MASK)
    return response.pack() + pdu


def split_frames(data: bytes) -> Iterator[bytes]:
    """Split a received segment into MBAP frames using their length fields.

    Back-to-back complete frames are yielded one by one. The length field is
    only trusted when it delimits a frame of at least 12 bytes that fits in
    the segment; otherwise the rest of the segment is yielded as a single
    frame and answered on its own.
    """
    offset = 0
    while offset < len(data):
        rest = data[offset:]
        if len(rest) >= MBAP_HEADER_SIZE:
            length = int.from_bytes(rest[4:6], "big")
            size = MBAP_HEADER_SIZE - 1 + length
            if MIN_FRAME_SIZE <= size <= len(rest):
                yield rest[:size]
                offset += size
                continue
        yield rest
        return


def build_request(
    transaction_id: int,
    function_code: int,
    address: int,
    value: int,
    *,
    unit_id: int = 1,
    protocol_id: int = MODBUS_PROTOCOL_ID,
) -> bytes:
    """Build a 12-byte request; *value* is the quantity for reads."""
    pdu = struct.pack(">BHH", function_code, address, value)
    return MbapHeader(transaction_id, protocol_id, len(pdu) + 1, unit_id).pack() + pdu


def parse_response(frame: bytes) -> tuple[MbapHeader, bytes]:
    """Split a response frame into its header and PDU."""
    if len(frame) < MBAP_HEADER_SIZE + 2:
        raise ModbusFrameError(f"Modbus response too short: {len(frame)} bytes")
    return MbapHeader(*_MBAP.unpack_from(frame, 0)), frame[MBAP_HEADER_SIZE:]


def decode_registers(pdu: bytes) -> list[int]:
    """Register values from a read response PDU."""
    if pdu[0] & EXCEPTION_FLAG:
        raise ModbusFrameError(f"Modbus exception 0x{pdu[1]:02X} for function 0x{pdu[0] & 0x7F:02X}")
    byte_count = pdu[1]
    return list(struct.unpack_from(f">{byte_count // 2}H", pdu, 2))
