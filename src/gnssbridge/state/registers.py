"""Modbus register bank holding the latest fix.

Two fixed-size tables of unsigned 16-bit words, addressed 1-based from the
outside (index = address - 1):

Holding registers
    1 year, 2 month, 3 day, 4 hour, 5 minute, 6 second,
    7/8 altitude integer / tenths, 9/10 latitude integer / millionths,
    11/12 longitude integer / millionths, 13 satellites, 14 quality,
    15/16 PDOP, 17/18 HDOP, 19/20 VDOP (integer / tenths), 21 status,
    22 timezone offset hours.

Input registers
    1 Unix time, 2 altitude x10, 3 latitude x10000, 4 longitude x10000.

Every stored value is reduced to 16 bits before storage; nothing is ever
rejected for being out of range. Signs are stripped from position and
altitude, so hemisphere must be tracked elsewhere. The timezone register
holds the offset as a two's-complement word.

Each register access takes the bank lock, so no reader ever sees a torn
word. :meth:`RegisterBank.apply_fix` takes the lock once per register, not
for the whole fix: a concurrent reader may see the new date next to the old
position.
"""

from __future__ import annotations

import enum
import math
import threading
import time
from collections.abc import Callable

from gnssbridge._constants import REGISTER_COUNT, WORD_MASK
from gnssbridge.models.fix import FixStatus, FixUpdate


class HoldingRegister(enum.IntEnum):
    YEAR = 1
    MONTH = 2
    DAY = 3
    HOUR = 4
    MINUTE = 5
    SECOND = 6
    ALTITUDE = 7
    ALTITUDE_DECIMAL = 8
    LATITUDE = 9
    LATITUDE_DECIMAL = 10
    LONGITUDE = 11
    LONGITUDE_DECIMAL = 12
    SATELLITES = 13
    QUALITY = 14
    PDOP = 15
    PDOP_DECIMAL = 16
    HDOP = 17
    HDOP_DECIMAL = 18
    VDOP = 19
    VDOP_DECIMAL = 20
    STATUS = 21
    TIMEZONE = 22


class InputRegister(enum.IntEnum):
    TIMESTAMP = 1
    RAW_ALTITUDE = 2
    RAW_LATITUDE = 3
    RAW_LONGITUDE = 4


ALTITUDE_SCALE = 10
COORDINATE_SCALE = 1_000_000
DOP_SCALE = 10
RAW_ALTITUDE_SCALE = 10
RAW_COORDINATE_SCALE = 10_000


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def to_word(value: int) -> int:
    """Truncate an integer to its low 16 bits."""
    return int(value) & WORD_MASK


def split_fixed(value: float, scale: int) -> tuple[int, int]:
    """Split ``|value|`` into an integer word and a scaled fractional word."""
    magnitude = abs(value)
    whole = math.floor(magnitude)
    return to_word(whole), to_word(round_half_up((magnitude - whole) * scale))


class RegisterBank:
    """Holding and input register tables shared by every Modbus client."""

    def __init__(
        self,
        size: int = REGISTER_COUNT,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._size = size
        self._clock = clock
        self._lock = threading.Lock()
        self._holding = [0] * size
        self._input = [0] * size

    @property
    def size(self) -> int:
        return self._size

    # ------------------------------------------------------------------
    # Word access
    # ------------------------------------------------------------------

    def _read(self, table: list[int], address: int, quantity: int) -> list[int]:
        start = address - 1
        with self._lock:
            return [table[index] if 0 <= index < self._size else 0 for index in range(start, start + quantity)]

    def _write(self, table: list[int], address: int, value: int) -> int:
        index = address - 1
        if not 0 <= index < self._size:
            raise IndexError(f"register address {address} outside 1..{self._size}")
        word = to_word(value)
        with self._lock:
            table[index] = word
        return word

    def read_holding(self, address: int, quantity: int) -> list[int]:
        """Read *quantity* holding registers from 1-based *address*.

        Slots outside the bank read as ``0``.
        """
        return self._read(self._holding, address, quantity)

    def read_input(self, address: int, quantity: int) -> list[int]:
        """Read *quantity* input registers from 1-based *address*.

        Slots outside the bank read as ``0``.
        """
        return self._read(self._input, address, quantity)

    def write_holding(self, address: int, value: int) -> int:
        """Store ``value & 0xFFFF`` at *address* and return the stored word."""
        return self._write(self._holding, address, value)

    def write_input(self, address: int, value: int) -> int:
        return self._write(self._input, address, value)

    def snapshot(self) -> tuple[list[int], list[int]]:
        """Copies of the holding and input tables."""
        with self._lock:
            return list(self._holding), list(self._input)

    # ------------------------------------------------------------------
    # Fix encoding
    # ------------------------------------------------------------------

    def _write_fixed(self, register: HoldingRegister, value: float, scale: int) -> None:
        whole, fraction = split_fixed(value, scale)
        self.write_holding(register, whole)
        self.write_holding(register + 1, fraction)

    def apply_fix(self, update: FixUpdate, timezone_offset_hours: int) -> None:
        """Overwrite the register groups *update* carries data for.

        The timezone and Unix-time registers are refreshed on every call.
        """
        if update.date is not None:
            self.write_holding(HoldingRegister.YEAR, update.date.year)
            self.write_holding(HoldingRegister.MONTH, update.date.month)
            self.write_holding(HoldingRegister.DAY, update.date.day)

        if update.time is not None:
            self.write_holding(HoldingRegister.HOUR, update.time.hour)
            self.write_holding(HoldingRegister.MINUTE, update.time.minute)
            self.write_holding(HoldingRegister.SECOND, update.time.second)

        if update.altitude is not None:
            self._write_fixed(HoldingRegister.ALTITUDE, update.altitude, ALTITUDE_SCALE)

        if update.position is not None:
            self._write_fixed(HoldingRegister.LATITUDE, update.position.latitude, COORDINATE_SCALE)
            self._write_fixed(HoldingRegister.LONGITUDE, update.position.longitude, COORDINATE_SCALE)

        if update.satellites is not None:
            self.write_holding(HoldingRegister.SATELLITES, update.satellites)

        if update.quality is not None:
            self.write_holding(HoldingRegister.QUALITY, update.quality)

        if update.pdop is not None:
            self._write_fixed(HoldingRegister.PDOP, update.pdop, DOP_SCALE)
        if update.hdop is not None:
            self._write_fixed(HoldingRegister.HDOP, update.hdop, DOP_SCALE)
        if update.vdop is not None:
            self._write_fixed(HoldingRegister.VDOP, update.vdop, DOP_SCALE)

        if update.status is not None:
            self.write_holding(HoldingRegister.STATUS, 1 if update.status == FixStatus.VALID else 0)

        self.write_holding(HoldingRegister.TIMEZONE, timezone_offset_hours)

        self.write_input(InputRegister.TIMESTAMP, math.floor(self._clock()))
        if update.altitude is not None:
            self.write_input(InputRegister.RAW_ALTITUDE, round_half_up(abs(update.altitude) * RAW_ALTITUDE_SCALE))
        if update.position is not None:
            self.write_input(
                InputRegister.RAW_LATITUDE,
                round_half_up(abs(update.position.latitude) * RAW_COORDINATE_SCALE),
            )
            self.write_input(
                InputRegister.RAW_LONGITUDE,
                round_half_up(abs(update.position.longitude) * RAW_COORDINATE_SCALE),
            )
