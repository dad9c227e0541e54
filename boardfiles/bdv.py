"""Reader for the obfuscated BDV board format."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from itertools import islice

from .base import (
    BoardFile,
    BoardFormatError,
    LineCursor,
    Nail,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
)

_FIRST_KEY = 0xA0
_KEY_LIMIT = 285
_KEY_RESTART = 159


def decode_bdv(data: bytes) -> bytes:
    """Undo the BDV obfuscation.

    Each byte is subtracted from a key that grows by one on every CRLF.
    Line breaks and NUL bytes are kept as they are. The transformation is
    its own inverse, so it also encodes.
    """
    data = bytes(data)
    key = _FIRST_KEY
    out = bytearray()
    for byte, following in zip(data, data[1:] + b"\0"):
        if byte == 0x0D and following == 0x0A:
            key += 1
        if byte not in (0x0D, 0x0A, 0x00):
            byte = (key - byte) & 0xFF
        if key > _KEY_LIMIT:
            key = _KEY_RESTART
        out.append(byte)
    return bytes(out)


class _Block(Enum):
    NONE = 0
    FORMAT = 1
    PINS = 2
    NAILS = 3


# Section header -> (block, number of unused lines that follow it)
_HEADERS = {
    "<<format.asc>>": (_Block.FORMAT, 8),
    "<<pins.asc>>": (_Block.PINS, 8),
    "<<nails.asc>>": (_Block.NAILS, 7),
}


def _skip(lines: Iterator[str], count: int) -> None:
    next(islice(lines, count, count), None)


class BDVFile(BoardFile):
    """A board read from a BDV file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        return b"dd:1.3?,r?-=bb" in data or (b"<<format.asc>>" in data and b"<<pins.asc>>" in data)

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = decode_bdv(self._require_size(buf))

        block = _Block.NONE
        lines = iter(self._lines(data))
        for line in lines:
            if not line:
                continue
            header = _HEADERS.get(line)
            if header is not None:
                block, unused = header
                _skip(lines, unused)
                continue

            cursor = LineCursor(line)
            if block is _Block.FORMAT:
                x = cursor.read_double()
                y = cursor.read_double()
                self.format.append(Point(int(x * 1000.0), int(y * 1000.0)))
            elif block is _Block.PINS:
                if line.startswith("Part"):
                    cursor.skip(4)
                    self._read_part(cursor)
                else:
                    self._read_pin(cursor)
            elif block is _Block.NAILS:
                self._read_nail(cursor)

        if block is _Block.NONE:
            raise BoardFormatError("no BDV sections found")
        self.update_counts()

    def _read_part(self, cursor: LineCursor) -> None:
        name = cursor.read_str()
        side = PartMountingSide.TOP if cursor.read_str() == "(T)" else PartMountingSide.BOTTOM
        self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side))

    def _read_pin(self, cursor: LineCursor) -> None:
        if not self.parts:
            raise BoardFormatError("pin listed before any part")
        cursor.read_int()  # id
        cursor.read_str()  # name
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # layer
        net = cursor.read_str()
        probe = cursor.read_uint()
        owner = self.parts[-1]
        self.pins.append(
            Pin(
                part=len(self.parts),
                pos=Point(int(x * 1000.0), int(y * 1000.0)),
                net=net,
                probe=probe,
                side=PinSide[owner.mounting_side.name],
            )
        )
        owner.end_of_pins = len(self.pins)

    def _read_nail(self, cursor: LineCursor) -> None:
        cursor.skip(1)
        probe = cursor.read_uint()
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # type
        cursor.read_str()  # grid
        side = PartMountingSide.TOP if cursor.read_str() == "(T)" else PartMountingSide.BOTTOM
        cursor.read_str()  # net id
        net = cursor.read_str()
        self.nails.append(
            Nail(probe=probe, pos=Point(int(x * 1000.0), int(y * 1000.0)), side=side, net=net)
        )