"""Reader for the BVR (BVRAW_FORMAT_1) board format."""

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

_NAME_LIMIT = 99


class _Block(Enum):
    NONE = 0
    LAYOUT = 1
    PINS = 2
    NAILS = 3


_HEADERS = {
    "<<Layout>>": _Block.LAYOUT,
    "<<Pin>>": _Block.PINS,
    "<<Nail>>": _Block.NAILS,
}


def _skip(lines: Iterator[str], count: int) -> None:
    next(islice(lines, count, count), None)


def _next_field(cursor: LineCursor) -> None:
    """Move past the next tab, or to the end of the line if there is none."""
    rest = cursor.rest()
    tab = rest.find("\t")
    cursor.skip(len(rest) if tab < 0 else tab + 1)


def _mils(value: float) -> int:
    return int(value * 1000)


class BVRFile(BoardFile):
    """A board read from a BVR file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        return b"BVRAW_FORMAT_1" in bytes(buf)

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        previous_name = ""
        block = _Block.NONE

        lines = iter(self._lines(data))
        for line in lines:
            if not line:
                continue
            header = _HEADERS.get(line)
            if header is not None:
                block = header
                _skip(lines, 1)
                continue

            cursor = LineCursor(line)
            if block is _Block.LAYOUT:
                x = cursor.read_double()
                if cursor.rest().startswith(","):
                    cursor.skip(1)
                y = cursor.read_double()
                self.format.append(Point(_mils(x), _mils(y)))
            elif block is _Block.PINS:
                previous_name = self._read_pin(cursor, previous_name)
            elif block is _Block.NAILS:
                self._read_nail(cursor)

        if block is _Block.NONE:
            raise BoardFormatError("no BVR sections found")
        self.update_counts()

    def _read_pin(self, cursor: LineCursor, previous_name: str) -> str:
        name = cursor.read_str()
        side = PartMountingSide.TOP if cursor.read_str() == "(T)" else PartMountingSide.BOTTOM
        if name != previous_name:
            self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side))
            previous_name = name[:_NAME_LIMIT]
        if not self.parts:
            raise BoardFormatError("pin listed before any part")

        cursor.read_int()  # id
        pin_name = cursor.read_str()
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # layer
        net = cursor.read_str()
        self.pins.append(
            Pin(
                part=len(self.parts),
                name=pin_name,
                pos=Point(_mils(x), _mils(y)),
                net=net,
                side=PinSide[side.name],
            )
        )
        self.parts[-1].end_of_pins = len(self.pins)
        return previous_name

    def _read_nail(self, cursor: LineCursor) -> None:
        _next_field(cursor)
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # type
        cursor.read_str()  # grid
        side = PartMountingSide.TOP if cursor.read_str() == "(T)" else PartMountingSide.BOTTOM
        cursor.read_str()  # net id
        net = cursor.read_str()
        self.nails.append(Nail(pos=Point(_mils(x), _mils(y)), side=side, net=net))