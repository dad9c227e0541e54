"""Reader for the CAD board format (COMP / C_PIN / NET / N_VIA records)."""

from __future__ import annotations

from enum import Enum

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
    outline_from_pins,
)

_MULTIPLIER = 1000.0


class _Block(Enum):
    INVALID = 0
    NONE = 1
    PARTS = 2
    PINS = 3
    NETS = 4
    VIAS = 5


_RECORDS = (
    ("COMP", _Block.PARTS),
    ("C_PIN", _Block.PINS),
    ("NET ", _Block.NETS),
    ("N_VIA", _Block.VIAS),
)


def _net_name(name: str) -> str:
    """Net names holding a '/' lose their first character."""
    return name[1:] if "/" in name else name


def _scaled(value: float) -> int:
    return int(value * _MULTIPLIER)


class CADFile(BoardFile):
    """A board read from a CAD file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        return b"###Panel Added" in data and b"C_PIN" in data

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        part_ids: dict[str, int] = {}
        via_net = "UNCONNECTED"
        block = _Block.NONE

        for line in self._lines(data):
            if not line:
                continue
            block = next(
                (kind for prefix, kind in _RECORDS if line.startswith(prefix)), _Block.INVALID
            )
            cursor = LineCursor(line)
            if block is _Block.PARTS:
                self._read_part(cursor, part_ids)
            elif block is _Block.PINS:
                self._read_pin(cursor, part_ids)
            elif block is _Block.NETS:
                cursor.read_str()  # record type
                via_net = _net_name(cursor.read_str())
            elif block is _Block.VIAS:
                self._read_via(cursor, via_net)

        if block is _Block.NONE:
            raise BoardFormatError("no CAD records found")
        self.format = outline_from_pins(self.pins)
        self.update_counts()

    def _read_part(self, cursor: LineCursor, part_ids: dict[str, int]) -> None:
        cursor.read_str()  # record type
        name = cursor.read_str()
        for _ in range(5):  # part number, two unknown fields, x, y
            cursor.read_str()
        top = cursor.read_str() == "1"  # 1 = top, 2 = bottom
        cursor.read_str()
        self.parts.append(
            Part(
                name=name,
                part_type=PartType.SMD,
                mounting_side=PartMountingSide.TOP if top else PartMountingSide.BOTTOM,
            )
        )
        part_ids[name] = len(self.parts)

    def _read_pin(self, cursor: LineCursor, part_ids: dict[str, int]) -> None:
        cursor.read_str()  # record type
        part_name = cursor.read_str().split("-", 1)[0]
        try:
            part = part_ids[part_name]
        except KeyError:
            raise BoardFormatError(f"pin refers to unknown part {part_name!r}") from None
        x = cursor.read_double()
        y = cursor.read_double()
        for _ in range(3):
            cursor.read_double()
        cursor.read_str()
        net = _net_name(cursor.read_str())
        self.pins.append(
            Pin(
                part=part,
                pos=Point(_scaled(x), _scaled(y)),
                net=net,
                side=PinSide[self.parts[part - 1].mounting_side.name],
            )
        )

    def _read_via(self, cursor: LineCursor, net: str) -> None:
        cursor.read_str()  # record type
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_str()
        side = PartMountingSide.TOP if cursor.read_double() == 1 else PartMountingSide.BOTTOM
        cursor.read_double()
        self.nails.append(Nail(pos=Point(_scaled(x), _scaled(y)), side=side, net=net))