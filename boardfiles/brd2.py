"""Reader for the BRD2 (BRDOUT/NETS/PARTS/PINS/NAILS) board format."""

from __future__ import annotations

import logging
from dataclasses import replace
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
)

logger = logging.getLogger(__name__)


class _Block(Enum):
    NONE = 0
    FORMAT = 1
    NETS = 2
    PARTS = 3
    PINS = 4
    NAILS = 5


def _ensure(condition: bool, message: str) -> None:
    if not condition:
        raise BoardFormatError(message)


def _side_code(code: int, top, bottom, both):
    if code == 1:
        return top
    if code == 2:
        return bottom
    return both


class BRD2File(BoardFile):
    """A board read from a BRD2 file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        return b"BRDOUT:" in data and b"NETS:" in data

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        nets: dict[int, str] = {}
        num_nets = 0
        max_x = max_y = 0
        block = _Block.NONE

        for line in self._lines(data):
            if not line:
                continue
            cursor = LineCursor(line)

            if line.startswith("BRDOUT:"):
                block = _Block.FORMAT
                cursor.skip(7)
                self.num_format = cursor.read_uint()
                max_x = cursor.read_int()
                max_y = cursor.read_int()
                continue
            if line.startswith("NETS:"):
                block = _Block.NETS
                cursor.skip(5)
                num_nets = cursor.read_uint()
                continue
            if line.startswith("PARTS:"):
                block = _Block.PARTS
                cursor.skip(6)
                self.num_parts = cursor.read_uint()
                continue
            if line.startswith("PINS:"):
                block = _Block.PINS
                cursor.skip(5)
                self.num_pins = cursor.read_uint()
                continue
            if line.startswith("NAILS:"):
                block = _Block.NAILS
                cursor.skip(6)
                self.num_nails = cursor.read_uint()
                continue

            if block is _Block.FORMAT:
                _ensure(len(self.format) < self.num_format, "more outline points than declared")
                point = Point(cursor.read_int(), cursor.read_int())
                _ensure(point.x <= max_x, "outline point beyond board width")
                _ensure(point.y <= max_y, "outline point beyond board height")
                self.format.append(point)
            elif block is _Block.NETS:
                _ensure(len(nets) < num_nets, "more nets than declared")
                net_id = cursor.read_uint()
                nets[net_id] = cursor.read_str()
            elif block is _Block.PARTS:
                _ensure(len(self.parts) < self.num_parts, "more parts than declared")
                name = cursor.read_str()
                p1 = Point(cursor.read_int(), cursor.read_int())
                p2 = Point(cursor.read_int(), cursor.read_int())
                first_pin = cursor.read_uint()  # index of the part's first pin
                side = _side_code(
                    cursor.read_uint(),
                    PartMountingSide.TOP,
                    PartMountingSide.BOTTOM,
                    PartMountingSide.BOTH,
                )
                self.parts.append(
                    Part(
                        name=name,
                        p1=p1,
                        p2=p2,
                        end_of_pins=first_pin,
                        part_type=PartType.SMD,
                        mounting_side=side,
                    )
                )
            elif block is _Block.PINS:
                _ensure(len(self.pins) < self.num_pins, "more pins than declared")
                pos = Point(cursor.read_int(), cursor.read_int())
                net_id = cursor.read_uint()
                side = _side_code(cursor.read_uint(), PinSide.TOP, PinSide.BOTTOM, PinSide.BOTH)
                self.pins.append(
                    Pin(pos=pos, side=side, net=nets.get(net_id, ""), probe=1, part=0)
                )
            elif block is _Block.NAILS:
                _ensure(len(self.nails) < self.num_nails, "more nails than declared")
                probe = cursor.read_uint()
                x = cursor.read_int()
                y = cursor.read_int()
                net_id = cursor.read_uint()
                net = nets.get(net_id)
                if net is None:
                    net = "UNCONNECTED"
                    logger.warning("Missing net id: %d", net_id)
                if cursor.read_uint() == 1:
                    nail = Nail(probe=probe, pos=Point(x, y), side=PartMountingSide.TOP, net=net)
                else:
                    nail = Nail(
                        probe=probe,
                        pos=Point(x, max_y - y),
                        side=PartMountingSide.BOTTOM,
                        net=net,
                    )
                self.nails.append(nail)

        if block is _Block.NONE:
            raise BoardFormatError("no BRD2 sections found")

        _ensure(self.num_format == len(self.format), "outline point count mismatch")
        _ensure(num_nets == len(nets), "net count mismatch")
        _ensure(self.num_parts == len(self.parts), "part count mismatch")
        _ensure(self.num_pins == len(self.pins), "pin count mismatch")
        _ensure(self.num_nails == len(self.nails), "nail count mismatch")

        self._assign_pins(max_y)

        # Dummy parts carrying the probe points: bottom first, then top.
        self.parts.append(Part(name="...", mounting_side=PartMountingSide.BOTTOM))
        self.parts.append(Part(name="...", mounting_side=PartMountingSide.TOP))
        self.add_nails_as_pins()

    def _assign_pins(self, max_y: int) -> None:
        pin_index = 0
        for number, part in enumerate(self.parts, start=1):
            if part.mounting_side is PartMountingSide.BOTTOM:
                part.p1 = replace(part.p1, y=max_y - part.p1.y)
                part.p2 = replace(part.p2, y=max_y - part.p2.y)

            if number == len(self.parts):
                pin_end = len(self.pins)
            else:
                pin_end = self.parts[number].end_of_pins
            if pin_end > len(self.pins):
                raise BoardFormatError(f"part {part.name} refers past the last pin")

            through_hole = True
            for pin in self.pins[pin_index:pin_end]:
                pin.part = number
                if pin.side is not PinSide.TOP:
                    pin.pos = replace(pin.pos, y=max_y - pin.pos.y)
                if (pin.side is PinSide.TOP and part.mounting_side is PartMountingSide.TOP) or (
                    pin.side is PinSide.BOTTOM and part.mounting_side is PartMountingSide.BOTTOM
                ):
                    through_hole = False
            pin_index = max(pin_index, pin_end)

            if through_hole:
                part.part_type = PartType.THROUGH_HOLE
                part.mounting_side = PartMountingSide.BOTH
            else:
                part.part_type = PartType.SMD