"""Reader for the binary CST board format."""

from __future__ import annotations

import struct

from .base import (
    BoardFile,
    BoardFormatError,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    decode_text,
    outline_from_pins,
)

_LAYER_TOP = 0x0C
_LAYER_BOTTOM = 0x01
_PIN_SECTION = b"CPad"


class _Reader:
    """Little-endian reader over a mutable byte buffer."""

    def __init__(self, data: bytearray) -> None:
        self.data = data
        self.pos = 0

    def _need(self, count: int) -> None:
        if count < 0 or self.pos < 0 or self.pos + count > len(self.data):
            raise BoardFormatError("unexpected end of CST data")

    def short(self) -> int:
        self._need(2)
        (value,) = struct.unpack_from("<h", self.data, self.pos)
        self.pos += 2
        return value

    def byte(self) -> int:
        self._need(1)
        value = self.data[self.pos]
        self.pos += 1
        return value - 256 if value > 127 else value

    def take(self, count: int) -> bytes:
        self._need(count)
        chunk = bytes(self.data[self.pos : self.pos + count])
        self.pos += count
        return chunk

    def skip(self, count: int) -> None:
        self.pos += count


def _count(value: int, what: str) -> int:
    if value < 0:
        raise BoardFormatError(f"negative {what} count: {value}")
    return value


class CSTFile(BoardFile):
    """A board read from a CST file."""

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = bytearray(self._require_size(buf))
        reader = _Reader(data)

        num_parts = _count(reader.short(), "part")
        reader.skip(4)  # section signature
        reader.take(reader.short())  # section name
        for _ in range(num_parts):
            name = decode_text(reader.take(reader.byte()))
            reader.skip(4)
            layer = reader.byte()
            if layer == _LAYER_TOP:
                side = PartMountingSide.TOP
            elif layer == _LAYER_BOTTOM:
                side = PartMountingSide.BOTTOM
            else:
                side = PartMountingSide.BOTH
            self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side))
            reader.skip(6)

        # The net count sits in the last two bytes of the final part record.
        reader.skip(-2)
        num_nets = _count(reader.short(), "net")
        self.nets: list[str] = [
            decode_text(reader.take(reader.byte())) for _ in range(num_nets)
        ]
        # The byte following the last net name is treated as its terminator.
        if 0 <= reader.pos < len(data):
            data[reader.pos] = 0

        # Pins without a part are attached to this dummy part.
        self.parts.append(
            Part(
                name="...",
                mounting_side=PartMountingSide.BOTH,
                part_type=PartType.THROUGH_HOLE,
            )
        )

        marker = data.find(_PIN_SECTION, max(reader.pos, 0))
        if marker < 0:
            raise BoardFormatError("CST file has no CPad section")
        reader.pos = marker - 8
        num_pins = _count(reader.short(), "pin")
        reader.skip(10)

        for _ in range(num_pins):
            part_id = reader.short()
            part = part_id + 1 if part_id >= 0 else len(self.parts)
            probe = reader.short()
            net_id = reader.short()
            if not 0 <= net_id < len(self.nets):
                raise BoardFormatError(f"pin refers to unknown net {net_id}")
            x = reader.short()
            y = reader.short()
            reader.short()  # shape index
            reader.skip(4)
            if part > len(self.parts):
                raise BoardFormatError(f"pin refers to unknown part {part}")
            self.pins.append(
                Pin(
                    part=part,
                    probe=probe,
                    net=self.nets[net_id],
                    pos=_point(x, y),
                    side=PinSide[self.parts[part - 1].mounting_side.name],
                )
            )

        self.format = outline_from_pins(self.pins)
        self.update_counts()


def _point(x: int, y: int):
    from .base import Point

    return Point(x, y)