"""Reader for the plain and obfuscated BRD formats, and Allegro detection."""

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
)

SIGNATURE = bytes((0x23, 0xE2, 0x63, 0x28))

ALLEGRO_MESSAGE = "Allegro format is not supported. Please use Allegro® FREE Physical Viewer."


def decode_brd(data: bytes) -> bytes:
    """Undo the BRD byte obfuscation; line breaks and NUL bytes are kept."""
    return bytes(
        b if b in (0x0D, 0x0A, 0x00) else ~(((b >> 6) & 3) | (b << 2)) & 0xFF for b in data
    )


class _Block(Enum):
    NONE = 0
    STR_LENGTH = 1
    VAR_DATA = 2
    FORMAT = 3
    PARTS = 4
    PINS = 5
    NAILS = 6


_HEADERS = {
    "str_length:": _Block.STR_LENGTH,
    "var_data:": _Block.VAR_DATA,
    "Format:": _Block.FORMAT,
    "format:": _Block.FORMAT,
    "Parts:": _Block.PARTS,
    "Pins1:": _Block.PARTS,
    "Pins:": _Block.PINS,
    "Pins2:": _Block.PINS,
    "Nails:": _Block.NAILS,
}


def _ensure(condition: bool, message: str) -> None:
    if not condition:
        raise BoardFormatError(message)


class BRDFile(BoardFile):
    """A board read from a BRD file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        if data[: len(SIGNATURE)] == SIGNATURE:
            return True
        return b"str_length:" in data and b"var_data:" in data

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        if data.startswith(SIGNATURE):
            data = decode_brd(data)

        block = _Block.NONE
        for line in self._lines(data):
            if not line:
                continue
            header = _HEADERS.get(line)
            if header is not None:
                block = header
                continue
            cursor = LineCursor(line)
            if block is _Block.VAR_DATA:
                self.num_format = cursor.read_uint()
                self.num_parts = cursor.read_uint()
                self.num_pins = cursor.read_uint()
                self.num_nails = cursor.read_uint()
            elif block is _Block.FORMAT:
                self._read_point(cursor)
            elif block is _Block.PARTS:
                self._read_part(cursor)
            elif block is _Block.PINS:
                self._read_pin(cursor)
            elif block is _Block.NAILS:
                self._read_nail(cursor)

        if block is _Block.NONE:
            raise BoardFormatError("no BRD sections found")
        self._resolve_pins()

    def _read_point(self, cursor: LineCursor) -> None:
        _ensure(len(self.format) < self.num_format, "more outline points than declared")
        x = cursor.read_int()
        y = cursor.read_int()
        self.format.append(Point(x, y))

    def _read_part(self, cursor: LineCursor) -> None:
        _ensure(len(self.parts) < self.num_parts, "more parts than declared")
        part = Part(name=cursor.read_str())
        kind = cursor.read_uint()  # type and layer combined
        part.part_type = PartType.SMD if kind & 0xC else PartType.THROUGH_HOLE
        if kind == 1 or 4 <= kind < 8:
            part.mounting_side = PartMountingSide.TOP
        if kind == 2 or kind >= 8:
            part.mounting_side = PartMountingSide.BOTTOM
        part.end_of_pins = cursor.read_uint()
        _ensure(part.end_of_pins <= self.num_pins, "part refers past the last pin")
        self.parts.append(part)

    def _read_pin(self, cursor: LineCursor) -> None:
        _ensure(len(self.pins) < self.num_pins, "more pins than declared")
        x = cursor.read_int()
        y = cursor.read_int()
        probe = cursor.read_int()  # may be negative
        part = cursor.read_uint()
        _ensure(part <= self.num_parts, "pin refers to an unknown part")
        self.pins.append(Pin(pos=Point(x, y), probe=probe, part=part, net=cursor.read_str()))

    def _read_nail(self, cursor: LineCursor) -> None:
        _ensure(len(self.nails) < self.num_nails, "more nails than declared")
        probe = cursor.read_uint()
        x = cursor.read_int()
        y = cursor.read_int()
        side = PartMountingSide.TOP if cursor.read_uint() == 1 else PartMountingSide.BOTTOM
        self.nails.append(Nail(probe=probe, pos=Point(x, y), side=side, net=cursor.read_str()))

    def _resolve_pins(self) -> None:
        # Some variants leave pin nets empty; the nail on the same probe names them.
        nets_by_probe = {nail.probe: nail.net for nail in self.nails}
        for pin in self.pins:
            if pin.net == "":
                pin.net = nets_by_probe.get(pin.probe, "")
            if not 1 <= pin.part <= len(self.parts):
                raise BoardFormatError(f"pin refers to missing part {pin.part}")
            pin.side = PinSide[self.parts[pin.part - 1].mounting_side.name]


class AllegroFile(BoardFile):
    """Allegro board files are recognised but cannot be read."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        return len(data) >= 0xFA and data[0xF8:0xFB] in (b"all", b"vie")

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        raise BoardFormatError(ALLEGRO_MESSAGE)