"""Common data model and text-scanning helpers shared by the board file parsers."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

ARC_SLICE_ANGLE_RAD = 0.1
OUTLINE_MARGIN = 20

_WHITESPACE = " \t\n\v\f\r"
_INT_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_FLOAT_RE = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_STR_RE = re.compile(r"[ \t\n\v\f\r]*([^ \t\n\v\f\r]*)")


class BoardFormatError(ValueError):
    """Raised when a board file cannot be parsed."""


@dataclass(frozen=True)
class Point:
    """A board coordinate in mils."""

    x: int = 0
    y: int = 0


class PartMountingSide(Enum):
    BOTH = 0
    BOTTOM = 1
    TOP = 2


class PartType(Enum):
    SMD = 0
    THROUGH_HOLE = 1


class PinSide(Enum):
    BOTH = 0
    BOTTOM = 1
    TOP = 2


@dataclass
class Part:
    name: str | None = None
    mfgcode: str = ""
    mounting_side: PartMountingSide = PartMountingSide.BOTH
    part_type: PartType = PartType.SMD
    end_of_pins: int = 0
    p1: Point = Point()
    p2: Point = Point()


@dataclass
class Pin:
    pos: Point = Point()
    probe: int = 0
    part: int = 0
    side: PinSide = PinSide.BOTH
    net: str = "UNCONNECTED"
    radius: float = 0.5
    snum: str | None = None
    name: str | None = None

    def __lt__(self, other: Pin) -> bool:
        """Order by part number, then by pin number."""
        if self.part == other.part:
            return (self.snum or "") < (other.snum or "")
        return self.part < other.part


@dataclass
class Nail:
    probe: int = 0
    pos: Point = Point()
    side: PartMountingSide = PartMountingSide.BOTH
    net: str = "UNCONNECTED"


def split_lines(buffer: str) -> list[str]:
    """Split text into lines; a pair of break characters counts as one break.

    Scanning stops at the first NUL character.
    """
    nul = buffer.find("\0")
    if nul >= 0:
        buffer = buffer[:nul]
    size = len(buffer)
    lines: list[str] = []
    start = 0
    i = 0
    while i < size:
        if buffer[i] in "\r\n":
            lines.append(buffer[start:i])
            i += 1
            if i < size and buffer[i] in "\r\n":
                i += 1
            if i >= size:
                return lines
            start = i
        i += 1
    lines.append(buffer[start:])
    return lines


def decode_text(raw: bytes) -> str:
    """Decode bytes as UTF-8, falling back to Latin-1 for invalid input."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def arc_to_segments(
    start_angle: float, end_angle: float, radius: float, p1: Point, p2: Point, center: Point
) -> list[tuple[Point, Point]]:
    """Approximate an arc from p1 to p2 around center by straight segments."""
    segments: list[tuple[Point, Point]] = []
    previous = current = p1
    angle = start_angle + ARC_SLICE_ANGLE_RAD
    while angle < end_angle:
        current = Point(
            int(center.x + radius * math.cos(angle)),
            int(center.y + radius * math.sin(angle)),
        )
        segments.append((previous, current))
        previous = current
        angle += ARC_SLICE_ANGLE_RAD
    segments.append((current, p2))
    return segments


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points."""
    return math.sqrt((p1.x - p2.x) ** 2 + (p1.y - p2.y) ** 2)


def outline_from_pins(pins: list[Pin]) -> list[Point]:
    """Build a closed rectangular outline around all pins plus a margin."""
    if not pins:
        raise BoardFormatError("no pins to derive a board outline from")
    min_x = min(pin.pos.x for pin in pins) - OUTLINE_MARGIN
    max_x = max(pin.pos.x for pin in pins) + OUTLINE_MARGIN
    min_y = min(pin.pos.y for pin in pins) - OUTLINE_MARGIN
    max_y = max(pin.pos.y for pin in pins) + OUTLINE_MARGIN
    return [
        Point(min_x, min_y),
        Point(max_x, min_y),
        Point(max_x, max_y),
        Point(min_x, max_y),
        Point(min_x, min_y),
    ]


class LineCursor:
    """Reads whitespace-separated fields from a single line of text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _match(self, pattern: re.Pattern[str]) -> str | None:
        match = pattern.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group(1)

    def read_int(self) -> int:
        """Read a decimal integer; yields 0 without moving if none is present."""
        value = self._match(_INT_RE)
        return int(value) if value is not None else 0

    def read_uint(self) -> int:
        """Read a decimal integer that must not be negative."""
        value = self.read_int()
        if value < 0:
            raise BoardFormatError(f"expected a non-negative integer, got {value}")
        return value

    def read_double(self) -> float:
        """Read a floating point number; yields 0.0 without moving if none is present."""
        value = self._match(_FLOAT_RE)
        return float(value) if value is not None else 0.0

    def read_str(self) -> str:
        """Read the next whitespace-delimited word and skip its delimiter."""
        match = _STR_RE.match(self.text, self.pos)
        assert match is not None
        self.pos = min(match.end() + 1, len(self.text))
        return match.group(1)

    def skip(self, count: int) -> None:
        """Move forward by count characters."""
        self.pos = min(self.pos + count, len(self.text))

    def rest(self) -> str:
        """The text not yet consumed."""
        return self.text[self.pos:]


class BoardFile:
    """Parsed contents of a board file: outline, parts, pins and nails."""

    def __init__(self) -> None:
        self.num_format = 0
        self.num_parts = 0
        self.num_pins = 0
        self.num_nails = 0
        self.format: list[Point] = []
        self.outline_segments: list[tuple[Point, Point]] = []
        self.parts: list[Part] = []
        self.pins: list[Pin] = []
        self.nails: list[Nail] = []

    def add_nails_as_pins(self) -> None:
        """Append one pin per nail, attached to the trailing dummy parts."""
        for nail in self.nails:
            if nail.side is PartMountingSide.BOTH:
                part, side = len(self.parts), PinSide.BOTH
            elif nail.side is PartMountingSide.TOP:
                part, side = len(self.parts), PinSide.TOP
            else:
                part, side = len(self.parts) - 1, PinSide.BOTTOM
            self.pins.append(Pin(pos=nail.pos, part=part, side=side, probe=nail.probe, net=nail.net))

    def update_counts(self) -> None:
        """Set the element counters from the collected lists."""
        self.num_parts = len(self.parts)
        self.num_pins = len(self.pins)
        self.num_format = len(self.format)
        self.num_nails = len(self.nails)

    @staticmethod
    def _require_size(buf: bytes) -> bytes:
        data = bytes(buf)
        if len(data) <= 4:
            raise BoardFormatError("file is too small to be a board file")
        return data

    @staticmethod
    def _lines(data: bytes) -> list[str]:
        """Split raw bytes into decoded lines with leading whitespace removed."""
        return [
            decode_text(line.encode("latin-1")).lstrip(_WHITESPACE)
            for line in split_lines(data.decode("latin-1"))
        ]