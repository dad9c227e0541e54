"""Reader for the BVR3 (BVRAW_FORMAT_3) keyword-based board format."""

from __future__ import annotations

from collections.abc import Iterable

from .base import (
    BoardFile,
    BoardFormatError,
    LineCursor,
    Part,
    PartMountingSide,
    PartType,
    Pin,
    PinSide,
    Point,
)

_PART_SIDES = {"T": PartMountingSide.TOP, "B": PartMountingSide.BOTTOM, "O": PartMountingSide.BOTH}
_PIN_SIDES = {"T": PinSide.TOP, "B": PinSide.BOTTOM, "O": PinSide.BOTH}


def manhattan_distance(p1: Point, p2: Point) -> int:
    """Sum of the absolute coordinate differences."""
    return abs(p1.x - p2.x) + abs(p1.y - p2.y)


def order_outline_segments(segments: Iterable[tuple[Point, Point]]) -> list[Point]:
    """Chain loose outline segments into a path of points.

    Segments sharing an end point are joined first; otherwise the nearest
    segment is taken, unless the path's start is nearer, which closes it.
    """
    remaining = list(segments)
    if not remaining:
        return []
    start, end = remaining.pop(0)
    path = [start, end]

    while start != end and remaining:
        for index, (first, second) in enumerate(remaining):
            if end == first:
                end = second
                break
            if end == second:
                end = first
                break
        else:
            index = None
        if index is not None:
            path.append(end)
            del remaining[index]
            continue

        index, (first, second) = min(
            enumerate(remaining),
            key=lambda item: min(
                manhattan_distance(end, item[1][0]), manhattan_distance(end, item[1][1])
            ),
        )
        start_distance = manhattan_distance(end, start)
        first_distance = manhattan_distance(end, first)
        second_distance = manhattan_distance(end, second)
        if start_distance <= first_distance and start_distance <= second_distance:
            path.append(start)
            break
        if first_distance <= second_distance:
            path.extend((first, second))
            end = second
        else:
            path.extend((second, first))
            end = first
        del remaining[index]

    return path


def _read_point(cursor: LineCursor) -> Point:
    x = cursor.read_double()
    y = cursor.read_double()
    return Point(int(x), int(y))


class BVR3File(BoardFile):
    """A board read from a BVR3 file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        return b"BVRAW_FORMAT_3" in bytes(buf)

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        part = Part()
        pin = Pin()

        for line in self._lines(data):
            if not line:
                continue
            cursor = LineCursor(line)

            def value(prefix: str) -> LineCursor | None:
                if line.startswith(prefix):
                    cursor.skip(len(prefix))
                    return cursor
                return None

            # PART_ORIGIN, PART_OUTLINE_RELATIVE, PIN_ID, PIN_TYPE, PIN_COMMENT and
            # PIN_OUTLINE_RELATIVE carry nothing the board model keeps.
            if value("PART_NAME "):
                part.name = cursor.read_str()
            elif value("PART_SIDE "):
                part.mounting_side = _PART_SIDES.get(cursor.read_str(), part.mounting_side)
            elif value("PART_MOUNT "):
                smd = cursor.read_str() == "SMD"
                part.part_type = PartType.SMD if smd else PartType.THROUGH_HOLE
            elif value("PIN_NUMBER "):
                pin.snum = cursor.read_str()
            elif value("PIN_NAME "):
                pin.name = cursor.read_str()
            elif value("PIN_SIDE "):
                pin.side = _PIN_SIDES.get(cursor.read_str(), pin.side)
            elif value("PIN_ORIGIN "):
                pin.pos = _read_point(cursor)
            elif value("PIN_RADIUS "):
                pin.radius = cursor.read_double()
            elif value("PIN_NET "):
                pin.net = cursor.read_str()
            elif line == "PIN_END":
                pin.part = len(self.parts) + 1
                self.pins.append(pin)
                pin = Pin()
            elif line == "PART_END":
                part.end_of_pins = len(self.pins)
                self.parts.append(part)
                part = Part()
            elif value("OUTLINE_POINTS "):
                self.format.extend(self._read_points(cursor))
            elif value("OUTLINE_SEGMENTED "):
                self.format.extend(order_outline_segments(self._read_segments(cursor)))

        self.update_counts()
        if not (self.num_parts > 0 or self.num_format > 0):
            raise BoardFormatError("no parts or outline found")

    @staticmethod
    def _read_points(cursor: LineCursor) -> list[Point]:
        points = []
        while cursor.rest():
            before = cursor.pos
            point = _read_point(cursor)
            if cursor.pos == before:
                break
            points.append(point)
        return points

    @staticmethod
    def _read_segments(cursor: LineCursor) -> list[tuple[Point, Point]]:
        segments = []
        while cursor.rest():
            before = cursor.pos
            first = _read_point(cursor)
            second = _read_point(cursor)
            if cursor.pos == before:
                break
            segments.append((first, second))
        return segments