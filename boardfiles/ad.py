"""Reader for ASCII Altium (Protel Advanced PCB) board exports."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

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
    arc_to_segments,
)

_ITEM_RE = re.compile(r"[ \t\n\v\f\r]*([^ \t\n\v\f\r|]*)")


@dataclass
class ADNet:
    """A net record; ids are shifted by one so that zero means no net."""

    id: int = 0
    name: str = ""


@dataclass
class ADPart:
    """A component record as read from the file."""

    name: str = ""
    description: str | None = None
    layer: str = ""
    part_id: int = 0
    x: float = 0.0
    y: float = 0.0
    orientation: float = 0.0


@dataclass
class ADPad:
    """A pad record as read from the file."""

    id: int = 0
    net_id: int = 0
    part_id: int = 0
    snum: str | None = None
    x: float = 0.0
    y: float = 0.0
    drill: float = 0.0
    radius: float = 0.0
    x_size: float = 0.0
    y_size: float = 0.0
    rotation: float = 0.0
    type: int = 0  # 0 = SMD, 1 = through hole
    unique_id: str | None = None
    layer: str | None = None


class _Block(Enum):
    NONE = 0
    NETS = 2
    COMPONENTS = 3
    PADS = 4
    TRACKS = 5
    ARC = 6


# Later entries win when a line names several record kinds.
_RECORDS = (
    ("RECORD=Track", _Block.TRACKS),
    ("RECORD=Net", _Block.NETS),
    ("RECORD=Component", _Block.COMPONENTS),
    ("RECORD=Pad", _Block.PADS),
    ("RECORD=Arc", _Block.ARC),
)


def _find(cursor: LineCursor, key: str, *, from_start: bool = False) -> bool:
    """Place the cursor just after key; report whether it was found."""
    index = cursor.text.find(key, 0 if from_start else cursor.pos)
    if index < 0:
        return False
    cursor.pos = index + len(key)
    return True


def _require(cursor: LineCursor, key: str, *, from_start: bool = False) -> None:
    if not _find(cursor, key, from_start=from_start):
        raise BoardFormatError(f"record is missing {key!r}: {cursor.text}")


def _read_item(cursor: LineCursor) -> str:
    """Read a value ending at whitespace or '|' without moving the cursor."""
    match = _ITEM_RE.match(cursor.text, cursor.pos)
    assert match is not None
    return match.group(1)


def _pin_number(pin: Pin) -> float:
    return LineCursor(pin.snum or "").read_double()


class ADFile(BoardFile):
    """A board read from an ASCII Altium PCB file."""

    @staticmethod
    def verify_format(buf: bytes) -> bool:
        data = bytes(buf)
        return b"|KIND=Protel_Advanced_PCB" in data and b"Binary" not in data

    def __init__(self, buf: bytes) -> None:
        super().__init__()
        data = self._require_size(buf)
        self.ad_nets: list[ADNet] = []
        self.ad_parts: list[ADPart] = []
        self.ad_pads: list[ADPad] = []

        block = _Block.NONE
        net_count = 0
        for line in self._lines(data):
            if not line:
                continue
            for marker, kind in _RECORDS:
                if marker in line:
                    block = kind

            if block is _Block.ARC:
                self._parse_arc(line)
            elif block is _Block.TRACKS:
                if not self._parse_track(line):
                    block = _Block.NONE
            elif block is _Block.NETS:
                self._parse_net(line)
                net_count += 1
                block = _Block.NONE
            elif block is _Block.COMPONENTS:
                self._parse_component(line)
                block = _Block.NONE
            elif block is _Block.PADS:
                self._parse_pad(line)
                block = _Block.NONE

        # The format has no "not connected" net, so one is added at the end.
        self.ad_nets.append(ADNet(id=net_count + 1, name="NC"))
        self._build_board()
        self.update_counts()

    def _parse_arc(self, line: str) -> None:
        cursor = LineCursor(line)
        if not _find(cursor, "|LAYER=", from_start=True) or _read_item(cursor) != "KEEPOUT":
            return
        if not _find(cursor, "LOCATION.X=", from_start=True):
            return
        cx = int(cursor.read_double())
        if not _find(cursor, "LOCATION.Y="):
            return
        cy = int(cursor.read_double())
        if not _find(cursor, "RADIUS="):
            return
        radius = cursor.read_double()
        if not _find(cursor, "STARTANGLE="):
            return
        start = math.radians(cursor.read_double())
        if not _find(cursor, "ENDANGLE="):
            return
        end = math.radians(cursor.read_double())

        center = Point(cx, cy)
        p1 = Point(int(cx + radius * math.cos(start)), int(cy + radius * math.sin(start)))
        p2 = Point(int(cx + radius * math.cos(end)), int(cy + radius * math.sin(end)))
        self.outline_segments.extend(arc_to_segments(start, end, radius, p1, p2, center))

    def _parse_track(self, line: str) -> bool:
        """Read a track; return True when the track block stays open."""
        cursor = LineCursor(line)
        layer = _read_item(cursor) if _find(cursor, "|LAYER=", from_start=True) else ""
        if not _find(cursor, "X1=", from_start=True):
            return False
        x1 = int(cursor.read_double())
        if not _find(cursor, "Y1="):
            return False
        y1 = int(cursor.read_double())
        if not _find(cursor, "X2="):
            return False
        x2 = int(cursor.read_double())
        if not _find(cursor, "Y2="):
            return False
        y2 = int(cursor.read_double())

        if layer == "KEEPOUT":
            # The keepout layer usually holds the board outline.
            self.outline_segments.append((Point(x1, y1), Point(x2, y2)))
            return False
        if "OVERLAY" in layer or layer.startswith("MECHANICAL"):
            return False
        return True

    def _parse_net(self, line: str) -> None:
        cursor = LineCursor(line)
        _require(cursor, "|ID=", from_start=True)
        net_id = cursor.read_int() + 1
        _require(cursor, "|NAME=")
        self.ad_nets.append(ADNet(id=net_id, name=_read_item(cursor)))

    def _parse_component(self, line: str) -> None:
        cursor = LineCursor(line)
        if not _find(cursor, "|ID=", from_start=True):
            return
        part = ADPart(part_id=cursor.read_int() + 1)
        _require(cursor, "|LAYER=")
        part.layer = _read_item(cursor)
        _require(cursor, "|X=")
        part.x = cursor.read_double()
        _require(cursor, "|Y=")
        part.y = cursor.read_double()
        _require(cursor, "|ROTATION=")
        part.orientation = cursor.read_double()
        if _find(cursor, "|SOURCEDESIGNATOR="):
            part.name = _read_item(cursor)
            if _find(cursor, "|SOURCEDESCRIPTION="):
                part.description = _read_item(cursor)
        else:
            part.name = f"UNKNOWN-{part.part_id}"
        self.ad_parts.append(part)

    def _parse_pad(self, line: str) -> None:
        cursor = LineCursor(line)
        pad = ADPad()
        got_net = _find(cursor, "|NET=", from_start=True)
        if got_net:
            pad.net_id = cursor.read_int() + 1
        if _find(cursor, "|NAME=", from_start=True):
            pad.snum = _read_item(cursor)
        if not _find(cursor, "|COMPONENT=", from_start=True):
            return
        pad.part_id = cursor.read_int() + 1
        if not got_net:
            pad.net_id = 0
        if not _find(cursor, "|X=", from_start=True):
            return
        pad.x = cursor.read_double()
        if not _find(cursor, "|Y=", from_start=True):
            return
        pad.y = cursor.read_double()

        if _find(cursor, "|ROTATION=", from_start=True):
            value = cursor.rest().split("|", 1)[0]
            pad.rotation = LineCursor(value).read_double()
        if _find(cursor, "|XSIZE=", from_start=True):
            pad.x_size = cursor.read_double()
        if _find(cursor, "|YSIZE=", from_start=True):
            pad.y_size = cursor.read_double()
        if _find(cursor, "|INDEXFORSAVE=", from_start=True):
            pad.id = cursor.read_int()
        if _find(cursor, "|UNIQUEID=", from_start=True):
            pad.unique_id = _read_item(cursor)
        if _find(cursor, "|LAYER=", from_start=True):
            pad.layer = _read_item(cursor)
            if pad.layer == "MULTILAYER":
                pad.type = 1

        if pad.x_size > 0.0 and pad.y_size > 0.0:
            pad.radius = min(pad.x_size, pad.y_size) / 2
        self.ad_pads.append(pad)

    def _build_board(self) -> None:
        no_net = len(self.ad_nets)
        for ad_part in self.ad_parts:
            if not ad_part.name:
                ad_part.name = "UNKNOWN"
            if ad_part.layer == "TOP":
                side = PartMountingSide.TOP
            elif ad_part.layer == "BOTTOM":
                side = PartMountingSide.BOTTOM
            else:
                side = PartMountingSide.BOTH
            part = Part(name=ad_part.name, mounting_side=side)

            for pad in self.ad_pads:
                if pad.part_id != ad_part.part_id:
                    continue
                net_id = pad.net_id or no_net
                net = next((n.name for n in self.ad_nets if n.id == net_id), "UNCONNECTED")
                if pad.type == 1:
                    part.part_type = PartType.THROUGH_HOLE
                self.pins.append(
                    Pin(
                        part=ad_part.part_id,
                        pos=Point(int(pad.x), int(pad.y)),
                        net=net,
                        snum=pad.snum,
                        radius=pad.radius,
                        side=PinSide[side.name],
                    )
                )
            part.end_of_pins = len(self.pins)
            self.parts.append(part)

        self.pins.sort(key=_pin_number)