"""Reader for boards split across format.asc, pins.asc and nails.asc files."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from itertools import islice
from pathlib import Path

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

_WHITESPACE = " \t\n\v\f\r"

Parser = Callable[[LineCursor, Iterator[str]], None]


def _skip(lines: Iterator[str], count: int) -> None:
    next(islice(lines, count, count), None)


def _read_str2(cursor: LineCursor) -> str:
    """Read a value that ends at two consecutive whitespace characters."""
    text = cursor.text
    i = cursor.pos
    while i < len(text) and text[i] in _WHITESPACE:
        i += 1
    start = i
    while i + 1 < len(text) and not (text[i] in _WHITESPACE and text[i + 1] in _WHITESPACE):
        i += 1
    cursor.pos = min(i + 1, len(text))
    return text[start:i]


def _mils(value: float) -> int:
    return int(value * 1000.0)


def _lookup_insensitive(directory: Path, filename: str) -> Path:
    exact = directory / filename
    if exact.is_file():
        return exact
    wanted = filename.lower()
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        raise BoardFormatError(f"cannot list {directory}: {exc}") from exc
    for entry in entries:
        if entry.name.lower() == wanted and entry.is_file():
            return entry
    raise BoardFormatError(f"{filename} not found in {directory}")


class ASCFile(BoardFile):
    """A board assembled from the .asc files found next to the given path."""

    def __init__(self, buf: bytes, filepath: str | Path) -> None:
        super().__init__()
        self._first_format = True
        self._first_pin = True
        self._first_nail = True
        try:
            directory = Path(filepath).resolve().parent
        except (OSError, RuntimeError) as exc:
            raise BoardFormatError(str(exc)) from exc

        self.load_and_parse(directory, "format.asc", self.parse_format)
        self.load_and_parse(directory, "pins.asc", self.parse_pin)
        self.load_and_parse(directory, "nails.asc", self.parse_nail)
        self.update_counts()

    def parse_format(self, cursor: LineCursor, lines: Iterator[str]) -> None:
        """Read one outline point; the first line starts a block of unused lines."""
        if self._first_format:
            _skip(lines, 7)
            self._first_format = False
            return
        x = cursor.read_double()
        y = cursor.read_double()
        self.format.append(Point(_mils(x), _mils(y)))

    def parse_pin(self, cursor: LineCursor, lines: Iterator[str]) -> None:
        """Read a part header or a pin of the most recent part."""
        if self._first_pin:
            _skip(lines, 7)
            self._first_pin = False
            return
        if cursor.rest().startswith("Part"):
            cursor.skip(4)
            name = cursor.read_str()
            top = cursor.read_str() == "(T)"
            self.parts.append(
                Part(
                    name=name,
                    part_type=PartType.SMD,
                    mounting_side=PartMountingSide.TOP if top else PartMountingSide.BOTTOM,
                )
            )
            return

        if not self.parts:
            raise BoardFormatError("pin listed before any part")
        cursor.read_int()  # id
        _read_str2(cursor)  # name, may contain single spaces
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # layer
        net = cursor.read_str()
        probe = cursor.read_uint()
        owner = self.parts[-1]
        self.pins.append(
            Pin(
                part=len(self.parts),
                pos=Point(_mils(x), _mils(y)),
                net=net,
                probe=probe,
                side=PinSide[owner.mounting_side.name],
            )
        )
        owner.end_of_pins = len(self.pins)

    def parse_nail(self, cursor: LineCursor, lines: Iterator[str]) -> None:
        """Read one nail; the first line starts a block of unused lines."""
        if self._first_nail:
            _skip(lines, 6)
            self._first_nail = False
            return
        cursor.skip(1)
        probe = cursor.read_uint()
        x = cursor.read_double()
        y = cursor.read_double()
        cursor.read_int()  # type
        cursor.read_str()  # grid
        top = cursor.read_str() == "(T)"
        cursor.read_str()  # net id
        net = cursor.read_str()
        self.nails.append(
            Nail(
                probe=probe,
                pos=Point(_mils(x), _mils(y)),
                side=PartMountingSide.TOP if top else PartMountingSide.BOTTOM,
                net=net,
            )
        )

    def read_asc(self, filepath: str | Path, parser: Parser) -> None:
        """Feed every non-blank line of one .asc file to parser."""
        path = Path(filepath)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise BoardFormatError(f"cannot read {path}: {exc}") from exc
        if not raw:
            raise BoardFormatError(f"{path} is empty")
        data = self._require_size(raw)
        lines = iter(self._lines(data))
        for line in lines:
            if line:
                parser(LineCursor(line), lines)

    def load_and_parse(self, directory: str | Path, filename: str, parser: Parser) -> None:
        """Find filename in directory, ignoring case, and parse it."""
        self.read_asc(_lookup_insensitive(Path(directory), filename), parser)