"""Reader for the RC6-obfuscated, zlib-compressed FZ board format."""

from __future__ import annotations

import logging
import struct
import zlib
from dataclasses import dataclass, field
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

logger = logging.getLogger(__name__)

_MASK = 0xFFFFFFFF
_ROUNDS = 20
_LOG_W = 5
_KEY_WORDS = 44
_WHITESPACE = " \t\n\v\f\r"
_DESCR_BLANKS = " \n\v\f\r"
_ZLIB_SIGNATURES = (b"\x78\x9c", b"\x78\xda")
# Millimetre scale as a single-precision value, as the format's readers use it.
_MM_MULTIPLIER = struct.unpack("<f", struct.pack("<f", 25.4))[0]

_KEY_PARITY = (
    0, 1, 1, 0, 1, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1, 1, 0, 1, 0, 0,
    0, 1, 1, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1,
)


@dataclass
class FZPartDesc:
    """One row of the parts description table."""

    partno: str = ""
    description: str = ""
    quantity: int = 0
    locations: list[str] = field(default_factory=list)
    partno2: str = ""


class _Block(Enum):
    UNKNOWN = -1
    NONE = 0
    PARTS = 1
    PINS = 2
    NAILS = 3
    DRAWING = 4
    CLASS = 5
    LOGO = 6
    UNDRAW = 7


_BLOCK_HEADERS = (
    ("REFDES", _Block.PARTS),
    ("NET_NAME", _Block.PINS),
    ("TESTVIA", _Block.NAILS),
    ("GRAPHIC_DATA_NAME", _Block.DRAWING),
    ("CLASS", _Block.CLASS),
    ("LOGOInfo", _Block.LOGO),
    ("UnDrawSym", _Block.UNDRAW),
)


def check_fz_key(key) -> bool:
    """Check each key word against the known parity pattern."""
    words = list(key)
    if len(words) != _KEY_WORDS:
        return False
    for word, parity in zip(words, _KEY_PARITY):
        even = bin(int(word) & _MASK).count("1") % 2 == 0
        if int(even) != parity:
            return False
    return True


def fz_key_to_string(key) -> str:
    """Format a key as rows of four hexadecimal words."""
    words = [int(word) & _MASK for word in key]
    rows = []
    for start in range(0, len(words), 4):
        rows.append("".join(f" 0x{word:08x}" for word in words[start : start + 4]) + "\n")
    return "".join(rows)


def _rotl(value: int, shift: int) -> int:
    shift &= 31
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def decode_fz(data: bytes, key) -> bytes:
    """Decrypt data with RC6 run as a byte-wise feedback stream cipher."""
    words = [int(word) & _MASK for word in key]
    if len(words) != _KEY_WORDS:
        raise BoardFormatError(f"FZ key must have {_KEY_WORDS} words")
    a = b = c = d = 0
    window = bytearray(16)
    out = bytearray()
    for current in bytes(data):
        b = (b + words[0]) & _MASK
        d = (d + words[1]) & _MASK
        for i in range(1, _ROUNDS + 1):
            t = _rotl((b * (2 * b + 1)) & _MASK, _LOG_W)
            u = _rotl((d * (2 * d + 1)) & _MASK, _LOG_W)
            a = (_rotl(a ^ t, u) + words[2 * i]) & _MASK
            c = (_rotl(c ^ u, t) + words[2 * i + 1]) & _MASK
            a, b, c, d = b, c, d, a
        a = (a + words[2 * _ROUNDS + 2]) & _MASK
        out.append(current ^ (a & 0xFF))
        # The ciphertext is shifted in from the right to form the next block.
        del window[0]
        window.append(current)
        a, b, c, d = struct.unpack("<4I", window)
    return bytes(out)


def split_fz(data: bytes) -> tuple[bytes, bytes]:
    """Split a decoded file into its compressed content and description parts."""
    data = bytes(data)
    size = len(data)
    if size < 8:
        raise BoardFormatError("FZ data is too short")
    (length,) = struct.unpack_from("<I", data, size - 4)
    if length & 0x80000000 or length > size:
        raise BoardFormatError("FZ description length is out of range")
    if length == 0:
        raise BoardFormatError("FZ file has no description part")
    content_size = size - length + 4
    if content_size == 4:
        raise BoardFormatError("FZ content and description overlap")
    padded = data + b"\0" * 4
    content = padded[4 : 4 + content_size]
    descr = padded[content_size : content_size + length]
    return content, descr


def decompress(data: bytes) -> bytes:
    """Inflate a zlib stream; bytes after the end of the stream are ignored."""
    if not data:
        raise BoardFormatError("nothing to decompress")
    inflater = zlib.decompressobj()
    try:
        output = inflater.decompress(bytes(data))
    except zlib.error as exc:
        raise BoardFormatError(f"cannot decompress FZ data: {exc}") from exc
    if not inflater.eof:
        logger.warning("FZ data ends before the end of its compressed stream")
    return output


def _read_field(cursor: LineCursor, delimiter: str, blanks: str = _WHITESPACE) -> str:
    text = cursor.text
    start = cursor.pos
    while start < len(text) and text[start] in blanks:
        start += 1
    end = text.find(delimiter, start)
    if end < 0:
        end = len(text)
    cursor.pos = min(end + 1, len(text))
    return text[start:end]


def _skip_delimiter(cursor: LineCursor, delimiter: str) -> None:
    if cursor.rest().startswith(delimiter):
        cursor.skip(1)


def _read_double(cursor: LineCursor) -> float:
    value = cursor.read_double()
    _skip_delimiter(cursor, "!")
    return value


def _read_int(cursor: LineCursor) -> int:
    value = cursor.read_int()
    _skip_delimiter(cursor, "!")
    return value


def _read_uint(cursor: LineCursor, delimiter: str = "!") -> int:
    value = cursor.read_int()
    _skip_delimiter(cursor, delimiter)
    if value < 0:
        raise BoardFormatError(f"expected a non-negative integer, got {value}")
    return value


class FZFile(BoardFile):
    """A board read from an FZ file."""

    # Key used when the one given is not valid; a valid key given replaces it.
    builtin_key: tuple[int, ...] = (0,) * _KEY_WORDS

    def __init__(self, buf: bytes, key) -> None:
        super().__init__()
        given = tuple(int(word) & _MASK for word in key)
        if check_fz_key(given):
            FZFile.builtin_key = given
        elif not check_fz_key(FZFile.builtin_key):
            raise BoardFormatError("Invalid FZ key\nFZ Key:\n" + fz_key_to_string(given))
        active_key = FZFile.builtin_key

        data = self._require_size(buf)
        # Some files are only compressed, not encrypted.
        if data[4:6] not in _ZLIB_SIGNATURES:
            data = decode_fz(data, active_key)

        content_z, descr_z = split_fz(data)
        # Some boards use commas as decimal separators.
        content = decompress(content_z).replace(b",", b".")
        descr = decompress(descr_z)

        self.parts_desc: list[FZPartDesc] = []
        part_ids: dict[str, int] = {}
        block = self._parse_content(content, part_ids)
        self._parse_descr(descr)

        for desc in self.parts_desc:
            for location in desc.locations:
                number = part_ids.get(location)
                if number is not None:
                    self.parts[number - 1].mfgcode = desc.description

        for index, pin in enumerate(self.pins):
            if pin.part > 0:
                self.parts[pin.part - 1].end_of_pins = index

        if block is _Block.NONE:
            raise BoardFormatError("no FZ sections found\nFZ Key:\n" + fz_key_to_string(active_key))
        self.format = outline_from_pins(self.pins)
        self.update_counts()

    def _parse_content(self, content: bytes, part_ids: dict[str, int]) -> _Block:
        multiplier = 1.0
        block = _Block.NONE
        for line in self._lines(content):
            if not line:
                continue
            if line == "UNIT:millimeters":
                multiplier = _MM_MULTIPLIER
            if line.startswith("A"):
                header = line[2:]
                block = next(
                    (kind for name, kind in _BLOCK_HEADERS if header.startswith(name)),
                    _Block.UNKNOWN,
                )
                continue
            if not line.startswith("S"):
                continue
            cursor = LineCursor(line)
            cursor.skip(2)
            if block is _Block.PARTS:
                self._read_part(cursor, part_ids)
            elif block is _Block.PINS:
                self._read_pin(cursor, part_ids, multiplier)
            elif block is _Block.NAILS:
                self._read_nail(cursor, multiplier)
        return block

    def _read_part(self, cursor: LineCursor, part_ids: dict[str, int]) -> None:
        name = _read_field(cursor, "!")
        _read_field(cursor, "!")  # insertion code
        _read_field(cursor, "!")  # symbol name
        mirror = _read_field(cursor, "!")
        _read_field(cursor, "!")  # rotation
        side = PartMountingSide.TOP if mirror == "YES" else PartMountingSide.BOTTOM
        self.parts.append(Part(name=name, part_type=PartType.SMD, mounting_side=side))
        part_ids[name] = len(self.parts)

    def _read_pin(self, cursor: LineCursor, part_ids: dict[str, int], multiplier: float) -> None:
        net = _read_field(cursor, "!")
        part_name = _read_field(cursor, "!")
        try:
            part = part_ids[part_name]
        except KeyError:
            raise BoardFormatError(f"pin refers to unknown part {part_name!r}") from None
        snum = _read_field(cursor, "!")
        name = _read_field(cursor, "!")
        # One variant puts the pin label in the name column and "0" as number.
        pin_name = name if snum in ("", "0") else None
        x = _read_double(cursor)
        y = _read_double(cursor)
        probe = _read_uint(cursor)
        radius = _read_double(cursor) / 100
        if radius < 0.5:
            radius = 0.5
        self.pins.append(
            Pin(
                net=net,
                part=part,
                snum=snum,
                name=pin_name,
                pos=Point(int(x * multiplier), int(y * multiplier)),
                probe=probe,
                radius=radius * multiplier,
                side=PinSide[self.parts[part - 1].mounting_side.name],
            )
        )

    def _read_nail(self, cursor: LineCursor, multiplier: float) -> None:
        cursor.skip(2)  # "Y!"
        net = _read_field(cursor, "!")
        _read_field(cursor, "!")  # reference designator
        _read_int(cursor)  # pin number
        _read_field(cursor, "!")  # pin name
        x = _read_double(cursor)
        y = _read_double(cursor)
        side = PartMountingSide.TOP if _read_field(cursor, "!") == "T" else PartMountingSide.BOTTOM
        _read_double(cursor)  # radius
        self.nails.append(
            Nail(net=net, pos=Point(int(x * multiplier), int(y * multiplier)), side=side)
        )

    def _parse_descr(self, descr: bytes) -> None:
        # The first two lines hold the board description and the column names.
        for line in self._lines(descr)[2:]:
            if not line or line.startswith("s"):
                continue
            cursor = LineCursor(line)
            partno = _read_field(cursor, "\t", _DESCR_BLANKS)
            description = _read_field(cursor, "\t", _DESCR_BLANKS)
            quantity = _read_uint(cursor, "\t")
            locations = _read_field(cursor, "\t", _DESCR_BLANKS).split()
            partno2 = _read_field(cursor, "\t", _DESCR_BLANKS)
            self.parts_desc.append(
                FZPartDesc(
                    partno=partno,
                    description=description,
                    quantity=quantity,
                    locations=locations,
                    partno2=partno2,
                )
            )