import pytest

from boardfiles.base import BoardFormatError, PartMountingSide, PartType, PinSide, Point
from boardfiles.brd2 import BRD2File

SAMPLE = b"""BRDOUT: 4 100 200
0 0
100 0
100 200
0 200

NETS: 2
1 VCC
2 GND

PARTS: 3
U1 10 20 30 40 0 1
J1 50 60 70 80 2 2
C1 1 2 3 4 3 1

PINS: 4
10 20 1 1
30 40 2 1
50 60 2 2
5 6 9 2

NAILS: 2
5 10 20 1 1
6 50 60 2 2
"""


def test_verify_format():
    assert BRD2File.verify_format(SAMPLE)
    assert not BRD2File.verify_format(b"BRDOUT: only")


def test_outline():
    board = BRD2File(SAMPLE)
    assert board.format == [Point(0, 0), Point(100, 0), Point(100, 200), Point(0, 200)]


def test_parts_and_dummy_parts():
    board = BRD2File(SAMPLE)
    assert [p.name for p in board.parts] == ["U1", "J1", "C1", "...", "..."]
    assert board.parts[0].part_type is PartType.SMD
    assert board.parts[0].mounting_side is PartMountingSide.TOP
    assert board.parts[1].mounting_side is PartMountingSide.BOTTOM
    assert board.parts[1].p1 == Point(50, 200 - 60)
    assert board.parts[1].p2 == Point(70, 200 - 80)
    assert board.parts[3].mounting_side is PartMountingSide.BOTTOM
    assert board.parts[4].mounting_side is PartMountingSide.TOP


def test_part_with_pins_on_other_side_is_through_hole():
    board = BRD2File(SAMPLE)
    assert board.parts[2].part_type is PartType.THROUGH_HOLE
    assert board.parts[2].mounting_side is PartMountingSide.BOTH


def test_pins_are_assigned_and_flipped():
    board = BRD2File(SAMPLE)
    assert [pin.part for pin in board.pins[:4]] == [1, 1, 2, 3]
    assert [pin.net for pin in board.pins[:4]] == ["VCC", "GND", "GND", ""]
    assert board.pins[0].pos == Point(10, 20)
    assert board.pins[2].pos == Point(50, 200 - 60)
    assert board.pins[2].side is PinSide.BOTTOM


def test_nails_become_pins():
    board = BRD2File(SAMPLE)
    assert len(board.pins) == 4 + len(board.nails)
    top_nail, bottom_nail = board.nails
    assert top_nail.net == "VCC"
    assert top_nail.side is PartMountingSide.TOP
    assert bottom_nail.pos == Point(50, 200 - 60)
    assert bottom_nail.side is PartMountingSide.BOTTOM
    nail_pins = board.pins[4:]
    assert [pin.part for pin in nail_pins] == [len(board.parts), len(board.parts) - 1]
    assert [pin.probe for pin in nail_pins] == [5, 6]


def test_nail_with_unknown_net():
    data = SAMPLE.replace(b"6 50 60 2 2", b"6 50 60 9 2")
    board = BRD2File(data)
    assert board.nails[1].net == "UNCONNECTED"


def test_outline_point_beyond_bounds_raises():
    data = SAMPLE.replace(b"100 200\n0 200", b"100 200\n0 201")
    with pytest.raises(BoardFormatError):
        BRD2File(data)


def test_count_mismatch_raises():
    data = SAMPLE.replace(b"BRDOUT: 4", b"BRDOUT: 5")
    with pytest.raises(BoardFormatError):
        BRD2File(data)


def test_no_sections_raises():
    with pytest.raises(BoardFormatError):
        BRD2File(b"hello world\n")