import pytest

from boardfiles.base import BoardFormatError, PartMountingSide, PinSide, Point
from boardfiles.bvr import BVRFile

SAMPLE = "\r\n".join(
    [
        "BVRAW_FORMAT_1",
        "<<Layout>>",
        "header",
        "1,2",
        "3,4",
        "<<Pin>>",
        "header",
        "U1\t(T)\t1\tA\t0.5\t0.25\t1\tGND",
        "U1\t(T)\t2\tB\t3\t4\t1\tVCC",
        "R5\t(B)\t1\t1\t5\t6\t2\tGND",
        "<<Nail>>",
        "header",
        "N1\t0.5 0.25 1 G1 (B) 9 VCC",
        "N2\t3 4 1 G2 (T) 9 GND",
    ]
).encode() + b"\r\n"


@pytest.fixture
def board():
    return BVRFile(SAMPLE)


def test_verify_format():
    assert BVRFile.verify_format(SAMPLE)
    assert not BVRFile.verify_format(b"BVRAW_FORMAT_3 something")


def test_layout_points(board):
    assert board.format[0] == Point(1000, 2000)
    assert board.num_format == 2


def test_parts_deduplicated(board):
    assert [part.name for part in board.parts] == ["U1", "R5"]
    assert board.parts[0].end_of_pins == 2
    assert board.parts[1].end_of_pins == 3
    assert board.parts[1].mounting_side is PartMountingSide.BOTTOM


def test_pins(board):
    assert [pin.name for pin in board.pins] == ["A", "B", "1"]
    assert [pin.net for pin in board.pins] == ["GND", "VCC", "GND"]
    assert [pin.part for pin in board.pins] == [1, 1, 2]
    assert [pin.side for pin in board.pins] == [PinSide.TOP, PinSide.TOP, PinSide.BOTTOM]
    assert board.pins[0].pos == Point(500, 250)


def test_nails_share_coordinates_with_matching_pins(board):
    assert [nail.net for nail in board.nails] == ["VCC", "GND"]
    assert board.nails[0].pos == board.pins[0].pos
    assert board.nails[1].pos == board.pins[1].pos
    assert board.nails[0].side is PartMountingSide.BOTTOM
    assert board.nails[1].side is PartMountingSide.TOP


def test_counts(board):
    assert (board.num_parts, board.num_pins, board.num_nails) == (2, 3, 2)


def test_no_sections_rejected():
    with pytest.raises(BoardFormatError):
        BVRFile(b"BVRAW_FORMAT_1\r\nnothing here\r\n")


def test_too_small_rejected():
    with pytest.raises(BoardFormatError):
        BVRFile(b"abc")