import pytest

from boardfiles.base import BoardFormatError, PartMountingSide, PartType, PinSide, Point
from boardfiles.bvr3 import BVR3File, manhattan_distance, order_outline_segments

SAMPLE = "\n".join(
    [
        "BVRAW_FORMAT_3",
        "OUTLINE_POINTS 0 0 100 0 100 50",
        "PART_NAME U1",
        "PART_SIDE T",
        "PART_ORIGIN 0 0",
        "PART_MOUNT SMD",
        "PIN_ID 1",
        "PIN_NUMBER 1",
        "PIN_NAME VCC_IN",
        "PIN_SIDE T",
        "PIN_ORIGIN 10.7 20.2",
        "PIN_RADIUS 3.5",
        "PIN_NET VCC",
        "PIN_END",
        "PIN_NUMBER 2",
        "PIN_NET GND",
        "PIN_END",
        "PART_END",
        "PART_NAME J1",
        "PART_SIDE O",
        "PART_MOUNT TH",
        "PART_END",
    ]
).encode() + b"\n"


@pytest.fixture
def board():
    return BVR3File(SAMPLE)


def test_manhattan_distance():
    assert manhattan_distance(Point(1, 2), Point(4, -2)) == 7
    assert manhattan_distance(Point(5, 5), Point(5, 5)) == 0


def test_order_empty():
    assert order_outline_segments([]) == []


def test_order_closes_square_with_reversed_segments():
    a, b, c, d = Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)
    segments = [(a, b), (c, b), (d, c), (d, a)]
    assert order_outline_segments(segments) == [a, b, c, d, a]


def test_order_bridges_gap_to_nearest_segment():
    a, b, c, d = Point(0, 0), Point(10, 0), Point(12, 1), Point(20, 0)
    assert order_outline_segments([(a, b), (d, c)]) == [a, b, c, d]


def test_order_closes_when_start_is_nearest():
    a, b = Point(0, 0), Point(10, 0)
    far = (Point(100, 100), Point(200, 200))
    assert order_outline_segments([(a, b), far]) == [a, b, a]


def test_verify_format():
    assert BVR3File.verify_format(SAMPLE)
    assert not BVR3File.verify_format(b"BVRAW_FORMAT_1")


def test_outline_points(board):
    assert board.format == [Point(0, 0), Point(100, 0), Point(100, 50)]


def test_parts(board):
    assert [part.name for part in board.parts] == ["U1", "J1"]
    assert board.parts[0].mounting_side is PartMountingSide.TOP
    assert board.parts[0].part_type is PartType.SMD
    assert board.parts[1].mounting_side is PartMountingSide.BOTH
    assert board.parts[1].part_type is PartType.THROUGH_HOLE
    assert [part.end_of_pins for part in board.parts] == [2, 2]


def test_first_pin(board):
    pin = board.pins[0]
    assert pin.pos == Point(10, 20)
    assert pin.radius == 3.5
    assert (pin.snum, pin.name, pin.net) == ("1", "VCC_IN", "VCC")
    assert pin.side is PinSide.TOP
    assert pin.part == 1


def test_pin_fields_reset_after_end(board):
    pin = board.pins[1]
    assert pin.snum == "2"
    assert pin.net == "GND"
    assert pin.name is None
    assert pin.radius == 0.5
    assert pin.side is PinSide.BOTH
    assert pin.part == 1


def test_counts(board):
    assert (board.num_parts, board.num_pins, board.num_format) == (2, 2, 3)


def test_segmented_outline_is_ordered():
    data = b"BVRAW_FORMAT_3\nOUTLINE_SEGMENTED 0 0 10 0 10 10 10 0 0 10 10 10 0 10 0 0\n"
    board = BVR3File(data)
    assert board.format == [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10), Point(0, 0)]
    assert board.outline_segments == []


def test_empty_board_rejected():
    with pytest.raises(BoardFormatError):
        BVR3File(b"BVRAW_FORMAT_3\n")


def test_too_small_rejected():
    with pytest.raises(BoardFormatError):
        BVR3File(b"BV")