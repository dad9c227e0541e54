import struct
import zlib

import pytest

from boardfiles.base import BoardFormatError, PartMountingSide, PinSide, outline_from_pins
from boardfiles.fz import (
    FZFile,
    FZPartDesc,
    check_fz_key,
    decode_fz,
    decompress,
    fz_key_to_string,
    split_fz,
)

PARITY = (
    0, 1, 1, 0, 1, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1, 1, 0, 1, 0, 0,
    0, 1, 1, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 1,
)
# A zero word has even parity, a word of 1 has odd parity.
KEY = tuple(0 if bit else 1 for bit in PARITY)
ZERO_KEY = (0,) * 44

CONTENT = (
    b"A!REFDES!COMP_INSERTION_CODE!SYM_NAME!SYM_MIRROR!SYM_ROTATE!\r\n"
    b"S!U1!IC!QFN!YES!0!\r\n"
    b"S!R1!R!0402!NO!90!\r\n"
    b"A!NET_NAME!REFDES!PIN_NUMBER!PIN_NAME!PIN_X!PIN_Y!TEST_POINT!RADIUS!\r\n"
    b"S!GND!U1!1!GND!100!200,25!!60!\r\n"
    b"S!VCC!R1!0!A1!300!400!2!10!\r\n"
    b"A!TESTVIA!NET!REFDES!PIN!NAME!X!Y!SIDE!RADIUS!\r\n"
    b"S!Y!GND!U1!1!GND!50!60!T!5!\r\n"
)
DESCR = (
    b"board\r\n"
    b"PARTNUMBER\tDESCRIPTION\tQTY\tLOCATION\tPARTNUMBER2\r\n"
    b"123\tResistor 10k\t1\tR1 R9\t456\r\n"
    b"skip\tunused\t1\tU1\tx\r\n"
)


def build_fz(content, descr, level=6):
    content_z = zlib.compress(content, level)
    descr_z = zlib.compress(descr)
    return b"\0\0\0\0" + content_z + descr_z + struct.pack("<I", len(descr_z) + 8)


def encrypt(plain, key):
    cipher = bytearray()
    for byte in plain:
        stream = decode_fz(bytes(cipher) + b"\0", key)[-1]
        cipher.append(byte ^ stream)
    return bytes(cipher)


def test_check_fz_key_accepts_matching_parity():
    assert check_fz_key(KEY) is True


def test_check_fz_key_rejects_zero_key():
    assert check_fz_key(ZERO_KEY) is False


def test_check_fz_key_rejects_single_flipped_word():
    broken = list(KEY)
    broken[5] ^= 1
    assert check_fz_key(broken) is False


def test_check_fz_key_rejects_wrong_length():
    assert check_fz_key(KEY[:43]) is False


def test_fz_key_to_string_layout():
    text = fz_key_to_string(range(44))
    lines = text.splitlines()
    assert len(lines) == 11
    assert lines[0] == " 0x00000000 0x00000001 0x00000002 0x00000003"
    assert text.endswith("\n")


def test_fz_key_to_string_full_width_word():
    assert fz_key_to_string([0xDEADBEEF] * 4) == " 0xdeadbeef" * 4 + "\n"


def test_decode_fz_empty():
    assert decode_fz(b"", KEY) == b""


def test_decode_fz_preserves_length_and_prefix():
    data = bytes(range(40))
    decoded = decode_fz(data, KEY)
    assert len(decoded) == len(data)
    assert decode_fz(data[:17], KEY) == decoded[:17]


def test_decode_fz_keystream_ignores_current_byte():
    first = decode_fz(b"abcdef" + b"\x00", KEY)
    second = decode_fz(b"abcdef" + b"\xff", KEY)
    assert first[:6] == second[:6]
    assert first[6] ^ 0x00 == second[6] ^ 0xFF


def test_decode_fz_round_trip():
    plain = b"board file contents"
    assert decode_fz(encrypt(plain, KEY), KEY) == plain


def test_decode_fz_rejects_short_key():
    with pytest.raises(BoardFormatError):
        decode_fz(b"abc", KEY[:10])


def test_split_fz_finds_both_streams():
    content_z = zlib.compress(CONTENT)
    descr_z = zlib.compress(DESCR)
    content, descr = split_fz(build_fz(CONTENT, DESCR))
    assert content.startswith(content_z)
    assert descr.startswith(descr_z)


@pytest.mark.parametrize(
    "trailer",
    [struct.pack("<I", 1000), struct.pack("<I", 0x80000010), struct.pack("<I", 0)],
)
def test_split_fz_rejects_bad_length(trailer):
    with pytest.raises(BoardFormatError):
        split_fz(b"\0" * 12 + trailer)


def test_split_fz_rejects_overlap():
    data = b"\0" * 12
    with pytest.raises(BoardFormatError):
        split_fz(data + struct.pack("<I", len(data) + 4))


def test_decompress_round_trip_ignores_trailing_bytes():
    assert decompress(zlib.compress(b"hello") + b"junk") == b"hello"


def test_decompress_rejects_empty_and_garbage():
    with pytest.raises(BoardFormatError):
        decompress(b"")
    with pytest.raises(BoardFormatError):
        decompress(b"not a zlib stream")


def test_parse_plain_file_parts_and_pins():
    board = FZFile(build_fz(CONTENT, DESCR), KEY)
    assert [part.name for part in board.parts] == ["U1", "R1"]
    assert board.parts[0].mounting_side is PartMountingSide.TOP
    assert board.parts[1].mounting_side is PartMountingSide.BOTTOM
    gnd, vcc = board.pins
    assert (gnd.net, gnd.part, gnd.snum, gnd.name) == ("GND", 1, "1", None)
    assert gnd.pos.x == 100 and gnd.pos.y == 200
    assert gnd.probe == 0
    assert gnd.radius == pytest.approx(0.6)
    assert gnd.side is PinSide.TOP
    assert (vcc.net, vcc.part, vcc.snum, vcc.name) == ("VCC", 2, "0", "A1")
    assert vcc.probe == 2
    assert vcc.radius == 0.5
    assert vcc.side is PinSide.BOTTOM


def test_parse_plain_file_nails_outline_and_counts():
    board = FZFile(build_fz(CONTENT, DESCR, level=9), KEY)
    assert len(board.nails) == 1
    nail = board.nails[0]
    assert nail.net == "GND"
    assert (nail.pos.x, nail.pos.y) == (50, 60)
    assert nail.side is PartMountingSide.TOP
    assert board.format == outline_from_pins(board.pins)
    assert (board.num_parts, board.num_pins, board.num_nails) == (2, 2, 1)
    assert board.num_format == len(board.format)
    assert board.parts[1].end_of_pins == 1
    assert board.parts[0].end_of_pins == 0


def test_parse_descriptions():
    board = FZFile(build_fz(CONTENT, DESCR), KEY)
    assert board.parts_desc == [
        FZPartDesc(
            partno="123",
            description="Resistor 10k",
            quantity=1,
            locations=["R1", "R9"],
            partno2="456",
        )
    ]
    assert board.parts[1].mfgcode == "Resistor 10k"
    assert board.parts[0].mfgcode == ""


def test_millimetre_units_scale_positions():
    content = (
        b"UNIT:millimeters\r\n"
        b"A!REFDES!\r\nS!U1!IC!QFN!YES!0!\r\n"
        b"A!NET_NAME!\r\nS!N1!U1!1!P!10!0!0!0!\r\n"
    )
    board = FZFile(build_fz(content, DESCR), KEY)
    assert 253 <= board.pins[0].pos.x <= 254
    assert board.pins[0].pos.y == 0


def test_valid_key_becomes_builtin():
    FZFile(build_fz(CONTENT, DESCR), KEY)
    assert FZFile.builtin_key == KEY


def test_invalid_key_falls_back_to_builtin():
    FZFile(build_fz(CONTENT, DESCR), KEY)
    board = FZFile(build_fz(CONTENT, DESCR), ZERO_KEY)
    assert [part.name for part in board.parts] == ["U1", "R1"]


def test_encrypted_file_is_decoded():
    content = b"A!REFDES!\r\nS!U1!IC!Q!YES!0!\r\nA!NET_NAME!\r\nS!N1!U1!1!P!7!8!0!0!\r\n"
    descr = b"b\r\nh\r\n"
    data = encrypt(build_fz(content, descr), KEY)
    board = FZFile(data, KEY)
    assert board.pins[0].net == "N1"
    assert (board.pins[0].pos.x, board.pins[0].pos.y) == (7, 8)


def test_unknown_part_in_pin_raises():
    content = b"A!NET_NAME!\r\nS!N1!X9!1!P!1!1!0!0!\r\n"
    with pytest.raises(BoardFormatError):
        FZFile(build_fz(content, DESCR), KEY)


def test_no_sections_raises_with_key_dump():
    with pytest.raises(BoardFormatError, match="FZ Key"):
        FZFile(build_fz(b"nothing here\r\n", DESCR), KEY)


def test_too_small_buffer_raises():
    with pytest.raises(BoardFormatError):
        FZFile(b"\x00\x01", KEY)