# boardfiles

Readers for the file formats that boardview tools use to describe a printed
circuit board: its parts, their pins, the test nails and the board outline.
Everything is plain Python with no dependencies outside the standard library.

## Supported formats

| Module                | Class         | Format                                              |
|-----------------------|---------------|-----------------------------------------------------|
| `boardfiles.brd`      | `BRDFile`     | `.brd` boardview, plain or byte-encoded             |
| `boardfiles.brd`      | `AllegroFile` | Allegro `.brd` (recognised, then refused)           |
| `boardfiles.brd2`     | `BRD2File`    | `.brd` variant with `BRDOUT:` / `NETS:` sections    |
| `boardfiles.bdv`      | `BDVFile`     | `.bdv` (line-keyed obfuscated `.asc` bundle)        |
| `boardfiles.bvr`      | `BVRFile`     | `BVRAW_FORMAT_1`                                    |
| `boardfiles.bvr3`     | `BVR3File`    | `BVRAW_FORMAT_3`                                    |
| `boardfiles.ad`       | `ADFile`      | Altium ASCII PCB export (`Protel_Advanced_PCB`)     |
| `boardfiles.cad`      | `CADFile`     | `.cad` with `COMP` / `C_PIN` / `NET` / `N_VIA` records |
| `boardfiles.cst`      | `CSTFile`     | Binary `.cst`                                       |
| `boardfiles.asc`      | `ASCFile`     | Directory of `format.asc`, `pins.asc`, `nails.asc`  |
| `boardfiles.fz`       | `FZFile`      | `.fz` (RC6-encrypted, zlib-compressed)              |

## Installing

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Usage

Each reader takes the raw bytes of a file and parses it in its constructor.
All readers except `CSTFile` and `ASCFile` have a `verify_format` static method
that tells whether a buffer looks like that format, so a caller can try them in
turn:

```python
from pathlib import Path

from boardfiles.base import BoardFormatError
from boardfiles.brd import AllegroFile, BRDFile
from boardfiles.brd2 import BRD2File
from boardfiles.bvr3 import BVR3File

data = Path("board.brd").read_bytes()

for reader in (AllegroFile, BRDFile, BRD2File, BVR3File):
    if reader.verify_format(data):
        board = reader(data)  # AllegroFile always raises BoardFormatError
        break
else:
    raise SystemExit("unrecognised board file")

print(board.num_parts, board.num_pins, board.num_nails)
```

Every reader builds on `boardfiles.base.BoardFile`, which holds:

- `format`: outline points (`Point`, coordinates in mils);
- `outline_segments`: outline given as pairs of points (Altium arcs and keepout tracks);
- `parts` (`Part`), `pins` (`Pin`) and `nails` (`Nail`);
- the counters `num_format`, `num_parts`, `num_pins` and `num_nails`.

Mounting sides and part types are the enums `PartMountingSide`, `PinSide` and
`PartType`. A file that cannot be read, is too short (four bytes or fewer), has
none of its format's sections, or disagrees with its own declared counts raises
`BoardFormatError`, a subclass of `ValueError`; there is no partly-valid board.

Some readers keep extra data: `ADFile` has `ad_nets`, `ad_parts` and `ad_pads`
(`ADNet`, `ADPart`, `ADPad`), `CSTFile` has `nets`, and `FZFile` has
`parts_desc` (`FZPartDesc`). Readers that derive no outline from the file
(`CADFile`, `CSTFile`, `FZFile`) build a rectangle around the pins instead.
`BRD2File` reports nails whose net id is unknown through the `logging` module.

### `.asc` bundles

An `.asc` board is spread over several files in one directory. Pass the bytes
of any one of them together with its path; the reader loads `format.asc`,
`pins.asc` and `nails.asc` from the same directory, matching names without
regard to case. A missing or empty file raises `BoardFormatError`.

```python
from pathlib import Path

from boardfiles.asc import ASCFile

path = Path("board/pins.asc")
board = ASCFile(path.read_bytes(), path)
```

### `.fz` files

`.fz` files are encrypted. `FZFile` takes the file bytes and a key of 44
unsigned 32-bit words which you supply. `check_fz_key` tests a key against the
expected parity pattern and `fz_key_to_string` formats one for display. A valid
key is remembered in `FZFile.builtin_key` and used later when the key given is
not valid; if neither is valid, `BoardFormatError` is raised. Files whose
content already starts with a zlib header are read without decryption.

```python
from pathlib import Path

from boardfiles.fz import FZFile, check_fz_key

# A text file of your own holding the 44 key words in hexadecimal.
key = [int(word, 16) for word in Path("fz.key").read_text().split()]
if check_fz_key(key):
    board = FZFile(Path("board.fz").read_bytes(), key)
```

The lower-level steps are available on their own: `decode_fz(data, key)`
decrypts, `split_fz(data)` returns the compressed content and description
parts, and `decompress(data)` inflates a zlib stream.

### Helpers

`boardfiles.base` also provides the pieces the readers share:

- `split_lines` splits text on `\r` or `\n`, treating a pair of break
  characters as one break and stopping at the first NUL character;
- `decode_text` decodes bytes as UTF-8, falling back to Latin-1;
- `LineCursor` reads integers, floats and whitespace-delimited words from a line;
- `arc_to_segments` approximates an arc by straight segments, and `distance`
  gives the distance between two points;
- `outline_from_pins` builds a closed rectangle 20 mils outside all pins.

`boardfiles.bvr3.manhattan_distance` and `order_outline_segments` chain loose
outline segments into one path, and `boardfiles.brd.decode_brd` /
`boardfiles.bdv.decode_bdv` undo the byte encodings of those formats.

## What this package does not do

It only reads files into the data model above. It does not draw or display a
board, write any format, or offer a command-line tool. GenCAD files are not
read, and Allegro files are recognised only to be refused.