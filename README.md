# vcmiextract

A command-line tool that unpacks game data archives and turns the images
inside them into PNG files. It needs nothing beyond the Python standard
library: PNG encoding and zlib decompression are done with `zlib` and
`struct`.

## Supported inputs

| Extension       | What happens                                                       |
|-----------------|--------------------------------------------------------------------|
| `.lod`, `.pac`  | Archive entries are extracted; zlib-compressed ones are inflated   |
| `.snd`          | Sound entries are written out with `.wav` added to their names     |
| `.vid`          | Video entries are written out under their stored names             |
| `.pak`          | DXT1/DXT5 DDS sprite sheets are cut into individual sprite PNGs, with `-shadow` PNGs where a sprite has a shadow; each archive entry gets its own subdirectory |
| `.def`, `.d32`  | Animation frames (indexed DEF or 32-bit D32 frames) become PNGs, plus an `animation.json` listing of groups, frame numbers and file names |

Extensions are matched without regard to case. Entries named `.pcx` or
`.p32` are converted to PNG as they are extracted; if such an entry cannot be
decoded it is written out unchanged, as is every other kind of entry. RGBA
images whose alpha channel is fully opaque are saved as plain RGB PNGs.

## Installation

```
pip install .
```

## Usage

```
vcmiextract H3bitmap.lod H3sprite.lod Heroes3.snd
```

Each file named on the command line is extracted into a directory beside it,
named after the file without its extension (`H3bitmap.lod` goes to
`H3bitmap/`). A file that does not exist, or whose output path is an existing
regular file, is reported and skipped; a file with an unrecognised extension
is reported and left alone. If a file turns out to be malformed or cannot be
read, an error is printed to standard error, the remaining files are still
processed, and the command exits with status 1.

## Library use

```python
from pathlib import Path

from vcmiextract.cli import extract_file
from vcmiextract.image import optimize_and_save
from vcmiextract.memfile import MemoryFile
from vcmiextract.pcx import load_pcx

extract_file(Path("H3bitmap.lod"), Path("out"))   # False for an unknown type

image = load_pcx(MemoryFile.from_path("picture.pcx"))
optimize_and_save(image, Path("picture.png"))
```

The modules:

- `vcmiextract.memfile` — `MemoryFile`, a little-endian reader over a byte
  buffer, and `FormatError`, raised (as a `ValueError`) for malformed data.
- `vcmiextract.image` — `Image` and `ImageFormat`, with `section` and
  `rotate_counterclockwise`; `drop_alpha`, `encode_png`, `save_png` and
  `optimize_and_save` for PNG output.
- `vcmiextract.dds` — `load_dds` for DXT1/DXT5 textures, and the block
  helpers `unpack_rgb565`, `decode_color_block`, `decode_alpha_block`.
- `vcmiextract.pcx` — `load_pcx` for indexed and true-colour PCX and P32.
- `vcmiextract.output` — `save_image` and `save_file`, which create the
  target directory and return the path written.
- `vcmiextract.archives` — `decompress`, `extract_lod`, `extract_snd`,
  `extract_vid`.
- `vcmiextract.hd` — `extract_pak`, with `SpriteEntry`, `parse_sprite`,
  `split_string` and `string_to_table` for the sprite metadata.
- `vcmiextract.defs` — `extract_def`, `load_def_frame` and `DefFrameHeader`.
- `vcmiextract.cli` — `extract_file`, `process` and `main`.

## What it does not do

It only extracts. It cannot create or modify archives, it does not convert
the sounds or videos it extracts to other formats, and of DDS textures it
reads only single-surface DXT1 and DXT5 files of the layout used by the PAK
sprite sheets.

## Running the tests

```
pip install .[test]
pytest
```