"""Extraction of DEF animations: indexed frames and 32-bit D32 frames."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .image import PALETTE_SIZE, Image, ImageFormat
from .memfile import BytesLike, FormatError, MemoryFile
from .output import save_file, save_image

PathLike = Union[str, os.PathLike]

D32F_MAGIC = 0x46323344
LISTING_NAME = "animation.json"
_NAME_LENGTH = 13

# A segment reader returns the fill value (None for raw bytes) and the length.
_SegmentReader = Callable[[MemoryFile], "tuple[Optional[int], int]"]


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise FormatError(message)


@dataclass
class DefFrameHeader:
    """Header of one frame of an indexed DEF animation."""

    size: int = 0
    format: int = 0
    full_width: int = 0
    full_height: int = 0
    stored_width: int = 0
    stored_height: int = 0
    margin_left: int = 0
    margin_top: int = 0

    @classmethod
    def read(cls, file: MemoryFile) -> "DefFrameHeader":
        return cls(*file.read_u32s(8))


def _put(image: Image, col: int, row: int, data: bytes) -> None:
    """Copy bytes into the pixel buffer; like the game, a run may spill
    into the following row but never past the end of the image."""
    if not data:
        return
    try:
        offset = image.pixel_offset(col, row)
    except IndexError as exc:
        raise FormatError(str(exc)) from exc
    end = offset + len(data)
    _require(end <= len(image.pixels), f"pixel run at ({col}, {row}) overruns the image")
    image.pixels[offset:end] = data


def _segment_byte_pair(file: MemoryFile) -> "tuple[Optional[int], int]":
    kind = file.read_u8()
    length = file.read_u8() + 1
    return (None if kind == 0xFF else kind), length


def _segment_packed(file: MemoryFile) -> "tuple[Optional[int], int]":
    value = file.read_u8()
    kind = value >> 5
    length = (value & 31) + 1
    return (None if kind == 7 else kind), length


def _decode_line(
    file: MemoryFile,
    image: Image,
    start_x: int,
    row: int,
    width: int,
    read_segment: _SegmentReader,
) -> None:
    x = 0
    while x < width:
        fill, length = read_segment(file)
        data = file.read(length) if fill is None else bytes((fill,)) * length
        _put(image, start_x + x, row, data)
        x += length


def load_def_frame(file: MemoryFile, header: DefFrameHeader, palette: BytesLike) -> Image:
    """Decode one indexed frame whose pixel data starts at the cursor."""
    palette = bytes(palette)
    if len(palette) != PALETTE_SIZE:
        raise ValueError(f"palette must hold {PALETTE_SIZE} bytes, got {len(palette)}")

    image = Image(header.full_height, header.full_width, ImageFormat.P8)
    image.palette[:] = palette

    start_x = header.margin_left
    start_y = header.margin_top
    width = header.stored_width
    height = header.stored_height
    offset = file.tell()

    if header.format == 0:
        for y in range(height):
            _put(image, start_x, start_y + y, file.read(width))
    elif header.format == 1:
        line_offsets = file.read_u32s(height)
        for y, line_offset in enumerate(line_offsets):
            file.seek(offset + line_offset)
            _decode_line(file, image, start_x, start_y + y, width, _segment_byte_pair)
    elif header.format == 2:
        file.seek(offset + file.read_u16())
        for y in range(height):
            _decode_line(file, image, start_x, start_y + y, width, _segment_packed)
    elif header.format == 3:
        for y in range(height):
            file.seek(offset + y * 2 * (width // 32))
            file.seek(offset + file.read_u16())
            _decode_line(file, image, start_x, start_y + y, width, _segment_packed)
    else:
        raise FormatError(f"unknown DEF frame format {header.format}")

    return image


def _png_name(name: str) -> str:
    stem, _ext = os.path.splitext(name)
    return stem + ".png"


def _listing_text(frames: list[tuple[Optional[int], int, str]]) -> str:
    text = '{\n\t"images" : [\n'
    for group, frame, name in frames:
        text += "\t\t{ "
        if group is not None:
            text += f'"group" : {group}, '
        text += f'"frame" : {frame}, "file" : "{_png_name(name)}" }},\n'
    return text[:-2] + "\n\t]\n}\n"


def _read_group_entries(
    file: MemoryFile, index: int, size: int, groups: dict[int, list[tuple[str, int]]]
) -> None:
    names = [file.read_name(_NAME_LENGTH) for _ in range(size)]
    offsets = file.read_u32s(size)
    _require(index not in groups, f"duplicate animation group {index}")
    groups[index] = list(zip(names, offsets))


def _extract_h3(file: MemoryFile, destination: PathLike) -> Path:
    _type, _width, _height, total_groups = file.read_u32s(4)
    palette = file.read(PALETTE_SIZE)

    groups: dict[int, list[tuple[str, int]]] = {}
    for _ in range(total_groups):
        index, size, _unknown1, _unknown2 = file.read_u32s(4)
        _read_group_entries(file, index, size, groups)

    listing = []
    multiple = len(groups) > 1
    for index, entries in sorted(groups.items()):
        for frame, (name, offset) in enumerate(entries):
            file.seek(offset)
            header = DefFrameHeader.read(file)

            # A few old animations carry a shorter header whose stored size
            # exceeds the full size; their line table starts 16 bytes earlier.
            if (
                header.format == 1
                and header.stored_width > header.full_width
                and header.stored_height > header.full_height
            ):
                header.stored_width = header.full_width
                header.stored_height = header.full_height
                header.margin_left = 0
                header.margin_top = 0
                file.seek(file.tell() - 16)

            image = load_def_frame(file, header, palette)
            listing.append((index if multiple else None, frame, name))
            save_image(image, destination, name)

    return save_file(_listing_text(listing).encode("latin-1"), destination, LISTING_NAME)


def _extract_d32f(file: MemoryFile, destination: PathLike) -> Path:
    (
        magic,
        unknown1,
        unknown2,
        _width,
        _height,
        total_groups,
        unknown6,
        unknown7,
    ) = file.read_u32s(8)

    _require(magic == D32F_MAGIC, "not a D32 animation")
    _require(unknown1 == 1 and unknown2 == 24, "unexpected D32 header fields")
    _require(unknown6 == 8, "unexpected D32 header fields")
    _require(unknown7 in (1, 22), f"unexpected D32 group marker {unknown7}")

    groups: dict[int, list[tuple[str, int]]] = {}
    for _ in range(total_groups):
        header_size, index, size, _unknown = file.read_u32s(4)
        _require(header_size == 17 * size + 16, f"bad header size for group {index}")
        _read_group_entries(file, index, size, groups)

    listing = []
    multiple = len(groups) > 1
    for index, entries in sorted(groups.items()):
        for frame, (name, offset) in enumerate(entries):
            file.seek(offset)
            (
                bits_per_pixel,
                image_size,
                full_width,
                full_height,
                stored_width,
                stored_height,
                margin_left,
                margin_top,
                entry_unknown1,
                entry_unknown2,
            ) = file.read_u32s(10)

            _require(stored_width <= full_width, f"frame '{name}' is wider than its canvas")
            _require(stored_height <= full_height, f"frame '{name}' is taller than its canvas")
            _require(entry_unknown1 == 8, f"unexpected field in frame '{name}'")
            _require(entry_unknown2 in (0, 1), f"unexpected field in frame '{name}'")
            _require(bits_per_pixel == 32, f"unsupported bit depth {bits_per_pixel}")
            _require(
                image_size == stored_width * stored_height * 4,
                f"frame '{name}' size does not match its dimensions",
            )

            image = Image(full_height, full_width, ImageFormat.RGBA32)
            for y in range(stored_height):
                _put(
                    image,
                    margin_left,
                    margin_top + stored_height - y - 1,
                    file.read(stored_width * 4),
                )

            listing.append((index if multiple else None, frame, name))
            save_image(image, destination, name)

    _require(file.eof(), "unexpected data after the last frame")

    return save_file(_listing_text(listing).encode("latin-1"), destination, LISTING_NAME)


def extract_def(file: Union[MemoryFile, BytesLike], destination: PathLike) -> Path:
    """Extract every frame of a DEF or D32 animation as PNG files.

    A listing of the frames is written next to them; its path is returned.
    """
    if not isinstance(file, MemoryFile):
        file = MemoryFile(file)
    if file.peek_u32() == D32F_MAGIC:
        return _extract_d32f(file, destination)
    return _extract_h3(file, destination)