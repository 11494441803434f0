"""Extraction of sprites from HD edition PAK sprite-sheet archives."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

from .archives import decompress
from .dds import load_dds
from .image import Image
from .memfile import BytesLike, FormatError, MemoryFile
from .output import save_image

PathLike = Union[str, os.PathLike]

PAK_MAGIC = 4
_INTEGER = re.compile(r"\s*([+-]?\d+)")


def split_string(text: str, separator: str) -> list[str]:
    """Split ``text``, dropping a trailing empty piece and a carriage
    return that ends any piece followed by a separator."""
    result: list[str] = []
    if not text:
        return result
    position = 0
    while True:
        split_pos = text.find(separator, position)
        if split_pos == -1:
            rest = text[position:]
            if rest:
                result.append(rest)
            return result
        piece = text[position:split_pos]
        if piece.endswith("\r"):
            piece = piece[:-1]
        result.append(piece)
        position = split_pos + 1


def string_to_table(text: str) -> list[list[str]]:
    """Split text into lines, and each line into space-separated fields."""
    return [split_string(line, " ") for line in split_string(text, "\n")]


def _to_u32(text: str) -> int:
    match = _INTEGER.match(text)
    if match is None:
        raise FormatError(f"expected a number, found '{text}'")
    return int(match.group(1)) & 0xFFFFFFFF


@dataclass
class SpriteEntry:
    """One sprite's placement in the sheets of a PAK entry."""

    name: str
    sheet_index: int = 0
    sprite_offset_x: int = 0
    unknown1: int = 0
    sprite_offset_y: int = 0
    unknown2: int = 0
    sheet_offset_x: int = 0
    sheet_offset_y: int = 0
    width: int = 0
    height: int = 0
    rotation: int = 0
    has_shadow: int = 0
    shadow_sheet_index: int = 0
    shadow_sheet_offset_x: int = 0
    shadow_sheet_offset_y: int = 0
    shadow_width: int = 0
    shadow_height: int = 0
    shadow_rotation: int = 0


def parse_sprite(fields: Sequence[str], sheet_count: int) -> SpriteEntry:
    """Build a sprite entry from one line of PAK metadata."""
    if len(fields) not in (12, 18):
        raise FormatError(f"sprite line has {len(fields)} fields, expected 12 or 18")
    numbers = [_to_u32(value) for value in fields[1:]]
    sprite = SpriteEntry(fields[0], *numbers[:11])

    if sprite.sheet_index >= sheet_count:
        raise FormatError(f"sprite '{sprite.name}' refers to missing sheet {sprite.sheet_index}")
    if sprite.rotation not in (0, 1):
        raise FormatError(f"sprite '{sprite.name}' has invalid rotation {sprite.rotation}")

    if sprite.has_shadow:
        if len(fields) != 18:
            raise FormatError(f"sprite '{sprite.name}' has a shadow but no shadow fields")
        (
            sprite.shadow_sheet_index,
            sprite.shadow_sheet_offset_x,
            sprite.shadow_sheet_offset_y,
            sprite.shadow_width,
            sprite.shadow_height,
            sprite.shadow_rotation,
        ) = numbers[11:]
        if sprite.shadow_sheet_index >= sheet_count:
            raise FormatError(
                f"shadow of '{sprite.name}' refers to missing sheet {sprite.shadow_sheet_index}"
            )
        if sprite.shadow_rotation not in (0, 1):
            raise FormatError(
                f"shadow of '{sprite.name}' has invalid rotation {sprite.shadow_rotation}"
            )
    return sprite


@dataclass
class _Sheet:
    compressed_size: int
    full_size: int


@dataclass
class _PakEntry:
    name: str
    metadata_offset: int
    metadata_size: int
    sheets: list[_Sheet] = field(default_factory=list)


def _cut(sheet: Image, left: int, top: int, width: int, height: int, rotated: int) -> Image:
    sprite = sheet.section(left, top, width, height)
    return sprite.rotate_counterclockwise() if rotated else sprite


def extract_pak(file: Union[MemoryFile, BytesLike], destination: PathLike) -> None:
    """Extract every sprite and shadow of a PAK archive as PNG files."""
    if not isinstance(file, MemoryFile):
        file = MemoryFile(file)

    magic = file.read_u32()
    header_offset = file.read_u32()
    if magic != PAK_MAGIC:
        raise FormatError(f"not a PAK archive (magic {magic})")
    file.seek(header_offset)

    entries = []
    for _ in range(file.read_u32()):
        name = file.read_name(20)
        metadata_offset, metadata_size, count_sheets, _compressed, _full = file.read_u32s(5)
        compressed_sizes = file.read_u32s(count_sheets)
        full_sizes = file.read_u32s(count_sheets)
        sheets = [_Sheet(c, f) for c, f in zip(compressed_sizes, full_sizes)]
        entries.append(_PakEntry(name, metadata_offset, metadata_size, sheets))

    for entry in entries:
        file.seek(entry.metadata_offset)
        table = string_to_table(file.read(entry.metadata_size).decode("latin-1"))

        sheets = [
            load_dds(decompress(file.read(sheet.compressed_size), sheet.full_size))
            for sheet in entry.sheets
        ]
        sprites = [parse_sprite(line, len(sheets)) for line in table]

        target = Path(destination) / entry.name
        for sprite in sprites:
            image = _cut(
                sheets[sprite.sheet_index],
                sprite.sheet_offset_x,
                sprite.sheet_offset_y,
                sprite.width,
                sprite.height,
                sprite.rotation,
            )
            save_image(image, target, sprite.name + ".png")
            if sprite.has_shadow:
                shadow = _cut(
                    sheets[sprite.shadow_sheet_index],
                    sprite.shadow_sheet_offset_x,
                    sprite.shadow_sheet_offset_y,
                    sprite.shadow_width,
                    sprite.shadow_height,
                    sprite.shadow_rotation,
                )
                save_image(shadow, target, sprite.name + "-shadow.png")