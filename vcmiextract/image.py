"""In-memory raster images and PNG output.

Colour pixels are stored in blue, green, red (, alpha) channel order, as
the game data keeps them; PNG output reorders them to red, green, blue.
Palette entries are stored in red, green, blue order.
"""

from __future__ import annotations

import os
import struct
import zlib
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PALETTE_SIZE = 256 * 3


class ImageFormat(Enum):
    """Pixel layout of an image."""

    P8 = "p8"
    G8 = "g8"
    RGB24 = "rgb24"
    RGBA32 = "rgba32"

    @property
    def bytes_per_pixel(self) -> int:
        return _BYTES_PER_PIXEL[self]

    @property
    def png_color_type(self) -> int:
        return _PNG_COLOR_TYPE[self]


_BYTES_PER_PIXEL = {
    ImageFormat.P8: 1,
    ImageFormat.G8: 1,
    ImageFormat.RGB24: 3,
    ImageFormat.RGBA32: 4,
}

_PNG_COLOR_TYPE = {
    ImageFormat.P8: 3,
    ImageFormat.G8: 0,
    ImageFormat.RGB24: 2,
    ImageFormat.RGBA32: 6,
}


class Image:
    """A zero-initialised image with tightly packed rows."""

    def __init__(self, height: int, width: int, fmt: ImageFormat) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid image size {width}x{height}")
        self.height = height
        self.width = width
        self.format = fmt
        self.bytes_per_pixel = fmt.bytes_per_pixel
        self.scanline = width * self.bytes_per_pixel
        self.pixels = bytearray(self.scanline * height)
        self.palette: Optional[bytearray] = (
            bytearray(PALETTE_SIZE) if fmt is ImageFormat.P8 else None
        )

    def __repr__(self) -> str:
        return f"Image({self.width}x{self.height}, {self.format.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        return (
            self.format is other.format
            and self.width == other.width
            and self.height == other.height
            and self.pixels == other.pixels
            and self.palette == other.palette
        )

    __hash__ = None  # type: ignore[assignment]

    def pixel_offset(self, col: int, row: int) -> int:
        """Byte offset of the pixel at column ``col`` and row ``row``."""
        if not (0 <= col < self.width and 0 <= row < self.height):
            raise IndexError(
                f"pixel ({col}, {row}) outside {self.width}x{self.height} image"
            )
        return row * self.scanline + col * self.bytes_per_pixel

    def get_pixel(self, col: int, row: int) -> tuple[int, ...]:
        offset = self.pixel_offset(col, row)
        return tuple(self.pixels[offset:offset + self.bytes_per_pixel])

    def set_pixel(self, col: int, row: int, values: Iterable[int]) -> None:
        raw = bytes(values)
        if len(raw) != self.bytes_per_pixel:
            raise ValueError(
                f"expected {self.bytes_per_pixel} channel values, got {len(raw)}"
            )
        offset = self.pixel_offset(col, row)
        self.pixels[offset:offset + len(raw)] = raw

    def write_row(self, col: int, row: int, data: bytes) -> None:
        """Copy raw pixel bytes into a row, starting at column ``col``."""
        offset = self.pixel_offset(col, row)
        row_end = (row + 1) * self.scanline
        if offset + len(data) > row_end:
            raise ValueError(
                f"{len(data)} bytes at column {col} overrun row {row}"
            )
        self.pixels[offset:offset + len(data)] = data

    def section(self, left: int, top: int, width: int, height: int) -> "Image":
        """Copy out a rectangular part of the image."""
        if left < 0 or top < 0 or left + width > self.width or top + height > self.height:
            raise ValueError(
                f"section {width}x{height} at ({left}, {top}) outside "
                f"{self.width}x{self.height} image"
            )
        result = Image(height, width, self.format)
        line = width * self.bytes_per_pixel
        for row in range(height):
            start = (top + row) * self.scanline + left * self.bytes_per_pixel
            result.pixels[row * line:(row + 1) * line] = self.pixels[start:start + line]
        if self.palette is not None:
            result.palette = bytearray(self.palette)
        return result

    def rotate_counterclockwise(self) -> "Image":
        """Swap rows and columns: pixel (x, y) moves to (y, x).

        Sprite sheets store turned sprites this way, so applying it
        restores them upright.
        """
        bpp = self.bytes_per_pixel
        result = Image(self.width, self.height, self.format)
        line = result.scanline
        for x in range(self.width):
            for channel in range(bpp):
                result.pixels[x * line + channel:(x + 1) * line:bpp] = (
                    self.pixels[x * bpp + channel::self.scanline]
                )
        if self.palette is not None:
            result.palette = bytearray(self.palette)
        return result


def drop_alpha(image: Image) -> Image:
    """Return an RGB copy of a fully opaque RGBA image, else the image itself."""
    if image.format is not ImageFormat.RGBA32:
        return image
    alpha = image.pixels[3::4]
    if alpha.count(0xFF) != len(alpha):
        return image
    result = Image(image.height, image.width, ImageFormat.RGB24)
    for channel in range(3):
        result.pixels[channel::3] = image.pixels[channel::4]
    return result


def _chunk(tag: bytes, payload: bytes) -> bytes:
    return (
        struct.pack(">I", len(payload))
        + tag
        + payload
        + struct.pack(">I", zlib.crc32(tag + payload))
    )


def encode_png(image: Image) -> bytes:
    """Encode an image as an 8-bit, non-interlaced PNG."""
    header = struct.pack(
        ">IIBBBBB", image.width, image.height, 8, image.format.png_color_type, 0, 0, 0
    )
    pixels = image.pixels
    bpp = image.bytes_per_pixel
    if bpp >= 3:
        pixels = bytearray(image.pixels)
        pixels[0::bpp] = image.pixels[2::bpp]
        pixels[2::bpp] = image.pixels[0::bpp]
    line = image.scanline
    raw = b"".join(
        b"\0" + bytes(pixels[row * line:(row + 1) * line])
        for row in range(image.height)
    )
    chunks = [PNG_SIGNATURE, _chunk(b"IHDR", header)]
    if image.palette is not None:
        chunks.append(_chunk(b"PLTE", bytes(image.palette)))
    chunks.append(_chunk(b"IDAT", zlib.compress(raw, 9)))
    chunks.append(_chunk(b"IEND", b""))
    return b"".join(chunks)


def save_png(image: Image, path: Union[str, os.PathLike]) -> None:
    Path(path).write_bytes(encode_png(image))


def optimize_and_save(image: Image, path: Union[str, os.PathLike]) -> None:
    """Save as PNG, dropping the alpha channel when it carries nothing."""
    save_png(drop_alpha(image), path)