"""Loading of PCX and P32 images from the game archives."""

from __future__ import annotations

from typing import Union

from .image import PALETTE_SIZE, Image, ImageFormat
from .memfile import BytesLike, FormatError, MemoryFile

P32F_MAGIC = 0x46323350
_P32_HEADER_SIZE = 40


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise FormatError(message)


def _load_p32(file: MemoryFile) -> Image:
    file.seek(0)
    (
        magic,
        unknown1,
        bits_per_pixel,
        size_raw,
        size_header,
        size_data,
        width,
        height,
        unknown8,
        unknown9,
    ) = file.read_u32s(10)

    _require(magic == P32F_MAGIC, "not a P32 image")
    _require(size_header == _P32_HEADER_SIZE, "unexpected P32 header size")
    _require(size_raw == size_header + size_data, "P32 sizes are inconsistent")
    _require(bits_per_pixel == 32, f"unsupported P32 bit depth {bits_per_pixel}")
    _require(size_data == width * height * bits_per_pixel // 8, "P32 data size mismatch")
    _require(unknown1 == 0 and unknown8 == 8 and unknown9 == 0, "unexpected P32 header fields")
    _require(width > 0 and height > 0, f"invalid P32 size {width}x{height}")

    image = Image(height, width, ImageFormat.RGBA32)
    for y in range(height):
        image.write_row(0, height - y - 1, file.read(width * 4))
    return image


def load_pcx(data: Union[MemoryFile, BytesLike]) -> Image:
    """Decode an indexed or true-colour PCX, or a bottom-up P32 image."""
    file = data if isinstance(data, MemoryFile) else MemoryFile(data)

    if file.peek_u32() == P32F_MAGIC:
        return _load_p32(file)

    size, width, height = file.read_u32s(3)
    _require(width > 0 and height > 0, f"invalid PCX size {width}x{height}")

    if size == width * height:
        image = Image(height, width, ImageFormat.P8)
        image.pixels[:] = file.read(width * height)
        image.palette[:] = file.read(PALETTE_SIZE)
        return image

    if size == width * height * 3:
        image = Image(height, width, ImageFormat.RGB24)
        image.pixels[:] = file.read(width * height * 3)
        return image

    raise FormatError(f"PCX size {size} does not match a {width}x{height} image")