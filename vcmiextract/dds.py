"""Decoding of DXT1 and DXT5 compressed DDS textures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Iterator, Union

from .image import Image, ImageFormat
from .memfile import BytesLike, FormatError, MemoryFile

DDS_MAGIC = 0x20534444
_HEADER_SIZE = 124
_PIXEL_FORMAT_SIZE = 32
_BLOCK_SIZE = 4
_BLOCK_AREA = _BLOCK_SIZE * _BLOCK_SIZE


class HeaderFlags(IntFlag):
    CAPS = 0x000001
    HEIGHT = 0x000002
    WIDTH = 0x000004
    PITCH = 0x000008
    PIXELFORMAT = 0x001000
    MIPMAPCOUNT = 0x020000
    LINEARSIZE = 0x080000
    DEPTH = 0x800000


class CapsFlags(IntFlag):
    COMPLEX = 0x000008
    TEXTURE = 0x001000
    MIPMAP = 0x400000


class PixelFormatFlags(IntFlag):
    ALPHAPIXELS = 0x0001
    ALPHA = 0x0002
    FOURCC = 0x0004
    RGB = 0x0040
    YUV = 0x0200
    LUMINANCE = 0x20000


class FourCC(IntEnum):
    DXT1 = 0x31545844
    DXT2 = 0x32545844
    DXT3 = 0x33545844
    DXT4 = 0x34545844
    DXT5 = 0x35545844
    DX10 = 0x30315844


_EXPECTED_FLAGS = (
    HeaderFlags.CAPS
    | HeaderFlags.HEIGHT
    | HeaderFlags.WIDTH
    | HeaderFlags.PIXELFORMAT
    | HeaderFlags.MIPMAPCOUNT
    | HeaderFlags.LINEARSIZE
)
_EXPECTED_CAPS = CapsFlags.COMPLEX | CapsFlags.MIPMAP | CapsFlags.TEXTURE
_EXPECTED_PIXEL_FLAGS = PixelFormatFlags.ALPHAPIXELS | PixelFormatFlags.FOURCC

Color = tuple[int, int, int]


@dataclass(frozen=True)
class _DdsHeader:
    header_size: int
    flags: int
    height: int
    width: int
    linear_size: int
    depth: int
    mipmap_count: int
    format_size: int
    format_flags: int
    format_code: int
    bits_count: int
    bitmasks: tuple[int, int, int, int]
    caps: tuple[int, int, int, int]
    reserved2: int

    @classmethod
    def read(cls, data: MemoryFile) -> "_DdsHeader":
        fields = data.read_u32s(31)
        return cls(
            header_size=fields[0],
            flags=fields[1],
            height=fields[2],
            width=fields[3],
            linear_size=fields[4],
            depth=fields[5],
            mipmap_count=fields[6],
            format_size=fields[18],
            format_flags=fields[19],
            format_code=fields[20],
            bits_count=fields[21],
            bitmasks=tuple(fields[22:26]),
            caps=tuple(fields[26:30]),
            reserved2=fields[30],
        )


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise FormatError(message)


def unpack_rgb565(value: int) -> Color:
    """Expand a 5:6:5 colour to 8-bit channels, lowest field first."""
    return (
        (value & 31) << 3,
        ((value >> 5) & 63) << 2,
        (value >> 11) << 3,
    )


def decode_color_block(color0: int, color1: int) -> list[Color]:
    """Return the four palette colours of a DXT colour block."""
    c0 = unpack_rgb565(color0)
    c1 = unpack_rgb565(color1)
    if color0 > color1:
        c2 = tuple(a * 2 // 3 + b // 3 for a, b in zip(c0, c1))
        c3 = tuple(a // 3 + b * 2 // 3 for a, b in zip(c0, c1))
    else:
        c2 = tuple(a // 2 + b // 2 for a, b in zip(c0, c1))
        c3 = (0, 0, 0)
    return [c0, c1, c2, c3]


def decode_alpha_block(alpha0: int, alpha1: int) -> list[int]:
    """Return the eight alpha levels of a DXT5 alpha block."""
    if alpha0 > alpha1:
        steps = [((7 - i) * alpha0 + i * alpha1) // 7 for i in range(1, 7)]
        return [alpha0, alpha1, *steps]
    steps = [((5 - i) * alpha0 + i * alpha1) // 5 for i in range(1, 5)]
    return [alpha0, alpha1, *steps, 0, 255]


def _block_pixels(header: _DdsHeader) -> Iterator[tuple[int, int]]:
    for by in range(0, header.height, _BLOCK_SIZE):
        for bx in range(0, header.width, _BLOCK_SIZE):
            yield bx, by


def _load_dxt1(header: _DdsHeader, data: MemoryFile) -> Image:
    image = Image(header.height, header.width, ImageFormat.RGB24)
    for bx, by in _block_pixels(header):
        colors = [bytes(c) for c in decode_color_block(data.read_u16(), data.read_u16())]
        lookup = data.read_u32()
        for y in range(_BLOCK_SIZE):
            for x in range(_BLOCK_SIZE):
                index = (lookup >> (2 * (y * _BLOCK_SIZE + x))) & 0x3
                offset = image.pixel_offset(bx + x, by + y)
                image.pixels[offset:offset + 3] = colors[index]
    return image


def _load_dxt5(header: _DdsHeader, data: MemoryFile) -> Image:
    image = Image(header.height, header.width, ImageFormat.RGBA32)
    for bx, by in _block_pixels(header):
        alphas = decode_alpha_block(data.read_u8(), data.read_u8())
        lookup_alpha = int.from_bytes(data.read(6), "little")
        colors = [bytes(c) for c in decode_color_block(data.read_u16(), data.read_u16())]
        lookup_color = data.read_u32()
        for y in range(_BLOCK_SIZE):
            for x in range(_BLOCK_SIZE):
                position = y * _BLOCK_SIZE + x
                index_c = (lookup_color >> (position * 2)) & 0x3
                index_a = (lookup_alpha >> (position * 3)) & 0x7
                offset = image.pixel_offset(bx + x, by + y)
                image.pixels[offset:offset + 4] = colors[index_c] + bytes((alphas[index_a],))
    return image


def load_dds(data: Union[MemoryFile, BytesLike]) -> Image:
    """Decode a single-surface DXT1 or DXT5 texture.

    Only the header layout used by the HD sprite sheets is accepted.
    """
    if not isinstance(data, MemoryFile):
        data = MemoryFile(data)

    _require(data.read_u32() == DDS_MAGIC, "not a DDS file")
    header = _DdsHeader.read(data)

    _require(header.header_size == _HEADER_SIZE, "unexpected DDS header size")
    _require(header.flags == _EXPECTED_FLAGS, "unsupported DDS header flags")
    _require(header.depth == 0, "volume textures are not supported")
    _require(header.mipmap_count == 1, "mipmapped textures are not supported")
    _require(header.caps == (int(_EXPECTED_CAPS), 0, 0, 0), "unsupported DDS caps")
    _require(header.reserved2 == 0, "unexpected reserved DDS field")
    _require(header.format_size == _PIXEL_FORMAT_SIZE, "unexpected pixel format size")
    _require(header.format_flags == _EXPECTED_PIXEL_FLAGS, "unsupported pixel format flags")
    _require(
        header.format_code in (FourCC.DXT1, FourCC.DXT5),
        f"unsupported compression 0x{header.format_code:08x}",
    )
    _require(header.bits_count == 0, "unexpected bit count for compressed texture")
    _require(header.bitmasks == (0, 0, 0, 0), "unexpected bit masks for compressed texture")
    _require(
        header.width % _BLOCK_AREA == 0 and header.height % _BLOCK_AREA == 0,
        f"texture size {header.width}x{header.height} is not block aligned",
    )

    if header.format_code == FourCC.DXT5:
        _require(
            header.linear_size == header.width * header.height,
            "DXT5 linear size does not match dimensions",
        )
        return _load_dxt5(header, data)

    _require(
        header.linear_size * 2 == header.width * header.height,
        "DXT1 linear size does not match dimensions",
    )
    return _load_dxt1(header, data)