"""Extraction of LOD, SND and VID archives."""

from __future__ import annotations

import os
import zlib
from dataclasses import dataclass
from typing import Union

from .memfile import BytesLike, FormatError, MemoryFile
from .output import save_file

PathLike = Union[str, os.PathLike]

_LOD_COUNT_OFFSET = 8
_LOD_TABLE_OFFSET = 0x5C


def _as_file(file: Union[MemoryFile, BytesLike]) -> MemoryFile:
    return file if isinstance(file, MemoryFile) else MemoryFile(file)


def decompress(data: BytesLike, size: int) -> bytes:
    """Inflate a complete zlib stream into a buffer of ``size`` bytes."""
    inflater = zlib.decompressobj(15)
    try:
        output = inflater.decompress(bytes(data))
    except zlib.error as exc:
        raise FormatError(f"corrupt compressed data: {exc}") from exc
    if not inflater.eof:
        raise FormatError("compressed data ends before the end of the stream")
    if len(output) > size:
        raise FormatError(f"decompressed {len(output)} bytes, expected at most {size}")
    return output.ljust(size, b"\0")


@dataclass
class _LodEntry:
    name: str
    offset: int
    full_size: int
    compressed_size: int


def extract_lod(file: Union[MemoryFile, BytesLike], destination: PathLike) -> None:
    """Extract every entry of a LOD archive into ``destination``."""
    file = _as_file(file)
    file.seek(_LOD_COUNT_OFFSET)
    total = file.read_u32()
    file.seek(_LOD_TABLE_OFFSET)

    entries = []
    for _ in range(total):
        name = file.read_name(16)
        offset, full_size, _unused, compressed_size = file.read_u32s(4)
        entries.append(_LodEntry(name, offset, full_size, compressed_size))

    for entry in entries:
        file.seek(entry.offset)
        if entry.compressed_size:
            data = decompress(file.read(entry.compressed_size), entry.full_size)
        else:
            data = file.read(entry.full_size)
        save_file(data, destination, entry.name)


def extract_snd(file: Union[MemoryFile, BytesLike], destination: PathLike) -> None:
    """Extract the sounds of an SND archive as WAV files."""
    file = _as_file(file)
    total = file.read_u32()
    entries = []
    for _ in range(total):
        name = file.read_name(40)
        offset, size = file.read_u32s(2)
        entries.append((name, offset, size))

    for name, offset, size in entries:
        file.seek(offset)
        save_file(file.read(size), destination, name + ".wav")


def extract_vid(file: Union[MemoryFile, BytesLike], destination: PathLike) -> None:
    """Extract the videos of a VID archive; each runs up to the next one."""
    file = _as_file(file)
    total = file.read_u32()
    entries = []
    for _ in range(total):
        name = file.read_name(40)
        entries.append((name, file.read_u32()))

    ends = [begin for _, begin in entries[1:]] + [len(file)]
    for (name, begin), end in zip(entries, ends):
        if end < begin:
            raise FormatError(f"entry '{name}' ends before it begins")
        file.seek(begin)
        save_file(file.read(end - begin), destination, name)