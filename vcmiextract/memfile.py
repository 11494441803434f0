"""A little-endian read cursor over an in-memory byte buffer."""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


class FormatError(ValueError):
    """Raised when data does not have the structure expected of it."""


class MemoryFile:
    """Sequential little-endian reader over a block of bytes."""

    def __init__(self, data: BytesLike) -> None:
        self._data = bytes(data)
        self._pos = 0

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "MemoryFile":
        """Load a whole file; an empty file is rejected."""
        data = Path(path).read_bytes()
        if not data:
            raise FormatError(f"file '{path}' is empty")
        return cls(data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryFile(size={len(self._data)}, position={self._pos})"

    def read(self, count: int) -> bytes:
        """Return the next ``count`` bytes and advance past them."""
        if count < 0:
            raise ValueError("count must not be negative")
        end = self._pos + count
        if end > len(self._data):
            remaining = max(0, len(self._data) - self._pos)
            raise FormatError(
                f"cannot read {count} bytes at offset {self._pos}: "
                f"only {remaining} remain"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt: str) -> tuple:
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))

    def peek_u32(self) -> int:
        """Return the next 32-bit value without moving the cursor."""
        position = self._pos
        try:
            return self.read_u32()
        finally:
            self._pos = position

    def read_u8(self) -> int:
        return self._unpack("<B")[0]

    def read_u16(self) -> int:
        return self._unpack("<H")[0]

    def read_u32(self) -> int:
        return self._unpack("<I")[0]

    def read_u32s(self, count: int) -> tuple[int, ...]:
        """Read ``count`` consecutive 32-bit values."""
        return self._unpack(f"<{count}I")

    def read_name(self, length: int) -> str:
        """Read a fixed-size, zero-terminated name field."""
        raw = self.read(length)
        return raw.split(b"\0", 1)[0].decode("latin-1")

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int) -> None:
        if offset < 0:
            raise ValueError("offset must not be negative")
        self._pos = offset

    def skip(self, count: int) -> None:
        self.seek(self._pos + count)

    def eof(self) -> bool:
        return self._pos >= len(self._data)

    def getvalue(self) -> bytes:
        """Return the whole buffer, regardless of the cursor."""
        return self._data