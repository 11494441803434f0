"""Writing extracted images and files to disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .image import Image, optimize_and_save
from .memfile import BytesLike, FormatError, MemoryFile
from .pcx import load_pcx

PathLike = Union[str, os.PathLike]

_IMAGE_EXTENSIONS = {".pcx", ".p32"}


def save_image(image: Image, destination: PathLike, filename: str) -> Path:
    """Save ``image`` as PNG under ``destination``; returns the path written."""
    directory = Path(destination)
    directory.mkdir(parents=True, exist_ok=True)
    path = (directory / filename).with_suffix(".png")
    optimize_and_save(image, path)
    return path


def save_file(data: Union[MemoryFile, BytesLike], destination: PathLike, filename: str) -> Path:
    """Save an extracted file, converting PCX and P32 images to PNG.

    Images that cannot be decoded are written unchanged.
    """
    directory = Path(destination)
    directory.mkdir(parents=True, exist_ok=True)
    raw = data.getvalue() if isinstance(data, MemoryFile) else bytes(data)

    if Path(filename).suffix.lower() in _IMAGE_EXTENSIONS:
        try:
            image = load_pcx(MemoryFile(raw))
        except FormatError:
            pass
        else:
            return save_image(image, directory, filename)

    path = directory / filename
    path.write_bytes(raw)
    return path