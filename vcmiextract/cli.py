"""Command line entry point: extract game archives next to themselves."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .archives import extract_lod, extract_snd, extract_vid
from .defs import extract_def
from .hd import extract_pak
from .memfile import MemoryFile

PathLike = Union[str, os.PathLike]

_EXTRACTORS: dict[str, Callable[[MemoryFile, PathLike], object]] = {
    ".pak": extract_pak,
    ".lod": extract_lod,
    ".pac": extract_lod,
    ".snd": extract_snd,
    ".vid": extract_vid,
    ".def": extract_def,
    ".d32": extract_def,
}


def extract_file(source: PathLike, destination: PathLike) -> bool:
    """Extract ``source`` into ``destination`` according to its extension.

    Returns False when the file type is not recognised.
    """
    source = Path(source)
    file = MemoryFile.from_path(source)
    extractor = _EXTRACTORS.get(source.suffix.lower())
    if extractor is None:
        print(f"unrecognized file type '{source}'")
        return False
    extractor(file, destination)
    return True


def process(filename: str) -> bool:
    """Extract a file into a directory named after it, beside it."""
    source = Path(filename).absolute()
    target = source.parent / source.stem

    if not source.is_file():
        print(f"file '{filename}' not found!")
        return False
    if target.is_file():
        print(f"output path for '{filename}' is not a directory!")
        return False
    return extract_file(source, target)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    status = 0
    for name in args:
        try:
            process(name)
        except (ValueError, IndexError, OSError) as exc:
            print(f"failed to extract '{name}': {exc}", file=sys.stderr)
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())