"""Directory scanning helpers for batch palette reduction."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

_IMAGE_EXTENSIONS = {
    ".png",
    ".bmp",
    ".gif",
    ".jpg",
    ".jpeg",
    ".tga",
    ".tif",
    ".tiff",
    ".webp",
}

# files written by a previous run, e.g. "photo_reduced_16.png"
_GENERATED_NAME = re.compile(r"_(reduced|palette)_\d+$")


def is_generated_output(path: Path) -> bool:
    return bool(_GENERATED_NAME.search(path.stem))


@dataclass(slots=True)
class ScanOptions:
    roots: Sequence[Path]
    recursive: bool = False
    allowed_exts: Iterable[str] | None = None
    include_generated: bool = False


def iter_image_files(options: ScanOptions) -> Iterator[Path]:
    """Yield source images under the given roots in a stable order."""

    allowed = {
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in (options.allowed_exts or _IMAGE_EXTENSIONS)
    }
    for root in options.roots:
        root = root.expanduser()
        candidates = root.rglob("*") if options.recursive else root.glob("*")
        for path in sorted(candidates):
            if not path.is_file() or path.suffix.lower() not in allowed:
                continue
            if not options.include_generated and is_generated_output(path):
                continue
            yield path
