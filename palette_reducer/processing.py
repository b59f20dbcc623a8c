"""High-level image reduction pipeline: scan, reduce, remap and write outputs."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from PIL import Image

from .palette_ops import ColorTuple, InvalidInputError, key_to_color
from .quantization import Palette, Quantizer


logger = logging.getLogger(__name__)

SWATCH_BLOCK = 4
REDUCED_SUFFIX = "_reduced_"
PALETTE_SUFFIX = "_palette_"


@dataclass(slots=True)
class ProcessOptions:
    input_path: Path
    output_dir: Path | None = None  # defaults to the input's folder
    palette_sizes: str | int | Sequence[int] = (16,)
    write_act: bool = True
    swatch_block: int = SWATCH_BLOCK


@dataclass(slots=True)
class ReducedOutput:
    size: int
    colors: List[ColorTuple]
    image_path: Path
    palette_path: Path
    act_path: Path | None
    mean_squared_error: float


@dataclass(slots=True)
class ProcessResult:
    input_path: Path
    distinct_colors: int
    outputs: List[ReducedOutput] = field(default_factory=list)


@dataclass(slots=True)
class ScanResult:
    """Distinct colour keys of an image and, per pixel, the index of its key."""

    keys: np.ndarray
    inverse: np.ndarray
    alpha: np.ndarray | None


def parse_palette_sizes(value: str | int | Iterable[int | str]) -> List[int]:
    """Normalise ``"16"``, ``16`` or ``"32,8,16"`` into sorted unique sizes."""

    if isinstance(value, int):
        raw: List[int | str] = [value]
    elif isinstance(value, str):
        raw = [part.strip() for part in value.split(",")]
    else:
        raw = list(value)
    if not raw:
        raise InvalidInputError("Expected at least one palette size")
    sizes = set()
    for item in raw:
        if isinstance(item, bool):
            raise InvalidInputError(f"Palette size must be an integer, got {item!r}")
        if isinstance(item, int):
            size = item
        else:
            try:
                size = int(str(item).strip())
            except ValueError:
                raise InvalidInputError(
                    f"Palette size must be an integer, got {item!r}"
                ) from None
        if size <= 0:
            raise InvalidInputError(f"Palette size must be positive, got {size}")
        sizes.add(size)
    return sorted(sizes)


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in {"RGBA", "LA", "PA", "RGBa", "La"} or "transparency" in image.info


def prepare_image(image: Image.Image) -> Image.Image:
    """Return an RGB or RGBA copy of ``image``, rejecting empty images."""

    width, height = image.size
    if width == 0 or height == 0:
        raise InvalidInputError(f"Image has no pixels ({width}x{height})")
    target = "RGBA" if _has_alpha(image) else "RGB"
    if image.mode == target:
        return image.copy()
    logger.debug("Converting image mode=%s -> %s", image.mode, target)
    return image.convert(target)


def load_image(path: Path) -> Image.Image:
    with Image.open(path) as img:
        return prepare_image(img)


def scan_image(image: Image.Image, quantizer: Quantizer) -> ScanResult:
    """Feed every distinct colour of ``image`` into ``quantizer``.

    Colours reach the octree in the order they first appear in the image
    (row-major), which decides which colour keeps each ancestor slot.
    """

    pixels = np.asarray(image)
    height, width = pixels.shape[:2]
    rgb = pixels[..., :3].astype(np.uint32).reshape(-1, 3)
    packed = (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]
    keys, first_index, inverse, counts = np.unique(
        packed, return_index=True, return_inverse=True, return_counts=True
    )
    for idx in np.argsort(first_index, kind="stable"):
        quantizer.observe(key_to_color(int(keys[idx])), int(counts[idx]))
    alpha = pixels[..., 3].copy() if pixels.ndim == 3 and pixels.shape[2] == 4 else None
    logger.debug(
        "Scanned %sx%s pixels containing %s unique colours", width, height, len(keys)
    )
    return ScanResult(keys=keys, inverse=inverse.reshape(height, width), alpha=alpha)


def remap_image(scan: ScanResult, palette: Palette) -> Image.Image:
    """Rebuild the scanned image with every colour swapped for its replacement."""

    lut = np.array(
        [palette.mapping[int(key)].rgb() for key in scan.keys], dtype=np.uint8
    ).reshape(-1, 3)
    out = lut[scan.inverse]
    if scan.alpha is not None:
        out = np.dstack([out, scan.alpha])
    return Image.fromarray(out)


def build_swatch(colors: Sequence[ColorTuple], block: int = SWATCH_BLOCK) -> Image.Image:
    """Lay ``colors`` out row-major as ``block``-sized squares on a square grid.

    Cells past the last colour stay fully transparent. An empty palette still
    gives a single transparent block so the file can be written.
    """

    per_row = max(1, math.ceil(math.sqrt(len(colors))))
    side = per_row * block
    canvas = np.zeros((side, side, 4), dtype=np.uint8)
    for index, (r, g, b) in enumerate(colors):
        row, col = divmod(index, per_row)
        y0, x0 = row * block, col * block
        canvas[y0 : y0 + block, x0 : x0 + block] = (r, g, b, 255)
    return Image.fromarray(canvas)


def write_act(path: Path, colors: Sequence[ColorTuple]) -> None:
    limited = list(colors[:256])
    padded = limited + [(0, 0, 0)] * (256 - len(limited))
    with path.open("wb") as fh:
        for r, g, b in padded:
            fh.write(bytes((r, g, b)))


@dataclass(slots=True)
class Reduction:
    size: int
    palette: Palette
    image: Image.Image
    mean_squared_error: float


def reduce_image(
    image: Image.Image,
    sizes: str | int | Iterable[int],
    quantizer: Quantizer | None = None,
) -> List[Reduction]:
    """Reduce ``image`` to each palette size, smallest first.

    One selection is computed for the largest size and every smaller size
    reuses its prefix.
    """

    ordered = parse_palette_sizes(sizes)
    prepared = prepare_image(image)
    if quantizer is None:
        quantizer = Quantizer()
    scan = scan_image(prepared, quantizer)
    selection = quantizer.select(ordered[-1])
    reductions: List[Reduction] = []
    for size in ordered:
        palette = quantizer.reduce(size, selection)
        error = quantizer.mean_squared_error(palette)
        logger.debug("Reduced to size=%s colours=%s mse=%.3f", size, palette.size, error)
        reductions.append(
            Reduction(
                size=size,
                palette=palette,
                image=remap_image(scan, palette),
                mean_squared_error=error,
            )
        )
    return reductions


def output_paths(input_path: Path, output_dir: Path, size: int) -> Tuple[Path, Path, Path]:
    stem = input_path.stem
    image_path = output_dir / f"{stem}{REDUCED_SUFFIX}{size}.png"
    palette_path = output_dir / f"{stem}{PALETTE_SUFFIX}{size}.png"
    return image_path, palette_path, palette_path.with_suffix(".act")


def process_file(options: ProcessOptions) -> ProcessResult:
    sizes = parse_palette_sizes(options.palette_sizes)
    image = load_image(options.input_path)
    output_dir = options.output_dir or options.input_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    quantizer = Quantizer()
    reductions = reduce_image(image, sizes, quantizer)
    result = ProcessResult(
        input_path=options.input_path, distinct_colors=quantizer.distinct_colors
    )
    for reduction in reductions:
        image_path, palette_path, act_path = output_paths(
            options.input_path, output_dir, reduction.size
        )
        reduction.image.save(image_path)
        colors = reduction.palette.rgb_colors()
        build_swatch(colors, options.swatch_block).save(palette_path)
        if options.write_act:
            write_act(act_path, colors)
        else:
            act_path = None
        logger.debug(
            "Wrote size=%s image=%s palette=%s", reduction.size, image_path, palette_path
        )
        result.outputs.append(
            ReducedOutput(
                size=reduction.size,
                colors=colors,
                image_path=image_path,
                palette_path=palette_path,
                act_path=act_path,
                mean_squared_error=reduction.mean_squared_error,
            )
        )
    return result
