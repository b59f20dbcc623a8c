"""Command-line interface for batch palette reduction."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List

from .file_scanner import ScanOptions, iter_image_files
from .palette_ops import InvalidInputError, PaletteError
from .processing import ProcessOptions, parse_palette_sizes, process_file


logger = logging.getLogger("palette_reducer")

DEBUG_ENV = "PALETTE_REDUCER_DEBUG"
DEBUG_LOG_ENV = "PALETTE_REDUCER_DEBUG_LOG"
DEFAULT_DEBUG_LOG = "palette_reducer_debug.log"
_DEBUG_HANDLER_NAME = "palette_reducer.debug"


def _install_excepthook() -> None:
    previous = sys.excepthook
    if getattr(previous, "_palette_reducer", False):
        return

    def _logging_excepthook(exc_type, exc_value, exc_traceback):
        logging.getLogger().error(
            "Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback)
        )
        previous(exc_type, exc_value, exc_traceback)

    _logging_excepthook._palette_reducer = True
    sys.excepthook = _logging_excepthook


def setup_debug_logging() -> Path | None:
    """Send debug logs to a file when ``PALETTE_REDUCER_DEBUG`` is set.

    Returns the log path, or ``None`` when debug logging is off. Calling it
    again replaces (and closes) the handler from the previous call.
    """

    if not os.environ.get(DEBUG_ENV):
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        return None
    log_path = Path(os.environ.get(DEBUG_LOG_ENV) or DEFAULT_DEBUG_LOG)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    for stale in [h for h in root_logger.handlers if h.get_name() == _DEBUG_HANDLER_NAME]:
        root_logger.removeHandler(stale)
        stale.close()
    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.set_name(_DEBUG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)
    root_logger.info("Palette reducer debug logging enabled at %s", log_path)
    _install_excepthook()
    return log_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reduce images to a small palette of frequency-weighted colours"
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="Input files or folders")
    parser.add_argument(
        "-c",
        "--colors",
        default="16",
        help="Palette size, or comma separated sizes such as 8,16,32",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Destination folder (defaults to the folder of each input)",
    )
    parser.add_argument(
        "--recursive", action="store_true", help="Descend into subfolders"
    )
    parser.add_argument(
        "--no-act",
        action="store_true",
        help="Do not write an ACT palette next to each swatch",
    )
    return parser


def _expand_inputs(inputs: Iterable[Path], recursive: bool) -> List[Path]:
    files: List[Path] = []
    for path in inputs:
        if path.is_file():
            files.append(path)
        elif path.is_dir():
            options = ScanOptions(roots=[path], recursive=recursive)
            files.extend(iter_image_files(options))
        else:
            raise FileNotFoundError(path)
    return files


def main(argv: list[str] | None = None) -> int:
    setup_debug_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        sizes = parse_palette_sizes(args.colors)
    except InvalidInputError as exc:
        parser.error(str(exc))

    try:
        input_files = _expand_inputs(args.inputs, args.recursive)
    except FileNotFoundError as exc:
        parser.error(f"Input path not found: {exc}")

    if not input_files:
        parser.error("No image files found")

    logger.debug("Processing files=%s sizes=%s", len(input_files), sizes)
    successes = 0
    failures = 0
    for file_path in input_files:
        options = ProcessOptions(
            input_path=file_path,
            output_dir=args.out,
            palette_sizes=sizes,
            write_act=not args.no_act,
        )
        try:
            result = process_file(options)
        except (PaletteError, OSError) as exc:
            failures += 1
            logger.debug("Failed %s", file_path, exc_info=True)
            print(f"[FAIL] {file_path}: {exc}")
            continue
        successes += 1
        print(f"[OK] {file_path.name}: {result.distinct_colors} unique colours")
        for output in result.outputs:
            print(
                f"  {output.size:>4} -> {len(output.colors)} colours, "
                f"mse {output.mean_squared_error:.2f} ({output.image_path.name})"
            )

    print(f"Completed {successes} file(s), {failures} failure(s).")
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
