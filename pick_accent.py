#!/usr/bin/env python3
"""
pick_accent.py
Pick a background accent colour for images.

Usage:
  python pick_accent.py SRC --accuracy N --border N --distance D --workers N --async --preview DIR --debug

Input:
  Any Pillow-readable image, or a folder of them. Alpha is ignored.

Output:
  One line per image: "<name>  #rrggbb". With --preview, writes
  <stem>_accent.png (the image centred on its accent colour) into DIR.

Notes:
  Border divisors: --border sets both; --vertical-border / --horizontal-border
  override one side. Larger divisors mean thinner, heavier-weighted borders.
"""

from __future__ import annotations

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from accent_picker import AccentPicker, InvalidConfiguration
from accent_picker.constants import (
    DEFAULT_ACCURACY,
    DEFAULT_MIN_MERGE_DISTANCE,
)
from accent_picker.core_types import rgb_to_hex
from accent_picker.errors import ExecutionFailure
from accent_picker.image_io import (
    is_image_file,
    load_image_rgb,
    render_preview,
    save_preview,
)
from accent_picker.picker import shutdown_shared_pool
from accent_picker.utils import (
    debug_log,
    error,
    format_seconds_compact,
    key_value_pairs_to_string,
    log,
)

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif"}


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        accuracy: sampling stride
        border / vertical_border / horizontal_border: divisors
        distance: CIEDE2000 merge distance
        workers: row bands per image (0 = size from the pool)
        use_async: run on the shared background pool
        preview: optional output folder for preview PNGs
        debug: verbose timings
    """
    parser = argparse.ArgumentParser(
        prog="pick_accent",
        description="Pick a background accent colour for image(s).",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--accuracy", type=int, default=DEFAULT_ACCURACY, help="Sampling stride"
    )
    parser.add_argument(
        "--border", type=int, default=None, help="Border divisor for both sides"
    )
    parser.add_argument(
        "--vertical-border", type=int, default=None, help="Left/right border divisor"
    )
    parser.add_argument(
        "--horizontal-border", type=int, default=None, help="Top/bottom border divisor"
    )
    parser.add_argument(
        "--distance",
        type=float,
        default=DEFAULT_MIN_MERGE_DISTANCE,
        help="CIEDE2000 merge distance",
    )
    parser.add_argument(
        "--workers", type=int, default=0, help="Row bands per image (0 = auto)"
    )
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Use the shared background pool",
    )
    parser.add_argument(
        "--preview", type=Path, default=None, help="Folder for preview PNGs"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose timings")
    return parser.parse_args(argv)


def build_picker(args: argparse.Namespace) -> AccentPicker:
    """Apply CLI flags through the picker setters. Raises InvalidConfiguration."""
    picker = AccentPicker(debug=args.debug)
    picker.set_accuracy(args.accuracy).set_min_merge_distance(args.distance)
    if args.border is not None:
        picker.set_border_divisor(args.border)
    if args.vertical_border is not None:
        picker.set_vertical_border_divisor(args.vertical_border)
    if args.horizontal_border is not None:
        picker.set_horizontal_border_divisor(args.horizontal_border)
    return picker


def collect_images(src: Path) -> List[Path]:
    if src.is_dir():
        files = [
            p
            for p in src.iterdir()
            if p.is_file()
            and p.suffix.lower() in IMAGE_EXTS
            and not p.stem.endswith("_accent")
            and is_image_file(p)
        ]
        return sorted(files, key=lambda p: p.name.lower())
    return [src]


def process_one(
    path: Path,
    picker: AccentPicker,
    workers: int,
    use_async: bool,
    executor: Optional[ThreadPoolExecutor],
    preview_dir: Optional[Path],
) -> int:
    """Pick and print the colour for one image; returns the packed colour."""
    t0 = time.perf_counter()
    rgb = load_image_rgb(path)
    t_load = time.perf_counter()

    if use_async:
        colour = picker.generate_async(rgb, lambda _c: None).result()
    elif executor is not None:
        colour = picker.generate_on_executor(
            rgb, lambda _c: None, executor, workers
        ).result()
    else:
        colour = picker.generate(rgb)
    t_pick = time.perf_counter()

    log(f"{path.name}  {rgb_to_hex(colour)}")
    if preview_dir is not None:
        preview_dir.mkdir(parents=True, exist_ok=True)
        out = save_preview(
            preview_dir / f"{path.stem}_accent.png", render_preview(rgb, colour)
        )
        if picker.debug:
            debug_log(f"preview -> {out}")
    if picker.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Size", f"{rgb.shape[1]}x{rgb.shape[0]}"),
                    ("load", format_seconds_compact(t_load - t0)),
                    ("pick", format_seconds_compact(t_pick - t_load)),
                ]
            )
        )
    return colour


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Handles a single file or a folder. Returns the process exit code.
    """
    args = parse_cli_args(argv)

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2

    try:
        picker = build_picker(args)
    except InvalidConfiguration as exc:
        error(str(exc))
        return 2
    if args.workers < 0:
        error("--workers should be >= 0")
        return 2

    picker.log_config()
    files = collect_images(src)
    if args.debug:
        debug_log(key_value_pairs_to_string([("Images", len(files))]))

    executor: Optional[ThreadPoolExecutor] = None
    if args.workers > 1 and not args.use_async:
        executor = ThreadPoolExecutor(max_workers=args.workers)
    status = 0
    try:
        for path in files:
            try:
                process_one(
                    path, picker, args.workers, args.use_async, executor, args.preview
                )
            except InvalidConfiguration as exc:
                error(f"{path.name}: {exc}")
                status = 2
            except (ExecutionFailure, OSError) as exc:
                error(f"{path.name}: {exc}")
                status = 1
    finally:
        if executor is not None:
            executor.shutdown(wait=True)
        if args.use_async:
            shutdown_shared_pool()
    return status


if __name__ == "__main__":
    sys.exit(main())
