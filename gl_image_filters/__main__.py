"""
Command line entry point.

Usage:
    $ python -m gl_image_filters photo.jpg -o out.png --filter kernel --kernel sharpen
"""

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from .config import RenderConfig, parse_size
from .errors import FilterPipelineError
from .filters import KERNEL_PRESETS, FilterMode, gradient_palette, make_filter
from .imaging import load_image
from .logging_config import setup_logging
from .session import FilterSession


def _parse_weights(text: str) -> List[float]:
    try:
        weights = [float(part) for part in text.split(",")]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"weights must be numbers: {text!r}") from exc
    if len(weights) != 9:
        raise argparse.ArgumentTypeError(f"expected 9 weights, got {len(weights)}")
    return weights


def _parse_size(text: str):
    try:
        return parse_size(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gl_image_filters", description="Apply a GPU pixel filter to an image."
    )
    parser.add_argument("input", help="input image file")
    parser.add_argument("-o", "--output", required=True, help="output image file (format from suffix)")
    parser.add_argument(
        "--filter",
        default=FilterMode.NONE.value,
        choices=[mode.value for mode in FilterMode],
        help="filter to apply (default: none)",
    )
    kernel_group = parser.add_mutually_exclusive_group()
    kernel_group.add_argument("--kernel", choices=sorted(KERNEL_PRESETS), help="kernel preset for --filter kernel")
    kernel_group.add_argument("--weights", type=_parse_weights, help="9 comma-separated kernel weights")
    parser.add_argument("--kernel-weight", type=float, help="kernel divisor (default: sum of weights)")
    palette_group = parser.add_mutually_exclusive_group()
    palette_group.add_argument("--palette", help="palette strip image for --filter palette")
    palette_group.add_argument("--palette-colors", help="comma-separated hex colours forming a gradient palette")
    size_group = parser.add_mutually_exclusive_group()
    size_group.add_argument("--size", type=_parse_size, help="output surface size WxH (default: 500x500)")
    size_group.add_argument("--native-size", action="store_true", help="render at the input image size")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    kernel_options = args.kernel is not None or args.weights is not None or args.kernel_weight is not None
    if kernel_options and args.filter != FilterMode.KERNEL.value:
        parser.error("--kernel, --weights and --kernel-weight require --filter kernel")
    if (args.palette or args.palette_colors) and args.filter != FilterMode.COLOR_PALETTE.value:
        parser.error("--palette and --palette-colors require --filter palette")

    try:
        config = RenderConfig.from_env()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    setup_logging(logging.DEBUG if args.verbose else config.log_level)

    try:
        image = load_image(args.input)

        palette = None
        if args.palette:
            palette = load_image(args.palette)
        elif args.palette_colors:
            palette = gradient_palette(args.palette_colors.split(","))

        image_filter = make_filter(
            args.filter,
            kernel=args.weights if args.weights is not None else args.kernel,
            kernel_weight=args.kernel_weight,
            palette=palette,
        )
    except (FilterPipelineError, ValueError, KeyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    surface_size = config.surface_size
    if args.native_size:
        surface_size = image.size
    elif args.size:
        surface_size = args.size

    config = dataclasses.replace(config, surface_size=surface_size)
    with FilterSession(config) as session:
        if not session.open(image, image_filter):
            print(f"error: {session.last_error}", file=sys.stderr)
            return 1
        try:
            session.export(args.output)
        except (ValueError, OSError) as exc:
            print(f"error: could not write {args.output}: {exc}", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
