"""Command-line interface for vectorforge."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from .batch import format_file_size
from .pipeline import PIPELINES, convert_image_data
from .presets import BUILT_IN_PRESETS, describe_settings, get_preset
from .svg import save_svg
from .types import (
    BOUNDARY_ORDERS,
    MAX_DIMENSION,
    ConversionSettings,
    InvalidInputError,
    PipelineConfig,
    PixelBuffer,
    VectorizationError,
)

logger = logging.getLogger(__name__)


def load_pixel_buffer(image_path: str, max_dimension: int = MAX_DIMENSION) -> PixelBuffer:
    """Decode an image file into an RGBA pixel buffer.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidInputError: If the image exceeds ``max_dimension``
    """
    with Image.open(image_path) as img:
        width, height = img.size
        if width > max_dimension or height > max_dimension:
            raise InvalidInputError(
                f"Image dimensions too large: {width}x{height} (max {max_dimension}x{max_dimension})"
            )
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return PixelBuffer.from_array(np.array(img))


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="vectorforge",
        description="Convert raster images to SVG by color layers and contour tracing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vectorforge -i input.png -o output.svg
  vectorforge -i logo.png --preset logo
  vectorforge -i photo.jpg --complexity 0.9 --color-simplification 0.1 --smoothing 0.4
  vectorforge -i input.png --pipeline high-quality --boundary traced
        """,
    )

    parser.add_argument("-i", "--input", required=True, help="Input image file path")

    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output SVG file path (default: input name with .svg extension)",
    )

    parser.add_argument(
        "--preset",
        choices=[preset.id for preset in BUILT_IN_PRESETS],
        default=None,
        help="Start from a named preset; explicit values below override it",
    )

    parser.add_argument(
        "--complexity",
        type=float,
        default=None,
        help="Detail level in [0, 1]; higher keeps smaller shapes (default: 0.5)",
    )

    parser.add_argument(
        "--colors",
        "--color-simplification",
        dest="color_simplification",
        type=float,
        default=None,
        help="Palette reduction in [0, 1]; higher means fewer colors (default: 0.5)",
    )

    parser.add_argument(
        "--smoothing",
        type=float,
        default=None,
        help="Curve smoothing in [0, 1] (default: 0.5)",
    )

    parser.add_argument(
        "--pipeline",
        choices=sorted(PIPELINES),
        default="default",
        help="Stage chain to run (default: default)",
    )

    parser.add_argument(
        "--boundary",
        choices=BOUNDARY_ORDERS,
        default=None,
        help="Boundary point ordering before simplification (default: nearest; "
        "the high-quality pipeline always uses traced)",
    )

    parser.add_argument(
        "--allow-empty",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Accept a blank SVG when nothing could be traced (default: yes)",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return parser


def build_settings(parsed: argparse.Namespace) -> ConversionSettings:
    """Combine the preset and explicit values, clamping into [0, 1]."""
    settings = ConversionSettings()
    if parsed.preset:
        settings = get_preset(parsed.preset).settings

    overrides = {}
    if parsed.complexity is not None:
        overrides["complexity"] = parsed.complexity
    if parsed.color_simplification is not None:
        overrides["color_simplification"] = parsed.color_simplification
    if parsed.smoothing is not None:
        overrides["path_smoothing"] = parsed.smoothing
    settings = replace(settings, **overrides)

    clamped = settings.clamped()
    if clamped != settings:
        print(f"Warning: settings clamped to [0, 1]: {describe_settings(clamped)}", file=sys.stderr)
    return clamped


def print_progress(stage_name: str, index: int, total: int) -> None:
    print(f"  [{index}/{total}] {stage_name}")


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(parsed.input)
    output_path = Path(parsed.output) if parsed.output else input_path.with_suffix(".svg")

    try:
        settings = build_settings(parsed)
        boundary = parsed.boundary or "nearest"
        if parsed.pipeline == "high-quality" and parsed.boundary not in (None, "traced"):
            print(
                f"Warning: --boundary {boundary} is ignored by the high-quality pipeline, "
                f"which traces outer borders",
                file=sys.stderr,
            )
        config = PipelineConfig(boundary_order=boundary, allow_empty=parsed.allow_empty)

        print(f"Processing: {input_path}")
        print(f"  Settings: {describe_settings(settings)}")
        print(f"  Pipeline: {parsed.pipeline}")

        pixels = load_pixel_buffer(str(input_path), config.max_dimension)
        result = convert_image_data(
            pixels,
            settings,
            on_progress=print_progress,
            config=config,
            pipeline=PIPELINES[parsed.pipeline](),
        )

        output_path.parent.mkdir(parents=True, exist_ok=True)
        save_svg(result.svg, str(output_path))

        print(f"  Paths: {result.metadata.get('path_count', 0)}")
        print(f"  Output saved: {output_path} ({format_file_size(result.size)})")
        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except VectorizationError as e:
        print(f"Error processing image: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading image: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
