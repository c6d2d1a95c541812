"""
Command-line interface for polyline stitching.

Usage:
    python -m line_stitch <input.svg> [output.svg] [--epsilon=0.5]
    line-stitch <input.svg> [output.svg] [--allow-ambiguous]
"""

import argparse
import logging
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Sequence

from .types import StitchOptions
from .parsing import parse_svg
from .stitching import stitch_by_visual_attrs
from .output import write_stitched_svg, print_stitch_stats


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Stitch SVG polyline fragments into continuous plotter paths"
    )
    parser.add_argument("input", help="Input SVG file")
    parser.add_argument("output", nargs="?", help="Output SVG file (default: input-stitched.svg)")
    parser.add_argument(
        "--epsilon",
        type=float,
        default=0.5,
        help="Endpoint matching tolerance (default: 0.5)",
    )
    parser.add_argument(
        "--allow-ambiguous",
        action="store_true",
        help="Resolve junctions with several candidates instead of deferring them",
    )
    parser.add_argument(
        "--cell-size",
        type=float,
        default=None,
        help="Spatial index cell size (default: 4 * epsilon)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        options = StitchOptions(
            epsilon=args.epsilon,
            allow_ambiguous=args.allow_ambiguous,
            cell_size=args.cell_size,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    if args.output:
        output_path = Path(args.output)
    else:
        output_path = input_path.with_stem(input_path.stem + "-stitched")

    print(f"Input: {input_path}")
    print(f"Output: {output_path}")
    print(f"Epsilon: {options.epsilon}")
    print()

    print("Parsing SVG geometry...")
    try:
        drawing = parse_svg(input_path, options.epsilon)
    except ET.ParseError as e:
        print(f"Error: Could not parse {input_path}: {e}", file=sys.stderr)
        return 1
    print(
        f"Extracted {drawing.segment_count} polyline segments "
        f"in {len(drawing.groups)} attribute groups"
    )

    if not drawing.segment_count:
        print("No segments found to stitch")
        return 1

    print("\nStitching segments...")
    results = stitch_by_visual_attrs(drawing.groups, options)

    print("\nStitching results:")
    for attrs, result in results.items():
        label = f"[{attrs.stroke_color} {attrs.stroke_width:g}"
        if attrs.transform:
            label += f" {attrs.transform}"
        label += "]"
        print_stitch_stats(result, label if len(results) > 1 else "")
    print(f"Total output paths: {sum(r.stats.total_chains for r in results.values())}")

    print(f"\nWriting output to {output_path}...")
    write_stitched_svg(output_path, results, drawing.width, drawing.height, drawing.viewbox)

    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
