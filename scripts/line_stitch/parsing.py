"""
SVG polyline extraction.

Reads straight-line geometry from SVG files (path, polyline, polygon
and line elements) and turns every subpath into a PathSegment.
Segments are grouped by their effective transform and stroke, so
geometry from different coordinate spaces is never stitched together.
"""

import logging
import math
import re
import xml.etree.ElementTree as ET
from collections import defaultdict
from typing import IO, Iterator, Optional, Tuple, Union
from pathlib import Path

from .types import Point, PathSegment, SvgDrawing, VisualAttrs


logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"

CURVE_COMMANDS = frozenset("CcSsQqTtAa")

DRAWING_TAGS = frozenset(("path", "polyline", "polygon", "line"))

# Subtrees whose geometry is never rendered directly
NON_RENDERED_TAGS = frozenset(("defs", "clipPath", "mask", "marker", "pattern", "symbol"))

NUMBER_PATTERN = r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"

DEFAULT_STROKE_COLOR = "#000000"
DEFAULT_STROKE_WIDTH = 1.0

# (points, closed) for one subpath
Subpath = Tuple[list[Point], bool]


def parse_path_d(d: str) -> list[Tuple[str, list[float]]]:
    """
    Split a path d attribute into (command, [args]) tuples.

    Numbers may run together without separators ("M-1.5-2L.5,3e1").
    """
    return [
        (match.group(1), [float(x) for x in re.findall(NUMBER_PATTERN, match.group(2))])
        for match in re.finditer(r"([MmLlHhVvCcSsQqTtAaZz])([^MmLlHhVvCcSsQqTtAaZz]*)", d)
    ]


def parse_length(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    """
    Parse an SVG length, ignoring any unit suffix ("10px" -> 10.0).

    Returns default when the value is missing, has no leading number,
    or is not finite.
    """
    if value is None:
        return default
    match = re.match(NUMBER_PATTERN, value.strip())
    if not match:
        return default
    length = float(match.group(0))
    return length if math.isfinite(length) else default


def parse_points_attr(points: str) -> list[Point]:
    """Parse a polyline/polygon points attribute into Points."""
    values = [float(x) for x in re.findall(NUMBER_PATTERN, points)]
    return [Point(values[i], values[i + 1]) for i in range(0, len(values) - 1, 2)]


def dedupe_consecutive(points: list[Point]) -> list[Point]:
    """Drop points identical to their predecessor."""
    result: list[Point] = []
    for point in points:
        if not result or result[-1] != point:
            result.append(point)
    return result


def is_finite_subpath(points: list[Point]) -> bool:
    return all(math.isfinite(p.x) and math.isfinite(p.y) for p in points)


def path_d_to_subpaths(d: str) -> Optional[list[Subpath]]:
    """
    Execute straight-line path commands into subpaths.

    Each M/m starts a new subpath; Z/z closes the current one.

    Args:
        d: SVG path d attribute string

    Returns:
        List of (points, closed) tuples, or None if the path contains
        curve commands.
    """
    commands = parse_path_d(d)
    if any(cmd in CURVE_COMMANDS for cmd, _ in commands):
        return None

    subpaths: list[Subpath] = []
    current: list[Point] = []
    current_x, current_y = 0.0, 0.0
    subpath_start_x, subpath_start_y = 0.0, 0.0

    def flush(closed: bool) -> None:
        nonlocal current
        if current:
            subpaths.append((current, closed))
        current = []

    def line_to(x: float, y: float) -> None:
        nonlocal current_x, current_y
        if not current:
            current.append(Point(current_x, current_y))
        current_x, current_y = x, y
        current.append(Point(x, y))

    for cmd, args in commands:
        if cmd in ("M", "m"):
            flush(False)
            if len(args) < 2:
                continue
            if cmd == "M":
                current_x, current_y = args[0], args[1]
            else:
                current_x += args[0]
                current_y += args[1]
            subpath_start_x, subpath_start_y = current_x, current_y
            current.append(Point(current_x, current_y))
            # Implicit lineto after M
            for i in range(2, len(args) - 1, 2):
                if cmd == "M":
                    line_to(args[i], args[i + 1])
                else:
                    line_to(current_x + args[i], current_y + args[i + 1])

        elif cmd == "L":
            for i in range(0, len(args) - 1, 2):
                line_to(args[i], args[i + 1])

        elif cmd == "l":
            for i in range(0, len(args) - 1, 2):
                line_to(current_x + args[i], current_y + args[i + 1])

        elif cmd == "H":
            for val in args:
                line_to(val, current_y)

        elif cmd == "h":
            for val in args:
                line_to(current_x + val, current_y)

        elif cmd == "V":
            for val in args:
                line_to(current_x, val)

        elif cmd == "v":
            for val in args:
                line_to(current_x, current_y + val)

        elif cmd in ("Z", "z"):
            flush(True)
            current_x, current_y = subpath_start_x, subpath_start_y

    flush(False)
    return subpaths


def subpath_to_segment(
    points: list[Point],
    closed: bool,
    epsilon: float,
) -> Optional[PathSegment]:
    """
    Build a PathSegment from a subpath.

    Returns None for subpaths with fewer than 2 distinct points.
    """
    points = dedupe_consecutive(points)
    if len(points) < 2:
        return None
    if closed and points[-1] != points[0]:
        points = points + [points[0]]
    return PathSegment.from_points(points, epsilon)


def _local_tag(elem: ET.Element) -> str:
    """Element tag without the SVG namespace."""
    tag = elem.tag
    if isinstance(tag, str) and tag.startswith(f"{{{SVG_NS}}}"):
        return tag[len(SVG_NS) + 2:]
    return tag


def element_subpaths(elem: ET.Element) -> Optional[list[Subpath]]:
    """
    Extract subpaths from a single drawing element.

    Returns None for elements without usable straight-line geometry:
    paths with curves, or lines with unparsable or non-finite
    coordinates.
    """
    tag = _local_tag(elem)

    if tag == "path":
        d = elem.get("d", "")
        if not d:
            return []
        return path_d_to_subpaths(d)

    if tag in ("polyline", "polygon"):
        points = parse_points_attr(elem.get("points", ""))
        return [(points, tag == "polygon")]

    if tag == "line":
        # Missing coordinates default to 0; unreadable ones invalidate the line
        coords = [
            0.0 if elem.get(name) is None else parse_length(elem.get(name))
            for name in ("x1", "y1", "x2", "y2")
        ]
        if None in coords:
            return None
        x1, y1, x2, y2 = coords
        return [([Point(x1, y1), Point(x2, y2)], False)]

    return None


def _join_transforms(outer: Optional[str], inner: Optional[str]) -> Optional[str]:
    """Compose transform lists; the outer one applies last."""
    parts = [t.strip() for t in (outer, inner) if t and t.strip()]
    return " ".join(parts) if parts else None


def iter_drawing_elements(
    elem: ET.Element,
    inherited: VisualAttrs,
) -> Iterator[Tuple[ET.Element, VisualAttrs]]:
    """
    Walk the rendered part of an SVG tree.

    Yields each drawing element with the transform and stroke it is
    drawn with, inherited from enclosing groups. Non-rendered subtrees
    such as <defs> and <clipPath> are skipped.
    """
    for child in elem:
        tag = _local_tag(child)
        if tag in NON_RENDERED_TAGS:
            continue

        attrs = VisualAttrs(
            stroke_width=parse_length(child.get("stroke-width"), inherited.stroke_width),
            stroke_color=child.get("stroke", inherited.stroke_color),
            transform=_join_transforms(inherited.transform, child.get("transform")),
        )

        if tag in DRAWING_TAGS:
            yield (child, attrs)
        else:
            yield from iter_drawing_elements(child, attrs)


def parse_svg(svg_path: Union[Path, IO[str]], epsilon: float) -> SvgDrawing:
    """
    Parse all straight-line geometry from an SVG file.

    Args:
        svg_path: Path to the SVG file, or an open file object
        epsilon: Tolerance for detecting already-closed subpaths

    Returns:
        SvgDrawing with the document dimensions and the segments
        grouped by VisualAttrs
    """
    root = ET.parse(svg_path).getroot()

    groups: dict[VisualAttrs, list[PathSegment]] = defaultdict(list)
    root_attrs = VisualAttrs(
        stroke_width=parse_length(root.get("stroke-width"), DEFAULT_STROKE_WIDTH),
        stroke_color=root.get("stroke", DEFAULT_STROKE_COLOR),
        transform=None,
    )

    for elem, attrs in iter_drawing_elements(root, root_attrs):
        subpaths = element_subpaths(elem)
        if subpaths is None:
            logger.warning(
                "Skipping %s element without usable straight-line geometry (id=%s)",
                _local_tag(elem), elem.get("id"),
            )
            continue

        for points, closed in subpaths:
            if not is_finite_subpath(points):
                logger.warning(
                    "Skipping subpath with non-finite coordinates in %s element (id=%s)",
                    _local_tag(elem), elem.get("id"),
                )
                continue
            segment = subpath_to_segment(points, closed, epsilon)
            if segment is None:
                logger.debug("Dropping degenerate subpath in element id=%s", elem.get("id"))
                continue
            groups[attrs].append(segment)

    if len(groups) > 1:
        logger.info("Read %d attribute groups; each is stitched separately", len(groups))

    return SvgDrawing(
        width=root.get("width", "100%"),
        height=root.get("height", "100%"),
        viewbox=root.get("viewBox", ""),
        groups=dict(groups),
    )
