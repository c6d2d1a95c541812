"""
SVG output generation for stitched chains.

Writes every chain as a single straight-line path so a plotter can
draw it without lifting the pen.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Mapping

from .types import PathSegment, StitchResult, VisualAttrs


SVG_NS = "http://www.w3.org/2000/svg"


def create_svg_root(width: str, height: str, viewbox: str) -> ET.Element:
    """
    Create an SVG root element sized like the input document.

    Empty dimension attributes are left out.
    """
    root = ET.Element("svg", {"xmlns": SVG_NS, "version": "1.1"})
    for key, value in (("width", width), ("height", height), ("viewBox", viewbox)):
        if value:
            root.set(key, value)
    return root


def format_number(value: float) -> str:
    """Shortest text that reads back as exactly the same float."""
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


def chain_to_d(chain: PathSegment) -> str:
    """
    Convert a chain to a path d attribute.

    Closed chains end with Z instead of repeating the first point.
    Coordinates are written at full precision.
    """
    first, rest = chain.points[0], chain.points[1:]
    parts = [f"M {format_number(first.x)} {format_number(first.y)}"]
    parts.extend(f"L {format_number(p.x)} {format_number(p.y)}" for p in rest)
    if chain.closed:
        parts.append("Z")
    return " ".join(parts)


def create_path_element(d: str, visual_attrs: VisualAttrs) -> ET.Element:
    """
    Create a path element drawn with the given stroke.

    Args:
        d: Path d attribute
        visual_attrs: Stroke of the path; the transform is applied by
            the enclosing group

    Returns:
        Path Element
    """
    elem = ET.Element("path")
    elem.set("d", d)
    elem.set("fill", "none")
    for key, value in visual_attrs.to_svg_attrs().items():
        elem.set(key, value)
    elem.set("stroke-linecap", "round")
    elem.set("stroke-linejoin", "round")
    return elem


def build_stitched_svg(
    results_by_attrs: Mapping[VisualAttrs, StitchResult],
    width: str,
    height: str,
    viewbox: str,
) -> ET.ElementTree:
    """
    Build an SVG document holding one path per chain.

    Each attribute group becomes its own <g> element carrying the
    group's transform, so every chain is drawn in the coordinate space
    its fragments came from.

    Args:
        results_by_attrs: Stitching result per attribute group
        width: SVG width
        height: SVG height
        viewbox: SVG viewBox

    Returns:
        ElementTree ready to be written
    """
    root = create_svg_root(width, height, viewbox)

    chain_index = 0
    for group_index, attrs in enumerate(sorted(results_by_attrs, key=VisualAttrs.sort_key)):
        result = results_by_attrs[attrs]

        group = ET.SubElement(root, "g")
        group.set("id", f"chains-{group_index}")
        if attrs.transform:
            group.set("transform", attrs.transform)
        title = ET.SubElement(group, "title")
        title.text = (
            f"{result.stats.total_chains} stitched chains, "
            f"stroke {attrs.stroke_color} width {format_number(attrs.stroke_width)}"
        )

        for chain in result.chains:
            path_elem = create_path_element(chain_to_d(chain), attrs)
            path_elem.set("id", f"chain-{chain_index}")
            group.append(path_elem)
            chain_index += 1

    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return tree


def write_stitched_svg(
    output_path: Path,
    results_by_attrs: Mapping[VisualAttrs, StitchResult],
    width: str,
    height: str,
    viewbox: str,
) -> None:
    """
    Write stitched chains to an SVG file.

    Args:
        output_path: Path to write the SVG file
        results_by_attrs: Stitching result per attribute group
        width: SVG width
        height: SVG height
        viewbox: SVG viewBox
    """
    tree = build_stitched_svg(results_by_attrs, width, height, viewbox)

    with open(output_path, "wb") as f:
        tree.write(f, encoding="UTF-8", xml_declaration=True)


def print_stitch_stats(result: StitchResult, label: str = "") -> None:
    """
    Print statistics about a stitching result.

    Args:
        result: StitchResult to report on
        label: Optional label for the output
    """
    stats = result.stats
    prefix = f"{label}: " if label else ""

    print(f"{prefix}Input segments: {stats.total_input_segments}")
    print(f"{prefix}Output chains: {stats.total_chains}")
    print(f"{prefix}Closed chains: {stats.closed_chains}")
    print(f"{prefix}Ambiguous junctions: {stats.ambiguous_junctions}")
    print(f"{prefix}Max chain points: {stats.max_chain_points}")
    print(f"{prefix}Total length: {stats.total_length:.2f}")

    reduction = (
        stats.pen_lifts_saved / stats.total_input_segments * 100
        if stats.total_input_segments > 0
        else 0
    )
    print(f"{prefix}Pen lifts saved: {stats.pen_lifts_saved} ({reduction:.1f}%)")
