"""
Polyline Stitching Module

Joins disjoint polyline fragments into longer continuous paths,
reducing the number of pen lifts a plotter has to perform.
"""

from .types import (
    Point,
    Rect,
    PathSegment,
    SegmentId,
    NoMatch,
    UniqueMatch,
    AmbiguousMatch,
    StitchOptions,
    StitchResult,
    VisualAttrs,
    SvgDrawing,
)
from .spatial_index import SpatialIndex
from .dual_quad_tree import DualQuadTree
from .stitching import stitch_segments, stitch_by_visual_attrs
from .parsing import parse_svg
from .output import write_stitched_svg

__all__ = [
    "Point",
    "Rect",
    "PathSegment",
    "SegmentId",
    "NoMatch",
    "UniqueMatch",
    "AmbiguousMatch",
    "StitchOptions",
    "StitchResult",
    "VisualAttrs",
    "SvgDrawing",
    "SpatialIndex",
    "DualQuadTree",
    "stitch_segments",
    "stitch_by_visual_attrs",
    "parse_svg",
    "write_stitched_svg",
]
