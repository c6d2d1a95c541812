"""
Immutable data types for polyline stitching.

All types are frozen dataclasses to enforce immutability.
Geometry types are generic over a coordinate space so that points
from unrelated spaces are kept apart by the type checker; the space
parameter has no runtime representation.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Generic, Iterable, Iterator, NewType, Optional, Tuple, TypeVar, Union
import math


S = TypeVar("S")

SegmentId = NewType("SegmentId", int)


@dataclass(frozen=True)
class Point(Generic[S]):
    """
    2D point in coordinate space S.

    Coordinates are stored as floats.
    """
    x: float
    y: float

    def distance_to(self, other: "Point[S]") -> float:
        """Compute Euclidean distance to another point."""
        return math.sqrt(self.square_distance_to(other))

    def square_distance_to(self, other: "Point[S]") -> float:
        """Compute squared Euclidean distance to another point."""
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def is_near(self, other: "Point[S]", tolerance: float) -> bool:
        """Check if another point is within tolerance distance."""
        return self.distance_to(other) <= tolerance

    def as_tuple(self) -> Tuple[float, float]:
        """Return coordinates as a tuple."""
        return (self.x, self.y)

    def aabb(self) -> "Rect[S]":
        """Zero-size bounding box located at this point."""
        return Rect(self.x, self.y, self.x, self.y)


@dataclass(frozen=True)
class Rect(Generic[S]):
    """
    Closed axis-aligned box.

    Boundaries are inclusive: a point lying on an edge is contained,
    and two boxes sharing only an edge or a corner intersect.
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @staticmethod
    def centered_with_radius(center: Point[S], radius: float) -> "Rect[S]":
        """Square box of half-width radius around center."""
        return center.aabb().inflate(radius, radius)

    def inflate(self, dx: float, dy: float) -> "Rect[S]":
        """Grow the box by dx horizontally and dy vertically on each side."""
        return Rect(self.min_x - dx, self.min_y - dy, self.max_x + dx, self.max_y + dy)

    def contains(self, point: Point[S]) -> bool:
        return (
            self.min_x <= point.x <= self.max_x
            and self.min_y <= point.y <= self.max_y
        )

    def intersects(self, other: "Rect[S]") -> bool:
        return (
            self.min_x <= other.max_x
            and other.min_x <= self.max_x
            and self.min_y <= other.max_y
            and other.min_y <= self.max_y
        )


@dataclass(frozen=True)
class PathSegment(Generic[S]):
    """
    An ordered polyline that may be joined with other polylines.

    A closed segment is a loop: its implicit last edge runs from the
    final stored point back to the first one, and the first point is
    never repeated at the end of ``points``.

    Use ``PathSegment.from_points`` to build a segment from raw input;
    it detects paths that already return to their starting point.
    """
    points: Tuple[Point[S], ...]
    closed: bool = False

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(self.points))
        if len(self.points) < 2:
            raise ValueError(
                f"path segment needs at least 2 points, got {len(self.points)}"
            )

    @staticmethod
    def from_points(points: Iterable[Point[S]], epsilon: float) -> "PathSegment[S]":
        """
        Build a segment, marking it closed when it returns to its start.

        The path is closed when its last point lies inside the square of
        half-width epsilon centred on its first point. The duplicated last
        point is then dropped. Two-point paths are never closed.

        Args:
            points: Ordered polyline vertices (at least 2)
            epsilon: Tolerance for detecting an already-closed path

        Returns:
            New PathSegment

        Raises:
            ValueError: If fewer than 2 points are given
        """
        path = list(points)
        if len(path) < 2:
            raise ValueError(f"path segment needs at least 2 points, got {len(path)}")

        closed = (
            len(path) > 2
            and Rect.centered_with_radius(path[0], epsilon).contains(path[-1])
        )
        if closed:
            path.pop()

        return PathSegment(points=tuple(path), closed=closed)

    @property
    def first(self) -> Point[S]:
        return self.points[0]

    @property
    def last(self) -> Point[S]:
        return self.points[-1]

    def reversed(self) -> "PathSegment[S]":
        """Return a new segment with the point order reversed."""
        return PathSegment(points=self.points[::-1], closed=self.closed)

    @cached_property
    def length(self) -> float:
        """Sum of the Euclidean lengths of consecutive point pairs."""
        return sum(a.distance_to(b) for a, b in zip(self.points, self.points[1:]))

    @cached_property
    def length_2(self) -> float:
        """Sum of the squared lengths of consecutive point pairs."""
        return sum(a.square_distance_to(b) for a, b in zip(self.points, self.points[1:]))

    def __iter__(self) -> Iterator[Point[S]]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class VisualAttrs:
    """
    Drawing attributes shared by a group of segments.

    Segments are only stitched with segments carrying identical
    attributes: a different transform means a different coordinate
    space, and a different stroke means a different pen.
    """
    stroke_width: float
    stroke_color: str
    transform: Optional[str] = None

    def to_svg_attrs(self) -> dict:
        """Convert the stroke attributes to an SVG attribute dictionary."""
        return {
            "stroke-width": repr(self.stroke_width),
            "stroke": self.stroke_color,
        }

    def sort_key(self) -> Tuple[float, str, str]:
        return (self.stroke_width, self.stroke_color, self.transform or "")


@dataclass(frozen=True)
class SvgDrawing:
    """
    Straight-line geometry read from an SVG document.

    Segments are grouped by the visual attributes they are drawn with.
    """
    width: str
    height: str
    viewbox: str
    groups: dict

    @property
    def segment_count(self) -> int:
        return sum(len(segments) for segments in self.groups.values())


@dataclass(frozen=True)
class NoMatch:
    """No endpoint was found near the query point."""


@dataclass(frozen=True)
class UniqueMatch:
    """Exactly one endpoint (or the first, when ambiguity is allowed) was found."""
    segment_id: SegmentId


@dataclass(frozen=True)
class AmbiguousMatch:
    """More than one endpoint was found near the query point."""


MatchOutcome = Union[NoMatch, UniqueMatch, AmbiguousMatch]


@dataclass(frozen=True)
class StitchOptions:
    """
    Tuning knobs for stitching.

    Attributes:
        epsilon: Radius within which two endpoints are considered coincident
        allow_ambiguous: Resolve junctions with several candidates by taking
            the first one found instead of deferring them
        cell_size: Grid cell size of the spatial indices; defaults to
            four times epsilon
    """
    epsilon: float = 0.5
    allow_ambiguous: bool = False
    cell_size: Optional[float] = None

    def __post_init__(self):
        if self.epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")
        if self.cell_size is not None and self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")

    @property
    def effective_cell_size(self) -> float:
        if self.cell_size is not None:
            return self.cell_size
        return self.epsilon * 4.0


@dataclass(frozen=True)
class StitchStats:
    """Statistics about a stitching run."""
    total_input_segments: int
    total_chains: int
    closed_chains: int
    ambiguous_junctions: int
    max_chain_points: int
    total_length: float

    @property
    def pen_lifts_saved(self) -> int:
        """Each input segment costs one pen lift; each chain costs one."""
        return self.total_input_segments - self.total_chains


@dataclass(frozen=True)
class StitchResult(Generic[S]):
    """
    Complete result of a stitching run.

    Contains the stitched chains in emission order and statistics.
    """
    chains: Tuple[PathSegment[S], ...]
    stats: StitchStats

    @staticmethod
    def create(
        chains: list["PathSegment[S]"],
        total_input: int,
        ambiguous_junctions: int,
    ) -> "StitchResult[S]":
        """
        Factory method to create a StitchResult with computed stats.

        Args:
            chains: Finished chains
            total_input: Number of segments fed to the stitcher
            ambiguous_junctions: Number of junctions left unresolved

        Returns:
            New StitchResult with computed statistics
        """
        stats = StitchStats(
            total_input_segments=total_input,
            total_chains=len(chains),
            closed_chains=sum(1 for c in chains if c.closed),
            ambiguous_junctions=ambiguous_junctions,
            max_chain_points=max((len(c) for c in chains), default=0),
            total_length=sum(c.length for c in chains),
        )

        return StitchResult(chains=tuple(chains), stats=stats)
