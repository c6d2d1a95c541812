"""
Dual spatial index over path segment endpoints.

Segment starts and segment ends live in two separate indices so a
chain can be extended from either direction. A third index remembers
junctions where more than one candidate was found; those points are
never matched again.
"""

import logging
from typing import Generic, Iterator, Optional, Tuple

from .spatial_index import ItemId, SpatialIndex
from .types import (
    AmbiguousMatch,
    MatchOutcome,
    NoMatch,
    PathSegment,
    Point,
    Rect,
    S,
    SegmentId,
    UniqueMatch,
)


logger = logging.getLogger(__name__)


class DualQuadTree(Generic[S]):
    """
    Owner of a set of path segments, indexed by both endpoints.

    Segments enter through insert() and leave through remove(), pop(),
    drain() or a successful query_forward()/query_backward(). The start
    and end index always hold exactly one entry per live segment.
    """

    def __init__(self, cell_size: float = 1.0):
        """
        Initialize an empty tree.

        Args:
            cell_size: Grid cell size shared by all three indices
        """
        self._next_id = 0
        self._segments: dict[SegmentId, Tuple[PathSegment[S], ItemId, ItemId]] = {}
        self.starts: SpatialIndex[SegmentId] = SpatialIndex(cell_size)
        self.ends: SpatialIndex[SegmentId] = SpatialIndex(cell_size)
        self._ambiguity_points: SpatialIndex[Point[S]] = SpatialIndex(cell_size)

    def insert(self, segment: PathSegment[S]) -> SegmentId:
        """
        Add a segment and index both of its endpoints.

        Identical segments may be inserted more than once; each gets
        its own identifier.

        Returns:
            Fresh identifier for the segment
        """
        segment_id = SegmentId(self._next_id)
        self._next_id += 1

        start_item = self.starts.insert(segment_id, segment.first.aabb())
        end_item = self.ends.insert(segment_id, segment.last.aabb())
        self._segments[segment_id] = (segment, start_item, end_item)

        return segment_id

    def remove(self, segment_id: SegmentId) -> PathSegment[S]:
        """
        Remove a segment and both of its index entries.

        Raises:
            KeyError: If the identifier is not in the tree
        """
        segment, start_item, end_item = self._segments.pop(segment_id)
        self.starts.remove(start_item)
        self.ends.remove(end_item)
        return segment

    def pop(self) -> Optional[PathSegment[S]]:
        """Remove and return some remaining segment, or None if empty."""
        segment_id = next(iter(self._segments), None)
        if segment_id is None:
            return None
        return self.remove(segment_id)

    def drain(self) -> Iterator[PathSegment[S]]:
        """Yield every remaining segment, emptying the tree."""
        while self._segments:
            segment = self.pop()
            if segment is not None:
                yield segment

    def items(self) -> Iterator[Tuple[SegmentId, PathSegment[S]]]:
        """Yield (identifier, segment) pairs without removing them."""
        for segment_id, (segment, _, _) in self._segments.items():
            yield (segment_id, segment)

    def is_empty(self) -> bool:
        return not self._segments

    def ambiguity_points(self) -> list[Point[S]]:
        """Junctions that were deferred because of ambiguous matches."""
        return [point for point, _, _ in self._ambiguity_points.items()]

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._segments

    def __len__(self) -> int:
        return len(self._segments)

    def has_forward_neighbor(
        self,
        segment_id: SegmentId,
        point: Point[S],
        epsilon: float,
    ) -> bool:
        """True if another segment ends within 2 * epsilon of point."""
        return self._has_neighbor(self.ends, segment_id, point, epsilon)

    def has_backward_neighbor(
        self,
        segment_id: SegmentId,
        point: Point[S],
        epsilon: float,
    ) -> bool:
        """True if another segment starts within 2 * epsilon of point."""
        return self._has_neighbor(self.starts, segment_id, point, epsilon)

    @staticmethod
    def _has_neighbor(
        index: SpatialIndex[SegmentId],
        segment_id: SegmentId,
        point: Point[S],
        epsilon: float,
    ) -> bool:
        query_box = point.aabb().inflate(epsilon * 2.0, epsilon * 2.0)
        return any(other_id != segment_id for other_id, _, _ in index.query(query_box))

    def query_forward(
        self,
        point: Point[S],
        epsilon: float,
        only_starts: bool,
        allow_ambiguous: bool,
    ) -> Optional[PathSegment[S]]:
        """
        Consume the segment that continues a chain ending at point.

        The returned segment (already removed from the tree) starts at
        point: a segment matched by its end is returned reversed.

        Args:
            point: Current end of the chain
            epsilon: Matching tolerance
            only_starts: Only consider segments that start at point
            allow_ambiguous: Take the first candidate instead of deferring
                             junctions with several candidates

        Returns:
            The matched segment, or None if there is no usable match
        """
        return self._query_direction(False, point, epsilon, only_starts, allow_ambiguous)

    def query_backward(
        self,
        point: Point[S],
        epsilon: float,
        only_starts: bool,
        allow_ambiguous: bool,
    ) -> Optional[PathSegment[S]]:
        """
        Consume the segment that precedes a chain starting at point.

        Mirror image of query_forward() with the roles of starts and ends
        swapped: the returned segment ends at point.
        """
        return self._query_direction(True, point, epsilon, only_starts, allow_ambiguous)

    def _query_direction(
        self,
        should_swap: bool,
        point: Point[S],
        epsilon: float,
        only_starts: bool,
        allow_ambiguous: bool,
    ) -> Optional[PathSegment[S]]:
        start, end = self._classify(point, epsilon, allow_ambiguous)
        if should_swap:
            start, end = end, start

        if only_starts:
            if isinstance(start, UniqueMatch):
                # A start and an end at this point means that there is likely
                # a better path between those two segments.
                if isinstance(end, UniqueMatch):
                    self._mark_ambiguous(point)
                    return None
                return self.remove(start.segment_id)
            if isinstance(start, AmbiguousMatch):
                self._mark_ambiguous(point)
            return None

        if isinstance(start, AmbiguousMatch) or isinstance(end, AmbiguousMatch):
            self._mark_ambiguous(point)
            return None

        if isinstance(start, UniqueMatch):
            if isinstance(end, UniqueMatch) and not allow_ambiguous:
                self._mark_ambiguous(point)
                return None
            return self.remove(start.segment_id)

        if isinstance(end, UniqueMatch):
            return self.remove(end.segment_id).reversed()

        return None

    def _classify(
        self,
        point: Point[S],
        epsilon: float,
        allow_ambiguous: bool,
    ) -> Tuple[MatchOutcome, MatchOutcome]:
        """Classify the starts and ends found near point."""
        query_box = point.aabb().inflate(epsilon, epsilon)
        if self._ambiguity_points.query(query_box):
            return (NoMatch(), NoMatch())

        return (
            self._classify_hits(self.starts, query_box, allow_ambiguous),
            self._classify_hits(self.ends, query_box, allow_ambiguous),
        )

    @staticmethod
    def _classify_hits(
        index: SpatialIndex[SegmentId],
        query_box: Rect,
        allow_ambiguous: bool,
    ) -> MatchOutcome:
        hits = index.query(query_box)
        if not hits:
            return NoMatch()
        if len(hits) == 1 or allow_ambiguous:
            segment_id, _, _ = hits[0]
            return UniqueMatch(segment_id)
        return AmbiguousMatch()

    def _mark_ambiguous(self, point: Point[S]) -> None:
        logger.debug("Deferring ambiguous junction at (%g, %g)", point.x, point.y)
        self._ambiguity_points.insert(point, point.aabb())
