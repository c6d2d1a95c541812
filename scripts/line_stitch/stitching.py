"""
Greedy chain building on top of the dual endpoint index.

Pops a seed segment, grows it forward from its last point and then
backward from its first point until no unambiguous continuation is
left, and emits the result as one chain.
"""

import logging
from typing import Iterable, Mapping

from .dual_quad_tree import DualQuadTree
from .types import PathSegment, Point, Rect, S, StitchOptions, StitchResult, VisualAttrs


logger = logging.getLogger(__name__)


def _ends_meet(points: list[Point[S]], epsilon: float) -> bool:
    """Check if a chain has come back around to its first point."""
    return (
        len(points) > 2
        and Rect.centered_with_radius(points[0], epsilon).contains(points[-1])
    )


def drawn_points(segment: PathSegment[S], anchor: Point[S]) -> list[Point[S]]:
    """
    List the points a pen visits when drawing a segment.

    Open segments are drawn as stored. Closed segments are rotated to
    start at the vertex nearest anchor and repeat that vertex at the
    end, so the loop can be spliced into a chain passing through anchor.

    Args:
        segment: Segment to draw
        anchor: Point where the segment joins the chain

    Returns:
        Ordered list of visited points
    """
    points = list(segment.points)
    if not segment.closed:
        return points

    nearest = min(range(len(points)), key=lambda i: points[i].square_distance_to(anchor))
    return points[nearest:] + points[:nearest] + [points[nearest]]


def grow_chain(
    tree: DualQuadTree[S],
    seed: PathSegment[S],
    options: StitchOptions,
) -> PathSegment[S]:
    """
    Extend a seed segment with every unambiguous continuation in the tree.

    Matched segments are removed from the tree.

    Args:
        tree: Index holding the segments not yet placed in a chain
        seed: Segment already removed from the tree
        options: Stitching tolerance and ambiguity policy

    Returns:
        The finished chain; closed if its ends meet
    """
    if seed.closed:
        return seed

    epsilon = options.epsilon
    points = list(seed.points)

    while not _ends_meet(points, epsilon):
        following = tree.query_forward(
            points[-1], epsilon, only_starts=False, allow_ambiguous=options.allow_ambiguous
        )
        if following is None:
            break
        points.extend(drawn_points(following, points[-1])[1:])

    while not _ends_meet(points, epsilon):
        preceding = tree.query_backward(
            points[0], epsilon, only_starts=False, allow_ambiguous=options.allow_ambiguous
        )
        if preceding is None:
            break
        points[:0] = drawn_points(preceding, points[0])[:-1]

    return PathSegment.from_points(points, epsilon)


def stitch_segments(
    segments: Iterable[PathSegment[S]],
    options: StitchOptions = StitchOptions(),
) -> StitchResult[S]:
    """
    Stitch polyline fragments into as few continuous chains as possible.

    Args:
        segments: Fragments to stitch
        options: Stitching tolerance, ambiguity policy and index cell size

    Returns:
        StitchResult containing the chains and statistics
    """
    tree: DualQuadTree[S] = DualQuadTree(options.effective_cell_size)
    total_input = 0
    for segment in segments:
        tree.insert(segment)
        total_input += 1

    chains: list[PathSegment[S]] = []
    while True:
        seed = tree.pop()
        if seed is None:
            break
        chain = grow_chain(tree, seed, options)
        logger.debug(
            "Emitting chain %d with %d points (closed=%s)",
            len(chains), len(chain), chain.closed,
        )
        chains.append(chain)

    ambiguous = len(tree.ambiguity_points())
    logger.debug(
        "Stitched %d segments into %d chains, %d ambiguous junctions",
        total_input, len(chains), ambiguous,
    )
    return StitchResult.create(chains, total_input, ambiguous)


def stitch_by_visual_attrs(
    groups: Mapping[VisualAttrs, Iterable[PathSegment]],
    options: StitchOptions = StitchOptions(),
) -> dict[VisualAttrs, StitchResult]:
    """
    Stitch each attribute group on its own.

    Segments drawn with different transforms live in different
    coordinate spaces, so they are never joined to each other.

    Args:
        groups: Segments keyed by the attributes they are drawn with
        options: Stitching options shared by every group

    Returns:
        Dictionary mapping VisualAttrs to that group's StitchResult
    """
    results: dict[VisualAttrs, StitchResult] = {}
    for attrs in sorted(groups, key=VisualAttrs.sort_key):
        logger.debug("Stitching group %s", attrs)
        results[attrs] = stitch_segments(groups[attrs], options)
    return results
