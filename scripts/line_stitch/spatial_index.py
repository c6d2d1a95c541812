"""
Spatial indexing for endpoint matching.

Uses a grid-based spatial hash over axis-aligned boxes. Every entry
is registered in each grid cell its box overlaps, so a range query
only has to visit the cells covered by the query box.
"""

from typing import Generic, Iterator, NewType, Tuple, TypeVar
from collections import defaultdict
import math

from .types import Rect


K = TypeVar("K")

ItemId = NewType("ItemId", int)


class SpatialIndex(Generic[K]):
    """
    Grid-based spatial hash keyed by opaque handles.

    Each inserted (key, box) pair gets a fresh ItemId handle, which is
    the only way to remove it again. Queries return entries in insertion
    order so callers see a stable "first" hit.
    """

    def __init__(self, cell_size: float):
        """
        Initialize an empty index.

        Args:
            cell_size: Side length of a grid cell. Choose it close to the
                       size of typical query boxes.

        Raises:
            ValueError: If cell_size is not positive
        """
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size

        # Maps (cell_x, cell_y) -> handles of entries overlapping that cell
        self._grid: dict[Tuple[int, int], set[ItemId]] = defaultdict(set)

        # Maps handle -> (key, box)
        self._entries: dict[ItemId, Tuple[K, Rect]] = {}

        self._next_item = 0

    def _cell_range(self, box: Rect) -> Tuple[range, range]:
        """Compute the ranges of cell coordinates a box overlaps."""
        x0 = int(math.floor(box.min_x / self.cell_size))
        x1 = int(math.floor(box.max_x / self.cell_size))
        y0 = int(math.floor(box.min_y / self.cell_size))
        y1 = int(math.floor(box.max_y / self.cell_size))
        return (range(x0, x1 + 1), range(y0, y1 + 1))

    def _covered_cells(self, box: Rect) -> Iterator[Tuple[int, int]]:
        """Yield every cell the box overlaps."""
        xs, ys = self._cell_range(box)
        for cx in xs:
            for cy in ys:
                yield (cx, cy)

    def insert(self, key: K, box: Rect) -> ItemId:
        """
        Add an entry to the index.

        Args:
            key: Payload returned by queries
            box: Bounding box of the entry

        Returns:
            Handle identifying this entry
        """
        item_id = ItemId(self._next_item)
        self._next_item += 1

        self._entries[item_id] = (key, box)
        for cell in self._covered_cells(box):
            self._grid[cell].add(item_id)

        return item_id

    def remove(self, item_id: ItemId) -> Tuple[K, Rect]:
        """
        Remove an entry by handle.

        Args:
            item_id: Handle returned by insert()

        Returns:
            The (key, box) pair that was stored

        Raises:
            KeyError: If the handle is unknown or already removed
        """
        key, box = self._entries.pop(item_id)

        for cell in self._covered_cells(box):
            members = self._grid[cell]
            members.discard(item_id)
            if not members:
                del self._grid[cell]

        return (key, box)

    def query(self, box: Rect) -> list[Tuple[K, Rect, ItemId]]:
        """
        Find all entries whose box intersects the query box.

        Args:
            box: Query box (boundaries inclusive)

        Returns:
            List of (key, box, handle) tuples in insertion order
        """
        if not self._entries:
            return []

        xs, ys = self._cell_range(box)
        if len(xs) * len(ys) > len(self._entries):
            # Query spans more cells than there are entries
            candidates = set(self._entries)
        else:
            candidates = set()
            for cx in xs:
                for cy in ys:
                    candidates.update(self._grid.get((cx, cy), ()))

        results: list[Tuple[K, Rect, ItemId]] = []
        for item_id in sorted(candidates):
            key, entry_box = self._entries[item_id]
            if entry_box.intersects(box):
                results.append((key, entry_box, item_id))

        return results

    def items(self) -> Iterator[Tuple[K, Rect, ItemId]]:
        """Yield all (key, box, handle) entries in insertion order."""
        for item_id, (key, box) in self._entries.items():
            yield (key, box, item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __len__(self) -> int:
        """Number of entries in the index."""
        return len(self._entries)
