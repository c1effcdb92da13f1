"""
Uniform grid broad phase over the ground plane.
"""

from typing import Dict, Iterable, List, Set, Tuple, Union
import math

import numpy as np

Cell = Tuple[int, int]
Extent = Union[float, Tuple[float, float], np.ndarray]


class SpatialHash:
    """Buckets body ids by the grid cells their planar bounds touch.

    Bounds are given as a center and a half extent: a scalar for a square
    around a circle, or an (x, y) pair for an axis-aligned box.
    """

    def __init__(self, cell_size: float = 10.0):
        self.cell_size = cell_size
        self._cells: Dict[Cell, Set[int]] = {}
        self._body_cells: Dict[int, List[Cell]] = {}

    def _cells_for(self, position: np.ndarray, half: Extent) -> List[Cell]:
        size = self.cell_size
        hx, hy = np.broadcast_to(np.asarray(half, dtype=float), (2,))
        x0 = math.floor((position[0] - hx) / size)
        x1 = math.floor((position[0] + hx) / size)
        y0 = math.floor((position[1] - hy) / size)
        y1 = math.floor((position[1] + hy) / size)
        return [(i, j) for i in range(x0, x1 + 1) for j in range(y0, y1 + 1)]

    def insert(self, body_id: int, position: np.ndarray, half: Extent) -> None:
        """Insert or move a body."""
        self.remove(body_id)
        cells = self._cells_for(position, half)
        self._body_cells[body_id] = cells
        for cell in cells:
            self._cells.setdefault(cell, set()).add(body_id)

    def cell_count(self, body_id: int) -> int:
        """Number of cells a body occupies."""
        return len(self._body_cells.get(body_id, []))

    def remove(self, body_id: int) -> None:
        """Remove a body if present."""
        for cell in self._body_cells.pop(body_id, []):
            bucket = self._cells.get(cell)
            if bucket is not None:
                bucket.discard(body_id)
                if not bucket:
                    del self._cells[cell]

    def query(self, position: np.ndarray, half: Extent) -> Set[int]:
        """Body ids sharing a cell with the given bounds."""
        found: Set[int] = set()
        for cell in self._cells_for(position, half):
            found |= self._cells.get(cell, set())
        return found

    def candidate_pairs(self) -> Iterable[Tuple[int, int]]:
        """Unique (low id, high id) pairs sharing at least one cell, sorted."""
        pairs: Set[Tuple[int, int]] = set()
        for bucket in self._cells.values():
            if len(bucket) < 2:
                continue
            ids = sorted(bucket)
            for i, a in enumerate(ids):
                for b in ids[i + 1:]:
                    pairs.add((a, b))
        return sorted(pairs)

    def clear(self) -> None:
        """Remove all bodies."""
        self._cells.clear()
        self._body_cells.clear()
