"""Immutable bounding-box spatial index.

Thin wrapper over shapely's STRtree: items are inserted once as envelopes
and identified by their position in the owning list, so the index can
never reference an item that does not exist. STRtree is bulk-loaded and
read-only, which makes concurrent queries safe.
"""
from __future__ import annotations

from typing import List, Sequence

import numpy as np
import shapely
from shapely.strtree import STRtree

from noise_pathfinder import config
from noise_pathfinder.utils.math_helpers import Bounds


class BoxIndex:
    """Spatial index of integer ids keyed by (minx, miny, maxx, maxy)."""

    def __init__(
        self,
        bounds: Sequence[Bounds],
        node_capacity: int = config.TREE_NODE_CAPACITY,
    ):
        self._size = len(bounds)
        self._tree = None
        if self._size:
            arr = np.asarray(bounds, dtype=float).reshape(-1, 4)
            boxes = shapely.box(arr[:, 0], arr[:, 1], arr[:, 2], arr[:, 3])
            self._tree = STRtree(boxes, node_capacity=node_capacity)

    def __len__(self) -> int:
        return self._size

    def query(self, bounds: Bounds) -> List[int]:
        """Ids whose envelope intersects ``bounds``, in ascending order."""
        if self._tree is None:
            return []
        hits = self._tree.query(shapely.box(*bounds))
        return sorted(int(i) for i in hits)

    def query_point(self, x: float, y: float, margin: float = 0.0) -> List[int]:
        """Ids whose envelope intersects the box of half-size ``margin`` at (x, y)."""
        return self.query((x - margin, y - margin, x + margin, y + margin))
