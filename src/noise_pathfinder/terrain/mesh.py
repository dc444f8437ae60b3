"""Terrain TIN mesh and per-triangle elevation queries."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from noise_pathfinder.utils.math_helpers import (
    Bounds, Coordinate, barycentric_z, point_in_triangle,
)


@dataclass
class TerrainMesh:
    """Triangulated Irregular Network (TIN) terrain surface.

    Stores vertices (N, 3) and triangle vertex indices (M, 3). Produced
    once by a triangulator and read-only afterwards.
    """
    vertices: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    triangles: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=int))

    def __post_init__(self):
        self.vertices = np.array(self.vertices, dtype=float).reshape(-1, 3)
        self.triangles = np.array(self.triangles, dtype=int).reshape(-1, 3)
        self.vertices.setflags(write=False)
        self.triangles.setflags(write=False)

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)

    def vertex(self, index: int) -> Coordinate:
        x, y, z = self.vertices[index]
        return (float(x), float(y), float(z))

    def triangle_vertices(self, tri_idx: int) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """The three corner coordinates of a triangle."""
        i0, i1, i2 = self.triangles[tri_idx]
        return self.vertex(i0), self.vertex(i1), self.vertex(i2)

    def triangle_edges(self, tri_idx: int) -> List[Tuple[Coordinate, Coordinate]]:
        """Edges A-B, B-C, C-A of a triangle."""
        a, b, c = self.triangle_vertices(tri_idx)
        return [(a, b), (b, c), (c, a)]

    def triangle_bounds(self, tri_idx: int) -> Bounds:
        pts = self.vertices[self.triangles[tri_idx], :2]
        min_xy = pts.min(axis=0)
        max_xy = pts.max(axis=0)
        return (float(min_xy[0]), float(min_xy[1]), float(max_xy[0]), float(max_xy[1]))

    def contains(self, tri_idx: int, x: float, y: float) -> bool:
        return point_in_triangle(x, y, *self.triangle_vertices(tri_idx))

    def interpolate_z(self, tri_idx: int, x: float, y: float) -> float:
        """Elevation at (x, y) on the plane of a triangle (barycentric)."""
        return barycentric_z(x, y, *self.triangle_vertices(tri_idx))

    def boundary_edges(self) -> List[Tuple[int, Coordinate, Coordinate]]:
        """Edges used by exactly one triangle, as (triangle, p0, p1).

        Two edges are the same if they join the same endpoints, in either
        order. Shared (interior) edges are dropped.
        """
        edges = []
        for tri_idx in range(self.num_triangles):
            for p0, p1 in self.triangle_edges(tri_idx):
                edges.append((tri_idx, p0, p1))

        counts = Counter(_edge_key(p0, p1) for _, p0, p1 in edges)
        return [e for e in edges if counts[_edge_key(e[1], e[2])] == 1]

    def bounds(self) -> Bounds:
        """Return (minx, miny, maxx, maxy) bounding box."""
        if len(self.vertices) == 0:
            return (0.0, 0.0, 0.0, 0.0)
        return (
            float(self.vertices[:, 0].min()),
            float(self.vertices[:, 1].min()),
            float(self.vertices[:, 0].max()),
            float(self.vertices[:, 1].max()),
        )


def _edge_key(p0: Coordinate, p1: Coordinate) -> Tuple[Coordinate, Coordinate]:
    return (p0, p1) if p0 <= p1 else (p1, p0)
