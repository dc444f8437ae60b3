"""Constrained Delaunay triangulation of topographic points and breaklines.

The scene only depends on the :class:`Triangulator` interface. The default
implementation wraps Shewchuk's Triangle through the ``triangle`` package:
points become PSLG vertices, breaklines become segments, and the elevation
travels as a vertex attribute so Steiner points inserted by the area
constraint get an interpolated z.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple

import numpy as np
import triangle as tr

from noise_pathfinder import config
from noise_pathfinder.terrain.mesh import TerrainMesh
from noise_pathfinder.utils.math_helpers import Coordinate, to_coordinate

logger = logging.getLogger(__name__)


class TriangulationError(Exception):
    """Raised when the terrain cannot be triangulated."""


class Triangulator(ABC):
    """Triangulation provider."""

    @abstractmethod
    def triangulate(
        self,
        points: Sequence[Coordinate],
        lines: Sequence[Sequence[Coordinate]],
        max_area: float = config.DEFAULT_MAX_TRIANGLE_AREA,
    ) -> TerrainMesh:
        """Triangulate points with lines as constraints.

        Raises:
            TriangulationError: on any failure. No partial mesh is returned.
        """


class TriangleTriangulator(Triangulator):
    """Triangulator backed by the Triangle library."""

    def triangulate(
        self,
        points: Sequence[Coordinate],
        lines: Sequence[Sequence[Coordinate]],
        max_area: float = config.DEFAULT_MAX_TRIANGLE_AREA,
    ) -> TerrainMesh:
        vertex_ids: Dict[Tuple[float, float], int] = {}
        coords: List[Coordinate] = []

        def vertex_id(coord: Coordinate) -> int:
            key = (coord[0], coord[1])
            if key not in vertex_ids:
                vertex_ids[key] = len(coords)
                coords.append(coord)
            return vertex_ids[key]

        for point in points:
            vertex_id(point)

        segments = []
        for line in lines:
            ids = [vertex_id(c) for c in line]
            for a, b in zip(ids[:-1], ids[1:]):
                if a != b:
                    segments.append((a, b))

        if len(coords) < 3:
            raise TriangulationError(
                f"At least 3 distinct terrain points are required, got {len(coords)}"
            )

        xyz = np.array(coords, dtype=float)
        if np.linalg.matrix_rank(xyz[:, :2] - xyz[0, :2]) < 2:
            raise TriangulationError("Terrain points are collinear")

        data = {
            "vertices": xyz[:, :2],
            "vertex_attributes": xyz[:, 2:3],
        }
        options = ""
        if segments:
            data["segments"] = np.array(segments, dtype=np.int32)
        if segments or max_area > 0:
            options += "pc"  # PSLG mode, keep the whole convex hull
        if max_area > 0:
            options += f"a{max_area:.17g}"

        logger.debug("Triangulating %d vertices, %d segments, options '%s'",
                     len(coords), len(segments), options)
        try:
            result = tr.triangulate(data, options)
        except Exception as e:
            raise TriangulationError(f"Triangle failed: {e}") from e

        triangles = result.get("triangles")
        if triangles is None or len(triangles) == 0:
            raise TriangulationError("Triangulation produced no triangle")

        out_xy = result["vertices"]
        out_z = result.get("vertex_attributes")
        if out_z is None:
            raise TriangulationError("Triangulation lost the vertex elevations")
        vertices = np.column_stack([out_xy, out_z[:, 0]])

        logger.debug("Created %d triangles from %d vertices",
                     len(triangles), len(vertices))
        return TerrainMesh(vertices=vertices, triangles=triangles)


class TerrainMeshBuilder:
    """Feeds topographic data to a triangulator and retrieves the mesh."""

    def __init__(self, triangulator: Triangulator | None = None):
        self.triangulator = triangulator or TriangleTriangulator()
        self.points: List[Coordinate] = []
        self.lines: List[List[Coordinate]] = []
        self.max_area = config.DEFAULT_MAX_TRIANGLE_AREA

    def add_vertex(self, point: Sequence[float]) -> None:
        self.points.append(to_coordinate(point))

    def add_constraint_line(self, line: Sequence[Sequence[float]]) -> None:
        self.lines.append([to_coordinate(c) for c in line])

    def set_max_area(self, area: float) -> None:
        if area < 0:
            raise TriangulationError(f"Maximum triangle area must be >= 0, got {area}")
        self.max_area = area

    def build(self) -> TerrainMesh:
        """Run the triangulation.

        Raises:
            TriangulationError: propagated from the triangulator.
        """
        return self.triangulator.triangulate(self.points, self.lines, self.max_area)
