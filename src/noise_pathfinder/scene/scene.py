"""Finished scene: immutable owner of all features and spatial indexes.

A Scene is only ever produced by :meth:`SceneBuilder.finish`. Nothing
mutates it afterwards, so profiles can be computed from several threads.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry.base import BaseGeometry

from noise_pathfinder import config
from noise_pathfinder.model.building import Building
from noise_pathfinder.model.cut_profile import CutProfile
from noise_pathfinder.model.ground_effect import GroundEffect
from noise_pathfinder.model.wall import Wall
from noise_pathfinder.profile.engine import ProfileEngine
from noise_pathfinder.scene.spatial_index import BoxIndex
from noise_pathfinder.terrain.mesh import TerrainMesh
from noise_pathfinder.utils.math_helpers import Bounds, Coordinate

logger = logging.getLogger(__name__)


class Scene:
    """Buildings, terrain and ground effects ready for profile queries."""

    def __init__(
        self,
        buildings: Sequence[Building],
        walls: Sequence[Wall],
        ground_effects: Sequence[GroundEffect],
        mesh: Optional[TerrainMesh],
        sources: Sequence[BaseGeometry],
        receivers: Sequence[Coordinate],
        envelope: Optional[Bounds],
        wall_index: BoxIndex,
        terrain_index: BoxIndex,
        source_index: BoxIndex,
        max_line_length: float = config.MAX_LINE_LENGTH,
    ):
        self._buildings = tuple(buildings)
        self._walls = tuple(walls)
        self._ground_effects = tuple(ground_effects)
        self._mesh = mesh
        self._sources = tuple(sources)
        self._receivers = tuple(receivers)
        self._envelope = envelope
        self._wall_index = wall_index
        self._terrain_index = terrain_index
        self._source_index = source_index
        self._max_line_length = max_line_length

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def buildings(self) -> Tuple[Building, ...]:
        return self._buildings

    @property
    def building_count(self) -> int:
        return len(self._buildings)

    def building(self, index: int) -> Building:
        return self._buildings[index]

    @property
    def walls(self) -> Tuple[Wall, ...]:
        return self._walls

    @property
    def ground_effects(self) -> Tuple[GroundEffect, ...]:
        return self._ground_effects

    @property
    def mesh(self) -> Optional[TerrainMesh]:
        return self._mesh

    @property
    def vertices(self) -> np.ndarray:
        """Terrain vertices (N, 3), empty without terrain."""
        if self._mesh is None:
            return np.empty((0, 3))
        return self._mesh.vertices

    @property
    def triangles(self) -> np.ndarray:
        """Terrain triangle vertex indices (M, 3), empty without terrain."""
        if self._mesh is None:
            return np.empty((0, 3), dtype=int)
        return self._mesh.triangles

    @property
    def sources(self) -> Tuple[BaseGeometry, ...]:
        return self._sources

    @property
    def receivers(self) -> Tuple[Coordinate, ...]:
        return self._receivers

    @property
    def envelope(self) -> Optional[Bounds]:
        """(minx, miny, maxx, maxy) of everything fed, None for an empty scene."""
        return self._envelope

    @property
    def max_line_length(self) -> float:
        return self._max_line_length

    # ── Spatial queries ──────────────────────────────────────────────

    def query_walls(self, bounds: Bounds) -> List[int]:
        return self._wall_index.query(bounds)

    def query_triangles(self, bounds: Bounds) -> List[int]:
        return self._terrain_index.query(bounds)

    def query_sources(self, bounds: Bounds) -> List[int]:
        """Indexes of the sources whose envelope intersects ``bounds``."""
        return self._source_index.query(bounds)

    def terrain_z(self, x: float, y: float) -> float:
        """Ground elevation at (x, y) from the terrain mesh.

        The search box grows around the point, doubling its margin, until
        a triangle is found. A triangle containing the point is preferred.
        Returns NaN (with a warning) if the capped search finds nothing.
        """
        if self._mesh is None:
            return config.FLAT_GROUND_ELEVATION

        candidates = self._terrain_index.query_point(x, y)
        margin = self._max_line_length
        iterations = 0
        while not candidates:
            if iterations >= config.TERRAIN_LOOKUP_MAX_ITERATIONS:
                logger.warning("No terrain triangle found around (%s, %s)", x, y)
                return math.nan
            candidates = self._terrain_index.query_point(x, y, margin)
            margin *= 2.0
            iterations += 1

        tri_idx = next(
            (i for i in candidates if self._mesh.contains(i, x, y)),
            candidates[0],
        )
        return self._mesh.interpolate_z(tri_idx, x, y)

    def building_at(self, x: float, y: float) -> int:
        """Index of the building enclosing (x, y), NO_ID if none."""
        for b_idx, building in enumerate(self._buildings):
            minx, miny, maxx, maxy = building.footprint.bounds
            if minx < x < maxx and miny < y < maxy and building.contains(x, y):
                return b_idx
        return config.NO_ID

    def ground_effect_at(self, x: float, y: float) -> Optional[int]:
        """Index of the ground effect containing (x, y), the last one if several."""
        found = None
        for g_idx, ground in enumerate(self._ground_effects):
            if ground.contains(x, y):
                found = g_idx
        return found

    # ── Profiles ─────────────────────────────────────────────────────

    def get_profile(
        self, source: Sequence[float], receiver: Sequence[float],
    ) -> CutProfile:
        """Cut profile of the sight line from ``source`` to ``receiver``."""
        return ProfileEngine(self).compute(source, receiver)
