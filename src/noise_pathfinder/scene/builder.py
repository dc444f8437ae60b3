"""Scene feeding phase: collect features, then finish into a Scene.

Feeding calls made after :meth:`SceneBuilder.finish` are ignored with a
warning. Rejected inputs are logged and return None; they never raise and
never mutate the builder.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Union

from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

from noise_pathfinder import config
from noise_pathfinder.config import IntersectionType
from noise_pathfinder.model.building import Building
from noise_pathfinder.model.ground_effect import GroundEffect
from noise_pathfinder.model.wall import Wall
from noise_pathfinder.scene.scene import Scene
from noise_pathfinder.scene.spatial_index import BoxIndex
from noise_pathfinder.terrain.mesh import TerrainMesh
from noise_pathfinder.terrain.triangulator import (
    TerrainMeshBuilder, TriangulationError, Triangulator,
)
from noise_pathfinder.utils.math_helpers import (
    Bounds, Coordinate, expand_bounds, has_z, to_coordinate,
)

logger = logging.getLogger(__name__)

GeometryInput = Union[BaseGeometry, Sequence[Sequence[float]]]


class SceneBuilder:
    """Collects buildings, topography, ground effects, sources and receivers."""

    def __init__(
        self,
        wall_node_capacity: int = config.TREE_NODE_CAPACITY,
        terrain_node_capacity: int = config.TREE_NODE_CAPACITY,
        max_line_length: float = config.MAX_LINE_LENGTH,
        triangulator: Optional[Triangulator] = None,
    ):
        self.wall_node_capacity = wall_node_capacity
        self.terrain_node_capacity = terrain_node_capacity
        self.max_line_length = max_line_length
        self.triangulator = triangulator
        self.max_area = config.DEFAULT_MAX_TRIANGLE_AREA

        self._buildings: List[Building] = []
        self._terrain_points: List[Coordinate] = []
        self._terrain_lines: List[List[Coordinate]] = []
        self._ground_effects: List[GroundEffect] = []
        self._sources: List[BaseGeometry] = []
        self._receivers: List[Coordinate] = []
        self._envelope: Optional[Bounds] = None

        self._finished = False
        self._scene: Optional[Scene] = None

    # ── Feeding ──────────────────────────────────────────────────────

    def add_building(
        self,
        geom: GeometryInput,
        height: float = math.nan,
        alphas: Sequence[float] = (),
        primary_key: int = config.NO_ID,
    ) -> Optional[Building]:
        """Add a building footprint (simple polygon) extruded to ``height``.

        Footprint vertices carrying a z keep it as their wall elevation.
        """
        footprint = _as_polygon(geom)
        if footprint is None:
            logger.error("Building geometry should be a simple Polygon")
            return None
        building = Building(
            footprint=footprint,
            height=float(height),
            alphas=tuple(float(a) for a in alphas),
            primary_key=primary_key,
        )
        return self.add_building_object(building)

    def add_building_object(self, building: Building) -> Optional[Building]:
        if self._refuse("building"):
            return None
        self._expand(building.footprint.bounds)
        self._buildings.append(building)
        return building

    def add_terrain_point(self, coord: Sequence[float]) -> None:
        if self._refuse("terrain point"):
            return
        point = to_coordinate(coord)
        self._expand((point[0], point[1], point[0], point[1]))
        self._terrain_points.append(point)

    def add_terrain_line(self, line: GeometryInput) -> None:
        """Add a breakline, used as a triangulation constraint."""
        if self._refuse("terrain line"):
            return
        coords = list(line.coords) if isinstance(line, LineString) else list(line)
        if len(coords) < 2:
            logger.warning("Terrain line needs at least 2 points, ignored.")
            return
        line_coords = [to_coordinate(c) for c in coords]
        self._expand(LineString(line_coords).bounds)
        self._terrain_lines.append(line_coords)

    def add_ground_effect(
        self, geom: GeometryInput, coefficient: float,
    ) -> Optional[GroundEffect]:
        """Add a ground effect area (Polygon or MultiPolygon)."""
        if not isinstance(geom, (Polygon, MultiPolygon)):
            geom = _as_polygon(geom)
        if geom is None or geom.is_empty:
            logger.error("Ground effect geometry should be a Polygon or MultiPolygon")
            return None
        if self._refuse("ground effect"):
            return None
        ground = GroundEffect(geometry=geom, coefficient=float(coefficient))
        self._expand(geom.bounds)
        self._ground_effects.append(ground)
        return ground

    def add_source(self, source: Union[BaseGeometry, Sequence[float]]) -> None:
        """Add a point source (coordinate) or any source geometry."""
        if self._refuse("source"):
            return
        if not isinstance(source, BaseGeometry):
            source = Point(to_coordinate(source))
        self._expand(source.bounds)
        self._sources.append(source)

    def add_receiver(self, coord: Sequence[float]) -> None:
        if self._refuse("receiver"):
            return
        receiver = to_coordinate(coord)
        self._expand((receiver[0], receiver[1], receiver[0], receiver[1]))
        self._receivers.append(receiver)

    def set_maximum_area(self, area: float) -> None:
        """Maximum triangle area of the terrain mesh, 0 for no constraint."""
        if self._refuse("maximum area"):
            return
        self.max_area = area

    def clear_buildings(self) -> None:
        if self._refuse("building removal"):
            return
        self._buildings.clear()

    # ── Read access while feeding ────────────────────────────────────

    @property
    def is_finished(self) -> bool:
        return self._finished

    @property
    def buildings(self) -> List[Building]:
        return list(self._buildings)

    @property
    def building_count(self) -> int:
        return len(self._buildings)

    @property
    def envelope(self) -> Optional[Bounds]:
        return self._envelope

    # ── Finish ───────────────────────────────────────────────────────

    def finish(self) -> Optional[Scene]:
        """Build the walls, the terrain mesh and the spatial indexes.

        Returns the immutable Scene, or None if the terrain could not be
        triangulated. Only the first call does any work.
        """
        if self._finished:
            logger.warning("Feeding is already finished.")
            return self._scene
        self._finished = True

        # Step 1: Sources
        source_index = BoxIndex([s.bounds for s in self._sources])

        # Step 2: Building facets
        walls: List[Wall] = []
        for b_idx, building in enumerate(self._buildings):
            walls.extend(_building_walls(b_idx, building))

        # Step 3: Terrain mesh
        mesh: Optional[TerrainMesh] = None
        terrain_index = BoxIndex([])
        if self._terrain_points or self._terrain_lines:
            mesh_builder = TerrainMeshBuilder(self.triangulator)
            try:
                mesh_builder.set_max_area(self.max_area)
                for point in self._terrain_points:
                    mesh_builder.add_vertex(point)
                for line in self._terrain_lines:
                    mesh_builder.add_constraint_line(line)
                mesh = mesh_builder.build()
            except TriangulationError:
                logger.exception("Unable to triangulate the topography.")
                return None

            terrain_index = BoxIndex(
                [mesh.triangle_bounds(i) for i in range(mesh.num_triangles)],
                node_capacity=self.terrain_node_capacity,
            )
            for tri_idx, p0, p1 in mesh.boundary_edges():
                walls.append(Wall(p0, p1, tri_idx, IntersectionType.TERRAIN))

        # Step 4: Ground effect boundaries
        for g_idx, ground in enumerate(self._ground_effects):
            walls.extend(_ground_walls(g_idx, ground))

        # Step 5: Wall index
        wall_index = BoxIndex([w.bounds for w in walls], self.wall_node_capacity)

        self._scene = Scene(
            buildings=self._buildings,
            walls=walls,
            ground_effects=self._ground_effects,
            mesh=mesh,
            sources=self._sources,
            receivers=self._receivers,
            envelope=self._envelope,
            wall_index=wall_index,
            terrain_index=terrain_index,
            source_index=source_index,
            max_line_length=self.max_line_length,
        )
        logger.info(
            "Scene finished: %d buildings, %d walls, %d triangles, %d ground effects",
            len(self._buildings), len(walls),
            mesh.num_triangles if mesh is not None else 0,
            len(self._ground_effects),
        )
        return self._scene

    # ── Internals ────────────────────────────────────────────────────

    def _refuse(self, what: str) -> bool:
        if self._finished:
            logger.warning("Cannot add %s, feeding is finished.", what)
        return self._finished

    def _expand(self, bounds: Bounds) -> None:
        self._envelope = expand_bounds(self._envelope, bounds)


def _as_polygon(geom: GeometryInput) -> Optional[Polygon]:
    """A valid simple polygon from a shapely geometry or a coordinate ring."""
    if isinstance(geom, BaseGeometry):
        polygon = geom if isinstance(geom, Polygon) else None
    else:
        try:
            polygon = Polygon(geom)
        except (TypeError, ValueError):
            return None
    if polygon is None or polygon.is_empty or not polygon.is_valid:
        return None
    if len(set(polygon.exterior.coords)) < 3:
        return None
    return polygon


def _building_walls(b_idx: int, building: Building) -> List[Wall]:
    """One wall per footprint edge, endpoints lifted to the building height."""
    walls = []
    for ring in building.rings():
        for c0, c1 in zip(ring[:-1], ring[1:]):
            walls.append(Wall(
                _lifted(c0, building.height),
                _lifted(c1, building.height),
                b_idx,
                IntersectionType.BUILDING,
            ))
    return walls


def _ground_walls(g_idx: int, ground: GroundEffect) -> List[Wall]:
    """One wall per boundary edge of every ring of the ground effect."""
    walls = []
    for polygon in ground.polygons():
        for ring in [polygon.exterior, *polygon.interiors]:
            coords = list(ring.coords)
            for c0, c1 in zip(coords[:-1], coords[1:]):
                walls.append(Wall(
                    _lifted(c0, math.nan),
                    _lifted(c1, math.nan),
                    g_idx,
                    IntersectionType.GROUND_EFFECT,
                ))
    return walls


def _lifted(coord: Sequence[float], default_z: float) -> Coordinate:
    z = float(coord[2]) if has_z(coord) else default_z
    return (float(coord[0]), float(coord[1]), z)
