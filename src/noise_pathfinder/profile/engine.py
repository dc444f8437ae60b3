"""CORE: Compute the cut profile of a source-receiver sight line.

The engine queries the scene indexes with short sub-segments of the line,
intersects the candidates, rebuilds the elevation of every crossing,
orders the crossings from source to receiver and propagates the ground
absorption coefficients along the line.
"""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from noise_pathfinder import config
from noise_pathfinder.config import IntersectionType
from noise_pathfinder.model.cut_profile import CutPoint, CutProfile
from noise_pathfinder.utils.math_helpers import (
    Coordinate, distance_2d, interpolate_z, point_along, projection_fraction,
    segment_bounds, segment_intersection, to_coordinate,
)

if TYPE_CHECKING:
    from noise_pathfinder.scene.scene import Scene

logger = logging.getLogger(__name__)

Segment = Tuple[Coordinate, Coordinate]


def split_segment(
    start: Coordinate, end: Coordinate, max_length: float = config.MAX_LINE_LENGTH,
) -> List[Segment]:
    """Split start->end into equal consecutive parts no longer than ``max_length``.

    The parts cover the whole line without gap or overlap.
    """
    length = distance_2d(start[0], start[1], end[0], end[1])
    if length <= max_length:
        return [(start, end)]

    num_parts = math.ceil(length / max_length)
    cuts = [start]
    for i in range(1, num_parts):
        cuts.append(point_along(start, end, i / num_parts))
    cuts.append(end)
    return list(zip(cuts[:-1], cuts[1:]))


class ProfileEngine:
    """Computes cut profiles against a finished scene."""

    def __init__(self, scene: Scene, max_line_length: Optional[float] = None):
        self.scene = scene
        self.max_line_length = max_line_length or scene.max_line_length

    def compute(
        self, source: Sequence[float], receiver: Sequence[float],
    ) -> CutProfile:
        """Compute the cut profile from ``source`` to ``receiver``."""
        c0 = to_coordinate(source)
        c1 = to_coordinate(receiver)

        # Step 1: Bounded-length parts for index queries
        segments = split_segment(c0, c1, self.max_line_length)

        # Step 2: Buildings and ground effect boundaries
        wall_points = self._wall_cut_points(c0, c1, segments)

        # Step 3: Terrain triangle edges
        terrain_points = self._terrain_cut_points(segments)

        # Step 4: Assemble
        profile = CutProfile()
        profile.add_source(c0, self.scene.building_at(c0[0], c0[1]))
        for point in terrain_points:
            profile.add_cut_point(point)
        for point in wall_points:
            profile.add_cut_point(point)
        profile.add_receiver(c1, self.scene.building_at(c1[0], c1[1]))

        # Step 5: Order from source to receiver
        self._sort(profile, c0, c1)

        # Step 6: Ground absorption coefficients
        self._assign_ground_coefficients(profile, c0)

        return profile

    def _wall_cut_points(
        self, c0: Coordinate, c1: Coordinate, segments: List[Segment],
    ) -> List[CutPoint]:
        """Crossings of the full line with building and ground effect walls."""
        candidates = set()
        for p0, p1 in segments:
            candidates.update(self.scene.query_walls(segment_bounds(p0, p1)))

        points = []
        for wall_idx in sorted(candidates):
            wall = self.scene.walls[wall_idx]
            # Terrain is resolved against the triangles
            if wall.type == IntersectionType.TERRAIN:
                continue

            hit = segment_intersection(c0, c1, wall.p0, wall.p1)
            if hit is None:
                continue

            x, y = hit
            if wall.has_z:
                z = interpolate_z(x, y, wall.p0, wall.p1)
            else:
                z = self.scene.terrain_z(x, y)
            points.append(CutPoint((x, y, z), wall.type, wall.origin_id))
        return points

    def _terrain_cut_points(self, segments: List[Segment]) -> List[CutPoint]:
        """Crossings of each part with the edges of nearby terrain triangles."""
        mesh = self.scene.mesh
        if mesh is None:
            return []

        provisional = []
        for p0, p1 in segments:
            for tri_idx in self.scene.query_triangles(segment_bounds(p0, p1)):
                for e0, e1 in mesh.triangle_edges(tri_idx):
                    hit = segment_intersection(p0, p1, e0, e1)
                    if hit is None:
                        continue
                    x, y = hit
                    z = interpolate_z(x, y, e0, e1)
                    provisional.append(
                        CutPoint((x, y, z), IntersectionType.TERRAIN, tri_idx)
                    )

        # Adjacent triangles report their shared edge twice
        return unique_xy(provisional)

    def _sort(self, profile: CutProfile, c0: Coordinate, c1: Coordinate) -> None:
        """Order the points by their position along c0->c1.

        The sort is stable and the source/receiver project exactly on 0 and
        1, so they stay at the extremities when a crossing coincides.
        """
        def key(point: CutPoint) -> float:
            t = projection_fraction(point.x, point.y, c0, c1)
            return min(1.0, max(0.0, t))

        profile.sort(key)
        if profile.points[0] is not profile.source:
            profile.reverse()
        if profile.points[0] is not profile.source:
            logger.error("The source has to be the first cut point")
        if profile.points[-1] is not profile.receiver:
            logger.error("The receiver has to be the last cut point")

    def _assign_ground_coefficients(self, profile: CutProfile, c0: Coordinate) -> None:
        """Enter/exit state machine over the ground effect boundaries.

        Regions are assumed not to overlap: crossing into a region while
        another one is active does not change the active region. A boundary
        crossing carries the coefficient of the region it bounds, on entry
        as well as on exit.

        A line passing through a polygon vertex crosses two boundary edges
        at the same place. Such coincident crossings of one region count as
        a single event, and whether the line is inside the region afterwards
        is read from the geometry rather than toggled.
        """
        ground_effects = self.scene.ground_effects
        current = self.scene.ground_effect_at(c0[0], c0[1])
        points = profile.points
        resolved: Dict[int, float] = {}

        for i, point in enumerate(points):
            if i in resolved:
                point.ground_coef = resolved[i]
                continue

            coef_region = current
            if point.type == IntersectionType.GROUND_EFFECT and (
                current is None or current == point.id
            ):
                coef_region = point.id
                twins = _coincident_crossings(points, i)
                if not twins:
                    current = None if current == point.id else point.id
                else:
                    inside = self._inside_after(points, i, point.id)
                    if inside is None:
                        # Nothing beyond the vertex, fall back to parity
                        toggled = len(twins) % 2 == 0
                        if toggled:
                            current = None if current == point.id else point.id
                    else:
                        current = point.id if inside else None
                    coef = ground_effects[point.id].coefficient
                    resolved.update((j, coef) for j in twins)
            elif point.type == IntersectionType.GROUND_EFFECT:
                # Inside another region: overlaps are ignored
                resolved.update(
                    (j, ground_effects[current].coefficient)
                    for j in _coincident_crossings(points, i)
                )

            point.ground_coef = (
                ground_effects[coef_region].coefficient
                if coef_region is not None else math.nan
            )

    def _inside_after(
        self, points: List[CutPoint], i: int, g_idx: int,
    ) -> Optional[bool]:
        """Whether the line is inside a region just past the point ``i``.

        Tested at the midpoint to the next distinct cut point, None if
        every following point coincides with ``i``.
        """
        here = points[i]
        for nxt in points[i + 1:]:
            if not _same_xy(here, nxt):
                mx = (here.x + nxt.x) / 2.0
                my = (here.y + nxt.y) / 2.0
                return self.scene.ground_effects[g_idx].contains(mx, my)
        return None


def unique_xy(points: Sequence[CutPoint]) -> List[CutPoint]:
    """Drop points coinciding in (x, y) with an earlier one.

    Points are bucketed in a grid of cell size XY_TOLERANCE, so each point
    is only compared with the neighbours of its cell.
    """
    cells: Dict[Tuple[int, int], List[CutPoint]] = {}
    kept: List[CutPoint] = []
    for point in points:
        cx, cy = _cell(point)
        neighbours = (
            other
            for dx in (-1, 0, 1)
            for dy in (-1, 0, 1)
            for other in cells.get((cx + dx, cy + dy), ())
        )
        if any(_same_xy(point, other) for other in neighbours):
            continue
        cells.setdefault((cx, cy), []).append(point)
        kept.append(point)
    return kept


def _coincident_crossings(points: List[CutPoint], i: int) -> List[int]:
    """Indexes after ``i`` of crossings of the same region at the same place."""
    here = points[i]
    twins = []
    for j in range(i + 1, len(points)):
        other = points[j]
        if not _same_xy(here, other):
            break
        if other.type == IntersectionType.GROUND_EFFECT and other.id == here.id:
            twins.append(j)
    return twins


def _cell(point: CutPoint) -> Tuple[int, int]:
    return (math.floor(point.x / config.XY_TOLERANCE),
            math.floor(point.y / config.XY_TOLERANCE))


def _same_xy(a: CutPoint, b: CutPoint) -> bool:
    return (abs(a.x - b.x) <= config.XY_TOLERANCE
            and abs(a.y - b.y) <= config.XY_TOLERANCE)
