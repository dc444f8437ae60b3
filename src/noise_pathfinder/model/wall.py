"""Wall segment dataclass: building facet, terrain edge or ground boundary."""
from __future__ import annotations

from dataclasses import dataclass

from noise_pathfinder.config import IntersectionType
from noise_pathfinder.utils.math_helpers import Bounds, Coordinate, has_z, segment_bounds


@dataclass(frozen=True)
class Wall:
    """A 3D segment used as a crossing test primitive."""
    p0: Coordinate
    p1: Coordinate
    origin_id: int                # Building, triangle or ground effect index
    type: IntersectionType

    @property
    def bounds(self) -> Bounds:
        return segment_bounds(self.p0, self.p1)

    @property
    def has_z(self) -> bool:
        """True if both endpoints carry an elevation."""
        return has_z(self.p0) and has_z(self.p1)
