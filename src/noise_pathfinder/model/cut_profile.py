"""Cut profile: ordered crossings of a source-receiver sight line."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from noise_pathfinder.config import IntersectionType, NO_ID
from noise_pathfinder.utils.math_helpers import Coordinate


@dataclass
class CutPoint:
    """A point where the sight line crosses a scene feature."""
    coordinate: Coordinate
    type: IntersectionType
    id: int = NO_ID               # Index of the crossed building/triangle/ground
    building_id: int = NO_ID      # Enclosing building, NO_ID if none
    ground_coef: float = math.nan  # NaN = no ground effect active

    @property
    def x(self) -> float:
        return self.coordinate[0]

    @property
    def y(self) -> float:
        return self.coordinate[1]

    @property
    def z(self) -> float:
        return self.coordinate[2]

    @property
    def has_ground_coef(self) -> bool:
        return not math.isnan(self.ground_coef)

    def __str__(self) -> str:
        x, y, z = self.coordinate
        return f"{self.type.name} ({x},{y},{z}) ; {self.ground_coef}"


@dataclass
class CutProfile:
    """Cut points ordered from source to receiver.

    The source is always the first point and the receiver the last one
    once the profile has been computed.
    """
    points: List[CutPoint] = field(default_factory=list)
    source: Optional[CutPoint] = None
    receiver: Optional[CutPoint] = None

    def add_source(self, coord: Coordinate, building_id: int = NO_ID) -> CutPoint:
        self.source = CutPoint(coord, IntersectionType.SOURCE, building_id=building_id)
        self.points.append(self.source)
        return self.source

    def add_receiver(self, coord: Coordinate, building_id: int = NO_ID) -> CutPoint:
        self.receiver = CutPoint(coord, IntersectionType.RECEIVER, building_id=building_id)
        self.points.append(self.receiver)
        return self.receiver

    def add_cut_point(self, point: CutPoint) -> None:
        self.points.append(point)

    def sort(self, key: Callable[[CutPoint], float]) -> None:
        """Stable sort of the cut points."""
        self.points.sort(key=key)

    def reverse(self) -> None:
        self.points.reverse()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[CutPoint]:
        return iter(self.points)

    def _of_type(self, kind: IntersectionType) -> List[CutPoint]:
        return [p for p in self.points if p.type == kind]

    def building_points(self) -> List[CutPoint]:
        return self._of_type(IntersectionType.BUILDING)

    def terrain_points(self) -> List[CutPoint]:
        return self._of_type(IntersectionType.TERRAIN)

    def ground_effect_points(self) -> List[CutPoint]:
        return self._of_type(IntersectionType.GROUND_EFFECT)

    @property
    def has_building(self) -> bool:
        return any(p.type == IntersectionType.BUILDING for p in self.points)

    @property
    def has_terrain(self) -> bool:
        return any(p.type == IntersectionType.TERRAIN for p in self.points)

    @property
    def has_ground_effect(self) -> bool:
        return any(p.type == IntersectionType.GROUND_EFFECT for p in self.points)
