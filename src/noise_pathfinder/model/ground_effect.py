"""Ground effect (absorption) area dataclass."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from shapely.geometry import MultiPolygon, Point, Polygon


@dataclass(frozen=True)
class GroundEffect:
    """Area with a single ground absorption coefficient G in [0, 1]."""
    geometry: Union[Polygon, MultiPolygon]
    coefficient: float

    def polygons(self) -> List[Polygon]:
        """Constituent polygons (multi-polygons are flattened)."""
        if isinstance(self.geometry, MultiPolygon):
            return list(self.geometry.geoms)
        return [self.geometry]

    def contains(self, x: float, y: float) -> bool:
        return self.geometry.contains(Point(x, y))
