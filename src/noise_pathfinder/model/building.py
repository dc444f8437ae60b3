"""Building footprint dataclass."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from shapely.geometry import Point, Polygon

from noise_pathfinder.config import NO_ID


@dataclass(frozen=True)
class Building:
    """A building extruded vertically from its 2D footprint."""
    footprint: Polygon
    height: float = math.nan          # NaN = unknown, walls fall back to terrain
    alphas: Tuple[float, ...] = field(default_factory=tuple)  # Absorption per band
    primary_key: int = NO_ID          # External (database) identifier

    @property
    def has_height(self) -> bool:
        return not math.isnan(self.height)

    def rings(self) -> Iterator[List[tuple]]:
        """Exterior ring then interior rings, each as closed coordinate lists."""
        yield list(self.footprint.exterior.coords)
        for interior in self.footprint.interiors:
            yield list(interior.coords)

    def contains(self, x: float, y: float) -> bool:
        """True if (x, y) lies strictly inside the footprint."""
        return self.footprint.contains(Point(x, y))
