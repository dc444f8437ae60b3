"""LandXML terrain ingestion via lxml.

Reads one surface of a LandXML document:
- TIN points (Surface/Definition/Pnts/P)
- Breaklines (Surface/SourceData/Breaklines/Breakline/PntList3D)

Faces are ignored, the scene re-triangulates the points with the
breaklines as constraints. Elements are matched on their local name so
documents with or without the LandXML namespace read the same. Lengths
are converted to meters from the linearUnit declared under Units.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from lxml import etree

from noise_pathfinder.scene.builder import SceneBuilder
from noise_pathfinder.utils.math_helpers import Coordinate

logger = logging.getLogger(__name__)

US_SURVEY_FT_TO_M = 0.30480060960121924

# LandXML linearUnit enumeration -> meters
LINEAR_UNITS: Dict[str, float] = {
    "millimeter": 0.001,
    "centimeter": 0.01,
    "meter": 1.0,
    "kilometer": 1000.0,
    "inch": 0.0254,
    "foot": 0.3048,
    "USSurveyFoot": US_SURVEY_FT_TO_M,
    "mile": 1609.344,
}


def _select(node: etree._Element, path: str, deep: bool = False) -> list:
    """Elements under ``node`` matching a slash separated path of local names."""
    steps = "/".join(f"*[local-name()='{name}']" for name in path.split("/"))
    return node.xpath((".//" if deep else "./") + steps)


def _first(node: etree._Element, path: str) -> Optional[etree._Element]:
    found = _select(node, path)
    return found[0] if found else None


class LandXMLParser:
    """Parser for LandXML surfaces."""

    def __init__(self, filepath: str | Path):
        self.filepath = Path(filepath)
        if not self.filepath.exists():
            raise FileNotFoundError(f"LandXML file not found: {self.filepath}")
        try:
            self.root = etree.parse(str(self.filepath)).getroot()
        except etree.XMLSyntaxError as e:
            raise ValueError(f"Malformed LandXML file {self.filepath}: {e}") from e
        self.unit_name, self._scale = self._linear_unit()

    def _linear_unit(self) -> Tuple[str, float]:
        declared = self.root.xpath(
            "./*[local-name()='Units']/*[@linearUnit]/@linearUnit"
        )
        if not declared:
            return "meter", 1.0
        name = str(declared[0])
        scale = LINEAR_UNITS.get(name)
        if scale is None:
            logger.warning("Unknown linear unit '%s' in %s, assuming meters",
                           name, self.filepath.name)
            return name, 1.0
        return name, scale

    def _lengths(self, text: str) -> List[float]:
        return [float(v) * self._scale for v in text.split()]

    def _surfaces(self) -> list:
        return _select(self.root, "Surfaces/Surface", deep=True)

    def _surface(self, surface_name: str = "") -> Optional[etree._Element]:
        surfaces = self._surfaces()
        if not surface_name:
            return surfaces[0] if surfaces else None
        for surface in surfaces:
            if surface.get("name") == surface_name:
                return surface
        raise ValueError(f"No Surface named '{surface_name}' in {self.filepath}")

    def surface_names(self) -> List[str]:
        return [s.get("name", "") for s in self._surfaces()]

    def parse_points(self, surface_name: str = "") -> List[Coordinate]:
        """TIN points of a surface as (easting, northing, elevation) in meters.

        LandXML stores points as 'northing easting elevation'.
        """
        surface = self._surface(surface_name)
        if surface is None:
            return []

        points = []
        for p in _select(surface, "Definition/Pnts/P"):
            values = self._lengths(p.text or "")
            if len(values) < 3:
                raise ValueError(f"Surface point {p.get('id')} has no elevation")
            northing, easting, z = values[:3]
            points.append((easting, northing, z))
        return points

    def parse_breaklines(self, surface_name: str = "") -> List[List[Coordinate]]:
        """Breaklines of a surface, each a list of (easting, northing, elevation)."""
        surface = self._surface(surface_name)
        if surface is None:
            return []

        lines = []
        for brk in _select(surface, "Breaklines/Breakline", deep=True):
            pnt_list = _first(brk, "PntList3D")
            if pnt_list is None or not pnt_list.text:
                continue
            values = self._lengths(pnt_list.text)
            if len(values) % 3:
                raise ValueError(
                    f"Breakline '{brk.get('name', '')}' has a truncated PntList3D"
                )
            line = [
                (values[i + 1], values[i], values[i + 2])
                for i in range(0, len(values), 3)
            ]
            if len(line) >= 2:
                lines.append(line)
        return lines

    def feed(self, builder: SceneBuilder, surface_name: str = "") -> int:
        """Add the surface points and breaklines to a scene builder.

        Returns the number of terrain points fed.
        """
        points = self.parse_points(surface_name)
        lines = self.parse_breaklines(surface_name)
        for point in points:
            builder.add_terrain_point(point)
        for line in lines:
            builder.add_terrain_line(line)
        logger.info("Loaded %d terrain points and %d breaklines from %s (%s)",
                    len(points), len(lines), self.filepath.name, self.unit_name)
        return len(points)
