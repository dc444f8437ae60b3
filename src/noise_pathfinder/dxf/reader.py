"""DXF scene ingestion: buildings, topography and ground effect areas.

Layer conventions (see config):
- BUILDINGS: closed LWPOLYLINE footprints, ``thickness`` = building height
- TERRAIN: POINT, LINE, LWPOLYLINE (z = elevation) and 3D POLYLINE
  entities; points become topographic points, lines become breaklines
- ground layers: closed LWPOLYLINE areas, coefficient taken from the
  layer -> ground factor table
"""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

import ezdxf
from ezdxf.layouts import BaseLayout

from noise_pathfinder import config
from noise_pathfinder.scene.builder import SceneBuilder
from noise_pathfinder.utils.math_helpers import Coordinate

logger = logging.getLogger(__name__)


def read_dxf_scene(
    filepath: str | Path,
    builder: Optional[SceneBuilder] = None,
    building_layer: str = config.DXF_BUILDING_LAYER,
    terrain_layer: str = config.DXF_TERRAIN_LAYER,
    ground_layers: Optional[Dict[str, float]] = None,
) -> SceneBuilder:
    """Read a DXF file into a (new or given) scene builder.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file is not a readable DXF document.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"DXF file not found: {path}")
    try:
        doc = ezdxf.readfile(str(path))
    except (IOError, ezdxf.DXFStructureError) as e:
        raise ValueError(f"Unreadable DXF file {path}: {e}") from e

    builder = builder or SceneBuilder()
    counts = load_modelspace(
        doc.modelspace(), builder, building_layer, terrain_layer, ground_layers,
    )
    logger.info("Loaded %s from %s", dict(counts), path.name)
    return builder


def load_modelspace(
    msp: BaseLayout,
    builder: SceneBuilder,
    building_layer: str = config.DXF_BUILDING_LAYER,
    terrain_layer: str = config.DXF_TERRAIN_LAYER,
    ground_layers: Optional[Dict[str, float]] = None,
) -> Counter:
    """Feed the entities of a layout to a scene builder.

    Returns a counter of the features added, by kind.
    """
    if ground_layers is None:
        ground_layers = config.DXF_GROUND_LAYERS
    ground_coefs = {name.upper(): coef for name, coef in ground_layers.items()}
    building_layer = building_layer.upper()
    terrain_layer = terrain_layer.upper()

    counts: Counter = Counter()
    for entity in msp:
        layer = entity.dxf.layer.upper()
        kind = entity.dxftype()

        if layer == building_layer and kind == "LWPOLYLINE":
            if not _is_closed(entity):
                logger.warning("Open polyline %s on building layer, ignored.",
                               entity.dxf.handle)
                continue
            thickness = entity.dxf.get("thickness", 0.0)
            height = thickness if thickness > 0 else float("nan")
            if builder.add_building(entity.get_points("xy"), height) is not None:
                counts["buildings"] += 1

        elif layer == terrain_layer:
            if kind == "POINT":
                builder.add_terrain_point(tuple(entity.dxf.location))
                counts["terrain_points"] += 1
            else:
                line = _terrain_line(entity)
                if line is not None:
                    builder.add_terrain_line(line)
                    counts["terrain_lines"] += 1

        elif layer in ground_coefs and kind == "LWPOLYLINE":
            if not _is_closed(entity):
                logger.warning("Open polyline %s on ground layer, ignored.",
                               entity.dxf.handle)
                continue
            ring = entity.get_points("xy")
            if builder.add_ground_effect(ring, ground_coefs[layer]) is not None:
                counts["ground_effects"] += 1

    return counts


def _is_closed(lwpolyline) -> bool:
    points = lwpolyline.get_points("xy")
    return lwpolyline.closed or (len(points) > 2 and points[0] == points[-1])


def _terrain_line(entity) -> Optional[List[Coordinate]]:
    """3D vertices of a terrain line entity, None for other entity types."""
    kind = entity.dxftype()
    if kind == "LINE":
        return [tuple(entity.dxf.start), tuple(entity.dxf.end)]
    if kind == "LWPOLYLINE":
        z = entity.dxf.get("elevation", 0.0)
        line = [(x, y, z) for x, y in entity.get_points("xy")]
        if entity.closed and line:
            line.append(line[0])
        return line
    if kind == "POLYLINE" and entity.is_3d_polyline:
        line = [tuple(v) for v in entity.points()]
        if entity.is_closed and line:
            line.append(line[0])
        return line
    return None
