"""Scene and profile computation constants.

References:
- NMPB-2008 / CNOSSOS-EU ground factor G (0 = hard, 1 = soft)
- Shewchuk's Triangle switches (p = PSLG, c = convex hull, a = maximum area)

All internal lengths are in scene units (meters in practice).
"""
from enum import Enum


class IntersectionType(Enum):
    """Kind of feature a cut point or a wall originates from."""
    BUILDING = "building"
    TERRAIN = "terrain"
    GROUND_EFFECT = "ground_effect"
    SOURCE = "source"
    RECEIVER = "receiver"


# ── Identifiers ──────────────────────────────────────────────────────
NO_ID = -1                      # Source/receiver cut points, missing keys

# ── Profile Query ────────────────────────────────────────────────────
MAX_LINE_LENGTH = 15.0          # Max sub-segment length for index queries

# ── Spatial Indexes ──────────────────────────────────────────────────
TREE_NODE_CAPACITY = 20         # STRtree node capacity (walls and triangles)

# ── Terrain ──────────────────────────────────────────────────────────
DEFAULT_MAX_TRIANGLE_AREA = 0.0     # 0 disables the area constraint
TERRAIN_LOOKUP_MAX_ITERATIONS = 32  # Box doublings before giving up
FLAT_GROUND_ELEVATION = 0.0         # Ground z when the scene has no terrain

# ── Geometric Tolerances ─────────────────────────────────────────────
EPSILON = 1e-12                 # Degenerate denominators
XY_TOLERANCE = 1e-6             # Cut points closer than this coincide

# ── DXF Ingestion ────────────────────────────────────────────────────
DXF_BUILDING_LAYER = "BUILDINGS"
DXF_TERRAIN_LAYER = "TERRAIN"

# Ground layer name -> ground factor G
DXF_GROUND_LAYERS = {
    "GROUND_HARD": 0.0,
    "GROUND_SOFT": 1.0,
}
