"""Mathematical helpers for segments, interpolation and envelopes.

Coordinates are plain ``(x, y, z)`` tuples. A NaN ``z`` means the
elevation is undefined.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from noise_pathfinder.config import EPSILON

Coordinate = Tuple[float, float, float]
Bounds = Tuple[float, float, float, float]


def to_coordinate(coord: Sequence[float]) -> Coordinate:
    """Force a 2D or 3D sequence to an ``(x, y, z)`` tuple, undefined z -> 0."""
    x, y = float(coord[0]), float(coord[1])
    z = float(coord[2]) if len(coord) > 2 else math.nan
    if math.isnan(z):
        z = 0.0
    return (x, y, z)


def has_z(coord: Sequence[float]) -> bool:
    """True if the coordinate carries a defined elevation."""
    return len(coord) > 2 and not math.isnan(coord[2])


def distance_2d(x1: float, y1: float, x2: float, y2: float) -> float:
    """2D Euclidean distance."""
    return math.sqrt((x2 - x1) ** 2 + (y2 - y1) ** 2)


def point_along(p0: Coordinate, p1: Coordinate, fraction: float) -> Coordinate:
    """Point at ``fraction`` of the way from p0 to p1 (all three axes)."""
    return (
        p0[0] + fraction * (p1[0] - p0[0]),
        p0[1] + fraction * (p1[1] - p0[1]),
        p0[2] + fraction * (p1[2] - p0[2]),
    )


def segment_fraction(
    px: float, py: float, p0: Sequence[float], p1: Sequence[float],
) -> float:
    """Fraction along p0->p1 of the projection of (px, py), clamped to [0, 1]."""
    dx = p1[0] - p0[0]
    dy = p1[1] - p0[1]
    len2 = dx * dx + dy * dy
    if len2 < EPSILON:
        return 0.0
    t = ((px - p0[0]) * dx + (py - p0[1]) * dy) / len2
    return min(1.0, max(0.0, t))


def interpolate_z(
    px: float, py: float, p0: Sequence[float], p1: Sequence[float],
) -> float:
    """Linear elevation at (px, py) along the segment p0->p1."""
    t = segment_fraction(px, py, p0, p1)
    return p0[2] + t * (p1[2] - p0[2])


def projection_fraction(
    px: float, py: float, start: Sequence[float], end: Sequence[float],
) -> float:
    """Signed arc-length fraction of (px, py) projected on start->end.

    Unlike :func:`segment_fraction` the result is not clamped, so it gives
    a total order of points along the direction vector.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    len2 = dx * dx + dy * dy
    if len2 < EPSILON:
        return 0.0
    return ((px - start[0]) * dx + (py - start[1]) * dy) / len2


def barycentric_z(
    px: float, py: float,
    v0: Sequence[float], v1: Sequence[float], v2: Sequence[float],
) -> float:
    """Elevation of (px, py) on the plane of triangle v0-v1-v2.

    Returns NaN for a degenerate (zero area) triangle.
    """
    x0, y0, z0 = v0[0], v0[1], v0[2]
    x1, y1, z1 = v1[0], v1[1], v1[2]
    x2, y2, z2 = v2[0], v2[1], v2[2]

    denom = (y1 - y2) * (x0 - x2) + (x2 - x1) * (y0 - y2)
    if abs(denom) < EPSILON:
        return math.nan

    lambda0 = ((y1 - y2) * (px - x2) + (x2 - x1) * (py - y2)) / denom
    lambda1 = ((y2 - y0) * (px - x2) + (x0 - x2) * (py - y2)) / denom
    lambda2 = 1.0 - lambda0 - lambda1
    return lambda0 * z0 + lambda1 * z1 + lambda2 * z2


def point_in_triangle(
    px: float, py: float,
    v0: Sequence[float], v1: Sequence[float], v2: Sequence[float],
    tol: float = 1e-9,
) -> bool:
    """Check if (px, py) lies inside or on the edges of the triangle."""
    d1 = _cross(v0, v1, px, py)
    d2 = _cross(v1, v2, px, py)
    d3 = _cross(v2, v0, px, py)
    has_neg = d1 < -tol or d2 < -tol or d3 < -tol
    has_pos = d1 > tol or d2 > tol or d3 > tol
    return not (has_neg and has_pos)


def _cross(a: Sequence[float], b: Sequence[float], px: float, py: float) -> float:
    return (b[0] - a[0]) * (py - a[1]) - (b[1] - a[1]) * (px - a[0])


def segment_intersection(
    p0: Sequence[float], p1: Sequence[float],
    q0: Sequence[float], q1: Sequence[float],
) -> Optional[Tuple[float, float]]:
    """Planar intersection point of segments p0-p1 and q0-q1.

    Returns None if the segments do not touch. For collinear overlapping
    segments the overlap point nearest to p0 is returned. The result does
    not depend on the orientation of q, so two triangles sharing an edge
    yield the same point.
    """
    # Canonical orientation of the crossed segment
    if (q1[0], q1[1]) < (q0[0], q0[1]):
        q0, q1 = q1, q0

    dx, dy = p1[0] - p0[0], p1[1] - p0[1]
    ex, ey = q1[0] - q0[0], q1[1] - q0[1]
    wx, wy = q0[0] - p0[0], q0[1] - p0[1]

    len_d = math.hypot(dx, dy)
    len_e = math.hypot(ex, ey)

    if len_d < EPSILON:
        return _point_on_segment(p0[0], p0[1], q0, q1)
    if len_e < EPSILON:
        return _point_on_segment(q0[0], q0[1], p0, p1)

    denom = dx * ey - dy * ex
    if abs(denom) > EPSILON * len_d * len_e:
        t = (wx * ey - wy * ex) / denom
        u = (wx * dy - wy * dx) / denom
        tol = 1e-10
        if -tol <= t <= 1.0 + tol and -tol <= u <= 1.0 + tol:
            u = min(1.0, max(0.0, u))
            return (q0[0] + u * ex, q0[1] + u * ey)
        return None

    # Parallel: only collinear segments can touch
    if abs(wx * dy - wy * dx) / len_d > 1e-9:
        return None
    len2 = len_d * len_d
    ta = (wx * dx + wy * dy) / len2
    tb = ((q1[0] - p0[0]) * dx + (q1[1] - p0[1]) * dy) / len2
    lo = max(0.0, min(ta, tb))
    hi = min(1.0, max(ta, tb))
    if lo > hi:
        return None
    return (p0[0] + lo * dx, p0[1] + lo * dy)


def _point_on_segment(
    px: float, py: float, a: Sequence[float], b: Sequence[float],
) -> Optional[Tuple[float, float]]:
    t = segment_fraction(px, py, a, b)
    cx = a[0] + t * (b[0] - a[0])
    cy = a[1] + t * (b[1] - a[1])
    if distance_2d(px, py, cx, cy) < 1e-9:
        return (px, py)
    return None


def segment_bounds(p0: Sequence[float], p1: Sequence[float]) -> Bounds:
    """(minx, miny, maxx, maxy) of a segment."""
    return (
        min(p0[0], p1[0]), min(p0[1], p1[1]),
        max(p0[0], p1[0]), max(p0[1], p1[1]),
    )


def expand_bounds(current: Optional[Bounds], other: Bounds) -> Bounds:
    """Union of two envelopes. ``current`` may be None."""
    if current is None:
        return tuple(float(v) for v in other)
    return (
        min(current[0], other[0]), min(current[1], other[1]),
        max(current[2], other[2]), max(current[3], other[3]),
    )
