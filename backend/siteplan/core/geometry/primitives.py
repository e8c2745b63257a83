"""Planar primitives on local-meter points.

All functions take plain ``(x, y)`` tuples already projected into a
:class:`~siteplan.core.geometry.projection.LocalFrame`. None of them raise on
degenerate input: parallel lines, zero-length segments and empty rings give
``None`` or a neutral value and the caller decides the fallback.
"""

from __future__ import annotations

import math
from typing import Sequence

Point = tuple[float, float]

# below this cross product two directions are treated as parallel
PARALLEL_EPS = 1e-10


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def bearing(a: Sequence[float], b: Sequence[float]) -> float:
    """Compass bearing from ``a`` to ``b`` in degrees, 0 = north, clockwise, in [0, 360)."""
    return normalize_bearing(math.degrees(math.atan2(b[0] - a[0], b[1] - a[1])))


def angle(a: Sequence[float], b: Sequence[float]) -> float:
    """Mathematical angle of ``a -> b`` in degrees, 0 = east, counter-clockwise."""
    return math.degrees(math.atan2(b[1] - a[1], b[0] - a[0]))


def normalize_bearing(value: float) -> float:
    b = value % 360.0
    return b + 360.0 if b < 0 else b


def bearing_difference(b1: float, b2: float) -> float:
    """Smallest absolute difference between two bearings, in [0, 180]."""
    diff = abs(normalize_bearing(b1) - normalize_bearing(b2))
    return 360.0 - diff if diff > 180.0 else diff


def midpoint(a: Sequence[float], b: Sequence[float]) -> Point:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


def signed_area(ring: Sequence[Sequence[float]]) -> float:
    """Shoelace area; positive for counter-clockwise rings. Closing point optional."""
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        x1, y1 = ring[i][0], ring[i][1]
        x2, y2 = ring[(i + 1) % n][0], ring[(i + 1) % n][1]
        total += x1 * y2 - x2 * y1
    return total / 2


def is_clockwise(ring: Sequence[Sequence[float]]) -> bool:
    return signed_area(ring) < 0


def centroid(ring: Sequence[Sequence[float]]) -> Point:
    """Area centroid of a ring; vertex average when the ring has no area."""
    pts = _open(ring)
    if not pts:
        return (0.0, 0.0)
    a = signed_area(pts)
    if abs(a) < 1e-12:
        return (
            sum(p[0] for p in pts) / len(pts),
            sum(p[1] for p in pts) / len(pts),
        )
    cx = cy = 0.0
    n = len(pts)
    for i in range(n):
        x1, y1 = pts[i][0], pts[i][1]
        x2, y2 = pts[(i + 1) % n][0], pts[(i + 1) % n][1]
        cross = x1 * y2 - x2 * y1
        cx += (x1 + x2) * cross
        cy += (y1 + y2) * cross
    return (cx / (6 * a), cy / (6 * a))


def bbox(points: Sequence[Sequence[float]]) -> tuple[float, float, float, float]:
    """``(minx, miny, maxx, maxy)``; all zeros for an empty sequence."""
    if not points:
        return (0.0, 0.0, 0.0, 0.0)
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def point_in_ring(point: Sequence[float], ring: Sequence[Sequence[float]]) -> bool:
    """Even-odd test. Points exactly on the boundary may go either way."""
    pts = _open(ring)
    x, y = point[0], point[1]
    inside = False
    j = len(pts) - 1
    for i in range(len(pts)):
        xi, yi = pts[i][0], pts[i][1]
        xj, yj = pts[j][0], pts[j][1]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def segment_intersection(
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
    p4: Sequence[float],
    extend: bool = False,
) -> Point | None:
    """Intersection of segment p1-p2 with segment p3-p4.

    With ``extend=True`` both segments are treated as infinite lines and the
    line-line intersection is returned wherever it falls. Parallel or
    near-parallel inputs return ``None``.
    """
    x1, y1 = p1[0], p1[1]
    x2, y2 = p2[0], p2[1]
    x3, y3 = p3[0], p3[1]
    x4, y4 = p4[0], p4[1]

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < PARALLEL_EPS:
        return None

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    if not extend:
        u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom
        if not (0 <= t <= 1 and 0 <= u <= 1):
            return None

    return (x1 + t * (x2 - x1), y1 + t * (y2 - y1))


def nearest_point_on_segment(
    p: Sequence[float], a: Sequence[float], b: Sequence[float]
) -> Point:
    """Orthogonal projection of ``p`` onto segment a-b, clamped to its ends."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return (a[0], a[1])
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return (a[0] + t * dx, a[1] + t * dy)


def left_normal(a: Sequence[float], b: Sequence[float]) -> Point | None:
    """Unit normal pointing left of a -> b, or ``None`` for a zero-length edge."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return None
    return (-dy / length, dx / length)


def _open(ring: Sequence[Sequence[float]]) -> list[Sequence[float]]:
    """Drop the closing point of a closed ring."""
    pts = list(ring)
    if len(pts) > 1 and pts[0][0] == pts[-1][0] and pts[0][1] == pts[-1][1]:
        pts = pts[:-1]
    return pts
