"""Per-edge inward offsetting and corner stitching.

A setback envelope is not a plain buffer: each boundary edge moves inward by
its own distance. This module handles the two parts of that:

1. EDGE OFFSET: push every ring edge along its inward normal
2. CORNER STITCHING: rebuild a closed ring where consecutive offset edges meet

Uniform offsets (one distance for the whole ring) stay on Shapely's buffer
with a mitre join so square parcels keep square corners.

Everything here works on local-meter coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from shapely.geometry import MultiPolygon, Polygon

from siteplan.core.geometry.primitives import (
    Point,
    distance,
    is_clockwise,
    left_normal,
    midpoint,
    segment_intersection,
)

# stitched corners farther than this from their source vertex are implausible
STITCH_GUARD_FACTOR = 3.0
STITCH_GUARD_MARGIN_M = 50.0


@dataclass(frozen=True)
class OffsetEdge:
    """Boundary edge ``index`` moved inward by ``distance`` meters."""

    index: int
    p1: Point
    p2: Point
    distance: float


# ── 1. Edge offset ──────────────────────────────────────────────────────

def offset_edges(
    ring: Sequence[Sequence[float]],
    distances: Sequence[float],
) -> list[OffsetEdge]:
    """Offset every edge of a closed ring inward by its own distance.

    ``ring`` is closed (first point repeated last), so it has ``len(ring) - 1``
    edges and ``distances[i]`` applies to edge ``ring[i] -> ring[i + 1]``.
    Zero-length edges have no normal and are left out of the result.
    """
    # inward is the left side of a CCW ring and the right side of a CW one
    sign = -1.0 if is_clockwise(ring) else 1.0
    edges: list[OffsetEdge] = []
    for i in range(len(ring) - 1):
        a, b = ring[i], ring[i + 1]
        normal = left_normal(a, b)
        if normal is None:
            continue
        d = max(0.0, distances[i])
        nx, ny = normal[0] * d * sign, normal[1] * d * sign
        edges.append(OffsetEdge(
            index=i,
            p1=(a[0] + nx, a[1] + ny),
            p2=(b[0] + nx, b[1] + ny),
            distance=d,
        ))
    return edges


# ── 2. Corner stitching ─────────────────────────────────────────────────

def stitch_offset_edges(
    ring: Sequence[Sequence[float]],
    edges: Sequence[OffsetEdge],
) -> list[Point] | None:
    """Close a ring through the corners of consecutive offset edges.

    Corner ``k`` joins ``edges[k]`` to ``edges[k + 1]`` (cyclically) at the
    intersection of their supporting lines. Parallel neighbours reuse the end
    of the first edge; an intersection that shoots past
    ``3 x max distance + 50 m`` from the original vertex is replaced by the
    midpoint of the two offset endpoints. Returns ``None`` with fewer than
    three edges.
    """
    n = len(edges)
    if n < 3:
        return None

    max_distance = max(e.distance for e in edges)
    guard = STITCH_GUARD_FACTOR * max_distance + STITCH_GUARD_MARGIN_M
    corners: list[Point] = []
    for k in range(n):
        curr = edges[k]
        nxt = edges[(k + 1) % n]
        vertex = ring[curr.index + 1]
        hit = segment_intersection(curr.p1, curr.p2, nxt.p1, nxt.p2, extend=True)
        if hit is None:
            corners.append(curr.p2)
        elif distance(hit, vertex) > guard:
            corners.append(midpoint(curr.p2, nxt.p1))
        else:
            corners.append(hit)

    corners.append(corners[0])
    return corners


# ── 3. Uniform polygon offsets ──────────────────────────────────────────

def offset_polygon_inward(
    polygon: Polygon | MultiPolygon,
    distance: float,
) -> Polygon | MultiPolygon | None:
    """Offset a polygon inward (shrink) by a given distance.

    Negative buffer = inward offset.
    Returns None if the polygon collapses to nothing.
    """
    result = polygon.buffer(-distance, join_style="mitre", mitre_limit=5.0)

    if result.is_empty:
        return None

    return result


def offset_polygon_outward(
    polygon: Polygon | MultiPolygon,
    distance: float,
) -> Polygon | MultiPolygon:
    """Offset a polygon outward (expand) by a given distance.

    Used for the containment tolerance around an envelope.
    """
    return polygon.buffer(distance, join_style="mitre", mitre_limit=5.0)
