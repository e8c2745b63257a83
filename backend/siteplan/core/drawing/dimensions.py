"""Dimension overlays: edge lengths and clearance to the envelope."""

from __future__ import annotations

from dataclasses import dataclass

from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from siteplan.core.geometry.primitives import angle, distance, midpoint, nearest_point_on_segment
from siteplan.core.geometry.projection import Position, project
from siteplan.utils.units import format_distance

MIN_LABELLED_EDGE_M = 0.1


@dataclass(frozen=True)
class EdgeDimension:
    position: Position  # edge start
    midpoint: Position
    length_m: float
    angle_deg: float

    def to_dict(self) -> dict:
        return {
            "position": list(self.position),
            "midpoint": list(self.midpoint),
            "length_m": round(self.length_m, 3),
            "angle_deg": round(self.angle_deg, 2),
            "label": format_distance(self.length_m),
        }


@dataclass(frozen=True)
class EnvelopeDistance:
    min_m: float
    points: tuple[Position, Position] | None  # (footprint vertex, nearest envelope point)

    def to_dict(self) -> dict:
        return {
            "min_m": round(self.min_m, 3) if self.points else None,
            "points": [list(p) for p in self.points] if self.points else None,
        }


def edge_dimensions(polygon: BaseGeometry) -> list[EdgeDimension]:
    """One label per exterior edge of the (first) polygon, skipping edges under 10 cm."""
    ring = _first_exterior(polygon)
    if len(ring) < 4:
        return []
    frame = project(polygon)
    local = frame.to_local_ring(ring)

    dims = []
    for i in range(len(ring) - 1):
        length = distance(local[i], local[i + 1])
        if length < MIN_LABELLED_EDGE_M:
            continue
        dims.append(EdgeDimension(
            position=tuple(ring[i][:2]),
            midpoint=midpoint(ring[i], ring[i + 1]),
            length_m=length,
            angle_deg=angle(local[i], local[i + 1]),
        ))
    return dims


def distance_to_envelope(polygon: BaseGeometry, envelope: BaseGeometry | None) -> EnvelopeDistance:
    """Smallest distance from a footprint vertex to an envelope edge.

    ``min_m`` is infinite and ``points`` is ``None`` without an envelope.
    """
    no_result = EnvelopeDistance(float("inf"), None)
    if envelope is None or polygon is None or polygon.is_empty:
        return no_result
    env_ring = _first_exterior(envelope)
    ring = _first_exterior(polygon)
    if len(env_ring) < 2 or not ring:
        return no_result

    frame = project(envelope)
    env_local = frame.to_local_ring(env_ring)
    best = no_result
    for vertex in ring:
        p = frame.to_local(vertex)
        for a, b in zip(env_local, env_local[1:]):
            nearest = nearest_point_on_segment(p, a, b)
            d = distance(p, nearest)
            if d < best.min_m:
                best = EnvelopeDistance(d, (tuple(vertex[:2]), frame.from_local(nearest)))
    return best


def _first_exterior(geom: BaseGeometry) -> list[tuple[float, ...]]:
    if geom is None or geom.is_empty:
        return []
    poly = geom.geoms[0] if isinstance(geom, MultiPolygon) else geom
    if not hasattr(poly, "exterior"):
        return []
    return list(poly.exterior.coords)
