"""Best-effort polygon boolean operations.

Each wrapper returns a polygonal geometry or ``None``. A GEOS failure is
retried once on ``make_valid``-cleaned operands; if that also fails the
caller gets ``None`` and chooses its own fallback. Nothing here raises.
"""

from __future__ import annotations

import logging
from typing import Iterable

from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import unary_union
from shapely.validation import make_valid

logger = logging.getLogger(__name__)

Polygonal = Polygon | MultiPolygon


def polygonal_part(geom: BaseGeometry | None) -> Polygonal | None:
    """Keep only the polygon pieces of a geometry; ``None`` if nothing has area."""
    if geom is None or geom.is_empty:
        return None
    if isinstance(geom, Polygon):
        return geom if geom.area > 0 else None
    if isinstance(geom, MultiPolygon):
        return geom if geom.area > 0 else None
    if isinstance(geom, GeometryCollection):
        polys: list[Polygon] = []
        for part in geom.geoms:
            if isinstance(part, Polygon) and part.area > 0:
                polys.append(part)
            elif isinstance(part, MultiPolygon):
                polys.extend(p for p in part.geoms if p.area > 0)
        if not polys:
            return None
        return polys[0] if len(polys) == 1 else MultiPolygon(polys)
    return None


def clean(geom: BaseGeometry) -> Polygonal | None:
    """Repair an invalid geometry and normalise exterior rings to CCW."""
    if geom is None or geom.is_empty:
        return None
    if not geom.is_valid:
        geom = make_valid(geom)
    part = polygonal_part(geom)
    if part is None:
        return None
    if isinstance(part, Polygon):
        return orient(part)
    return MultiPolygon([orient(p) for p in part.geoms])


def largest_polygon(geom: BaseGeometry | None) -> Polygon | None:
    part = polygonal_part(geom)
    if part is None:
        return None
    if isinstance(part, MultiPolygon):
        return max(part.geoms, key=lambda p: p.area)
    return part


def safe_intersection(a: BaseGeometry, b: BaseGeometry) -> Polygonal | None:
    return _binary("intersection", a, b)


def safe_difference(a: BaseGeometry, b: BaseGeometry) -> Polygonal | None:
    return _binary("difference", a, b)


def safe_union(geoms: Iterable[BaseGeometry | None]) -> Polygonal | None:
    parts = [g for g in geoms if g is not None and not g.is_empty]
    if not parts:
        return None
    if len(parts) == 1:
        return polygonal_part(parts[0])
    try:
        return polygonal_part(unary_union(parts))
    except GEOSException as exc:
        logger.debug("union failed, retrying on cleaned input: %s", exc)
    cleaned = [c for c in (clean(p) for p in parts) if c is not None]
    if not cleaned:
        return None
    try:
        return polygonal_part(unary_union(cleaned))
    except GEOSException as exc:
        logger.warning("union failed after cleaning: %s", exc)
        return cleaned[0]


def _binary(op: str, a: BaseGeometry, b: BaseGeometry) -> Polygonal | None:
    if a is None or b is None or a.is_empty:
        return None
    try:
        return polygonal_part(getattr(a, op)(b))
    except GEOSException as exc:
        logger.debug("%s failed, retrying on cleaned input: %s", op, exc)

    ca, cb = clean(a), clean(b)
    if ca is None or cb is None:
        return None
    try:
        return polygonal_part(getattr(ca, op)(cb))
    except GEOSException as exc:
        logger.warning("%s failed after cleaning: %s", op, exc)
        return None
