"""Forbidden zone, per-category setback bands and hatch lines.

The forbidden zone is the strip of parcel outside the envelope. For display
it is split into front, lateral and rear bands and covered in diagonal
hatching. All results are in geographic coordinates; the work is done in
the parcel's local frame.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shapely import affinity
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from siteplan.config import settings
from siteplan.core.geometry.boolean import (
    Polygonal,
    clean,
    polygonal_part,
    safe_difference,
    safe_intersection,
    safe_union,
)
from siteplan.core.geometry.projection import LocalFrame, project
from siteplan.core.geometry.validation import outer_ring
from siteplan.core.setback.envelope import EnvelopeResult
from siteplan.core.setback.facade import SegmentCategory

MIN_HATCH_SEGMENT_M = 0.5


@dataclass
class SetbackBands:
    front: Polygonal | None = None
    lateral: Polygonal | None = None
    rear: Polygonal | None = None

    def get(self, category: SegmentCategory) -> Polygonal | None:
        return getattr(self, category.value)

    def non_empty(self) -> list[Polygonal]:
        return [b for b in (self.front, self.lateral, self.rear) if b is not None]

    @property
    def is_empty(self) -> bool:
        return not self.non_empty()


def compute_forbidden_band(parcel: BaseGeometry, envelope: BaseGeometry) -> Polygonal | None:
    """``parcel - envelope``, or ``None`` when the difference is empty or fails."""
    frame = project(parcel)
    band = safe_difference(frame.to_local_geometry(parcel), frame.to_local_geometry(envelope))
    return frame.from_local_geometry(band) if band is not None else None


def compute_bands(parcel: BaseGeometry, result: EnvelopeResult) -> SetbackBands:
    """Split the forbidden zone by the category of the edge each part borders.

    For every offset edge, the quadrilateral between the parcel edge and its
    stretch of the stitched envelope ring is clipped to the parcel, cut away
    from the envelope, and unioned with the other quads of its category.
    Only available for directional envelopes; otherwise empty.
    """
    if result.corners is None or len(result.edges) < 3:
        return SetbackBands()

    frame = result.frame
    local_parcel = polygonal_part(frame.to_local_geometry(parcel))
    local_envelope = polygonal_part(frame.to_local_geometry(result.envelope))
    if local_parcel is None:
        return SetbackBands()

    ring = frame.to_local_ring(outer_ring(parcel))
    categories = {s.index: s.category for s in result.segments}
    corners = result.corners
    n = len(result.edges)

    parts: dict[SegmentCategory, list[Polygonal]] = {c: [] for c in SegmentCategory}
    for k, edge in enumerate(result.edges):
        quad = clean(Polygon([
            ring[edge.index],
            ring[edge.index + 1],
            corners[k],
            corners[(k - 1) % n],
        ]))
        if quad is None:
            continue
        clipped = safe_intersection(quad, local_parcel)
        if clipped is not None and local_envelope is not None:
            clipped = safe_difference(clipped, local_envelope)
        if clipped is not None:
            parts[categories.get(edge.index, SegmentCategory.LATERAL)].append(clipped)

    bands = SetbackBands()
    for category, polys in parts.items():
        merged = safe_union(polys)
        if merged is not None:
            setattr(bands, category.value, frame.from_local_geometry(merged))
    return bands


def compute_hatch_lines(
    parcel: BaseGeometry,
    envelope: BaseGeometry,
    spacing_m: float | None = None,
    angle_deg: float | None = None,
    frame: LocalFrame | None = None,
) -> MultiLineString | None:
    """Parallel hatch segments covering ``parcel - envelope``.

    The geometries are rotated so the hatch direction is horizontal, then
    each sweep line ``y = c`` is walked left to right through its sorted
    crossings with both boundaries: a stretch is kept while inside the
    parcel and outside the envelope. Stretches shorter than 0.5 m are
    dropped. Returns ``None`` when nothing is left.
    """
    spacing = settings.hatch_spacing_m if spacing_m is None else spacing_m
    angle = settings.hatch_angle_deg if angle_deg is None else angle_deg
    if spacing <= 0:
        return None

    frame = frame or project(parcel)
    local_parcel = polygonal_part(frame.to_local_geometry(parcel))
    if local_parcel is None:
        return None
    local_envelope = polygonal_part(frame.to_local_geometry(envelope))

    origin = (0.0, 0.0)
    parcel_rings = _rings(affinity.rotate(local_parcel, -angle, origin=origin))
    envelope_rings = (
        _rings(affinity.rotate(local_envelope, -angle, origin=origin))
        if local_envelope is not None else []
    )

    ys = [y for ring in parcel_rings for _, y in ring]
    y_min, y_max = min(ys), max(ys)

    segments: list[LineString] = []
    c = math.floor(y_min / spacing) * spacing + spacing / 2
    while c < y_max:
        events = [(x, 0) for x in _crossings(parcel_rings, c)]
        events += [(x, 1) for x in _crossings(envelope_rings, c)]
        events.sort()

        inside = [False, False]
        start: float | None = None
        for x, which in events:
            inside[which] = not inside[which]
            hatching = inside[0] and not inside[1]
            if hatching and start is None:
                start = x
            elif not hatching and start is not None:
                if x - start >= MIN_HATCH_SEGMENT_M:
                    segments.append(LineString([(start, c), (x, c)]))
                start = None
        c += spacing

    if not segments:
        return None
    lines = affinity.rotate(MultiLineString(segments), angle, origin=origin)
    return frame.from_local_geometry(lines)


def _rings(geom: BaseGeometry) -> list[list[tuple[float, float]]]:
    polys = geom.geoms if isinstance(geom, MultiPolygon) else [geom]
    rings = []
    for poly in polys:
        rings.append(list(poly.exterior.coords))
        rings.extend(list(r.coords) for r in poly.interiors)
    return rings


def _crossings(rings: list[list[tuple[float, float]]], c: float) -> list[float]:
    xs = []
    for ring in rings:
        for (ax, ay), (bx, by) in zip(ring, ring[1:]):
            if (ay > c) != (by > c):
                xs.append(ax + (c - ay) * (bx - ax) / (by - ay))
    return xs
