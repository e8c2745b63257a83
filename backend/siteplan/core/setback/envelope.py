"""Buildable envelope computation.

The envelope is what is left of a parcel once each boundary edge has been
pushed inward by its setback. It is computed in three tiers, each tried
only when the previous one produced nothing usable:

1. DIRECTIONAL: per-edge offsets stitched into a ring, clipped to the parcel
2. UNIFORM: a mitre inward buffer by the largest setback
3. IDENTITY: the parcel itself

So callers always get a polygon back, never ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from siteplan.core.geometry.boolean import Polygonal, polygonal_part, safe_intersection
from siteplan.core.geometry.offset import (
    OffsetEdge,
    offset_edges,
    offset_polygon_inward,
    stitch_offset_edges,
)
from siteplan.core.geometry.primitives import Point, signed_area
from siteplan.core.geometry.projection import LocalFrame, project
from siteplan.core.geometry.validation import outer_ring
from siteplan.core.setback.facade import (
    FacadeSegment,
    SegmentCategory,
    SegmentClassification,
    classify_segments,
)

logger = logging.getLogger(__name__)

# a directional result this close to the parcel area means nothing was offset
AREA_SHRINK_RATIO = 0.999


class EnvelopeTier(str, Enum):
    DIRECTIONAL = "directional"
    UNIFORM = "uniform"
    IDENTITY = "identity"


@dataclass
class EnvelopeResult:
    """Envelope in geographic coordinates plus the local construction data.

    ``corners`` and ``edges`` are only set for the directional tier; corner
    ``k`` is where ``edges[k]`` meets ``edges[k + 1]``. They are what the
    per-category setback bands are built from.
    """

    envelope: Polygonal
    tier: EnvelopeTier
    frame: LocalFrame
    segments: list[SegmentClassification] = field(default_factory=list)
    edges: list[OffsetEdge] = field(default_factory=list)
    corners: list[Point] | None = None

    @property
    def envelope_ring(self) -> list[tuple[float, float]] | None:
        """Stitched ring in geographic coordinates (directional tier only)."""
        if self.corners is None:
            return None
        return self.frame.from_local_ring(self.corners)


def compute_envelope(
    parcel: BaseGeometry,
    facade: FacadeSegment | None,
    front_m: float,
    lateral_m: float,
    rear_m: float,
    frame: LocalFrame | None = None,
) -> EnvelopeResult:
    frame = frame or project(parcel)
    segments = classify_segments(parcel, facade, frame)
    distances = {
        SegmentCategory.FRONT: max(0.0, front_m),
        SegmentCategory.LATERAL: max(0.0, lateral_m),
        SegmentCategory.REAR: max(0.0, rear_m),
    }
    max_m = max(distances.values())

    if len(segments) < 3 or max_m <= 0:
        return EnvelopeResult(parcel, EnvelopeTier.IDENTITY, frame, segments)

    local_parcel = polygonal_part(frame.to_local_geometry(parcel))
    if local_parcel is None:
        return EnvelopeResult(parcel, EnvelopeTier.IDENTITY, frame, segments)

    ring = frame.to_local_ring(outer_ring(parcel))
    edges = offset_edges(ring, [distances[s.category] for s in segments])
    corners = stitch_offset_edges(ring, edges)

    if corners is not None:
        envelope = _directional(local_parcel, ring, corners)
        if envelope is not None:
            return EnvelopeResult(
                frame.from_local_geometry(envelope),
                EnvelopeTier.DIRECTIONAL,
                frame,
                segments,
                edges,
                corners,
            )
    logger.debug("directional envelope degenerate, falling back to uniform %.2fm", max_m)

    envelope = _uniform(local_parcel, max_m)
    if envelope is not None:
        return EnvelopeResult(
            frame.from_local_geometry(envelope), EnvelopeTier.UNIFORM, frame, segments,
        )

    logger.warning("parcel collapses under a %.2fm setback, using parcel as envelope", max_m)
    return EnvelopeResult(parcel, EnvelopeTier.IDENTITY, frame, segments)


def uniform_envelope(
    parcel: BaseGeometry,
    distance_m: float,
    frame: LocalFrame | None = None,
) -> Polygonal | None:
    """Inward buffer of a geographic parcel by ``distance_m`` meters, or ``None``."""
    frame = frame or project(parcel)
    local_parcel = polygonal_part(frame.to_local_geometry(parcel))
    if local_parcel is None:
        return None
    if distance_m <= 0:
        return parcel
    envelope = _uniform(local_parcel, distance_m)
    return frame.from_local_geometry(envelope) if envelope is not None else None


def _directional(
    local_parcel: Polygonal,
    ring: list[Point],
    corners: list[Point],
) -> Polygonal | None:
    # a stitched ring that turned inside out or crosses itself is degenerate
    if signed_area(corners) * signed_area(ring) <= 0:
        return None
    candidate = Polygon(corners)
    if not candidate.is_valid or candidate.area <= 0:
        return None
    if candidate.area >= local_parcel.area * AREA_SHRINK_RATIO:
        return None
    return safe_intersection(candidate, local_parcel)


def _uniform(local_parcel: Polygonal, distance_m: float) -> Polygonal | None:
    shrunk = polygonal_part(offset_polygon_inward(local_parcel, distance_m))
    if shrunk is None:
        return None
    return safe_intersection(shrunk, local_parcel)
