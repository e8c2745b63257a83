"""Facade selection and boundary edge classification.

Every edge of the parcel's outer ring is labelled front, lateral or rear.
The front edge is the one the user picked; the rear edge is chosen by a
scoring heuristic that favours edges facing the front and lying far from it.
Lengths, bearings and match distances are measured in meters in the
parcel's local frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from shapely.geometry.base import BaseGeometry

from siteplan.config import settings
from siteplan.core.geometry.primitives import (
    bearing,
    bearing_difference,
    distance,
    midpoint,
    nearest_point_on_segment,
)
from siteplan.core.geometry.projection import LocalFrame, Position, project
from siteplan.core.geometry.validation import outer_ring

# Rear-edge scoring. These are empirical and tunable: an edge within the
# cutoff of facing the front scores by oppositeness (weighted) plus distance;
# any other edge scores by discounted distance alone.
REAR_OPPOSITE_CUTOFF_DEG = 60.0
REAR_OPPOSITE_WEIGHT = 3.0
REAR_DISTANCE_SCALE_M = 50.0
REAR_OFF_AXIS_DISCOUNT = 0.3


class SegmentCategory(str, Enum):
    FRONT = "front"
    LATERAL = "lateral"
    REAR = "rear"


@dataclass(frozen=True)
class FacadeSegment:
    """The boundary edge the user designated as the front of the parcel.

    ``index`` is the edge index in the parcel's outer ring when known. It is
    only used when no ring edge matches the segment's midpoint.
    """

    start: Position
    end: Position
    index: int | None = None
    distance_m: float | None = None

    def to_dict(self) -> dict:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "index": self.index,
            "distance_m": round(self.distance_m, 3) if self.distance_m is not None else None,
        }


@dataclass
class SegmentClassification:
    start: Position
    end: Position
    index: int
    category: SegmentCategory
    length_m: float
    bearing: float  # degrees, 0 = north, clockwise
    midpoint: Position

    def to_dict(self) -> dict:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "index": self.index,
            "category": self.category.value,
            "length_m": round(self.length_m, 3),
            "bearing": round(self.bearing, 2),
            "midpoint": list(self.midpoint),
        }


def classify_segments(
    parcel: BaseGeometry,
    facade: FacadeSegment | None = None,
    frame: LocalFrame | None = None,
    match_tolerance_m: float | None = None,
) -> list[SegmentClassification]:
    """Label every outer-ring edge of ``parcel``.

    Without a facade (or with fewer than three edges) everything is lateral.
    The front edge is the ring edge whose midpoint lies nearest the facade's
    midpoint within ``match_tolerance_m``; failing that, ``facade.index``.
    """
    ring = outer_ring(parcel)
    if len(ring) < 4:
        return []

    frame = frame or project(parcel)
    tolerance = settings.facade_match_tolerance_m if match_tolerance_m is None else match_tolerance_m
    local = frame.to_local_ring(ring)

    segments: list[SegmentClassification] = []
    local_mids: list[tuple[float, float]] = []
    for i in range(len(ring) - 1):
        a, b = local[i], local[i + 1]
        mid = midpoint(a, b)
        local_mids.append(mid)
        segments.append(SegmentClassification(
            start=ring[i],
            end=ring[i + 1],
            index=i,
            category=SegmentCategory.LATERAL,
            length_m=distance(a, b),
            bearing=bearing(a, b),
            midpoint=frame.from_local(mid),
        ))

    if facade is None or len(segments) < 3:
        return segments

    front = _match_facade(facade, local_mids, frame, tolerance)
    if front is None:
        return segments
    segments[front].category = SegmentCategory.FRONT

    rear = _pick_rear(segments, local_mids, front)
    if rear is not None:
        segments[rear].category = SegmentCategory.REAR
    return segments


def find_closest_edge(
    parcel: BaseGeometry,
    click: Sequence[float],
    max_distance_m: float | None = None,
) -> FacadeSegment | None:
    """Outer-ring edge nearest to a clicked ``(lng, lat)`` point.

    Returns ``None`` if the parcel has no edges or the nearest edge is more
    than ``max_distance_m`` meters away.
    """
    ring = outer_ring(parcel)
    if len(ring) < 2:
        return None

    limit = settings.facade_click_tolerance_m if max_distance_m is None else max_distance_m
    frame = project(parcel)
    p = frame.to_local(click)
    local = frame.to_local_ring(ring)

    best_index = -1
    best_dist = float("inf")
    for i in range(len(local) - 1):
        d = distance(p, nearest_point_on_segment(p, local[i], local[i + 1]))
        if d < best_dist:
            best_dist = d
            best_index = i

    if best_index < 0 or best_dist > limit:
        return None
    return FacadeSegment(
        start=ring[best_index],
        end=ring[best_index + 1],
        index=best_index,
        distance_m=best_dist,
    )


def _match_facade(
    facade: FacadeSegment,
    local_mids: list[tuple[float, float]],
    frame: LocalFrame,
    tolerance: float,
) -> int | None:
    target = midpoint(frame.to_local(facade.start), frame.to_local(facade.end))
    best: int | None = None
    best_dist = float("inf")
    for i, mid in enumerate(local_mids):
        d = distance(mid, target)
        if d < best_dist and d < tolerance:
            best, best_dist = i, d

    if best is None and facade.index is not None and 0 <= facade.index < len(local_mids):
        best = facade.index
    return best


def _pick_rear(
    segments: list[SegmentClassification],
    local_mids: list[tuple[float, float]],
    front: int,
) -> int | None:
    front_bearing = segments[front].bearing
    front_mid = local_mids[front]

    best: int | None = None
    best_score = float("-inf")
    for i, seg in enumerate(segments):
        if i == front:
            continue
        off_axis = abs(180.0 - bearing_difference(seg.bearing, front_bearing))
        distance_score = distance(local_mids[i], front_mid) / REAR_DISTANCE_SCALE_M
        if off_axis < REAR_OPPOSITE_CUTOFF_DEG:
            opposite_score = (REAR_OPPOSITE_CUTOFF_DEG - off_axis) / REAR_OPPOSITE_CUTOFF_DEG
            score = opposite_score * REAR_OPPOSITE_WEIGHT + distance_score
        else:
            score = distance_score * REAR_OFF_AXIS_DISCOUNT
        if score > best_score:
            best, best_score = i, score
    return best
