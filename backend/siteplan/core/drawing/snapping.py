"""Grid, envelope-edge and alignment snapping.

Snapping works in local meters. Grid and envelope-edge snaps move the
pointer; alignment guides are advisory lines for the renderer and never
change geometry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, field_validator
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from siteplan.config import settings
from siteplan.core.drawing.objects import DrawnObject
from siteplan.core.geometry.primitives import Point, distance, nearest_point_on_segment
from siteplan.core.geometry.projection import LocalFrame, Position

GUIDE_HALF_LENGTH_M = 50.0


class SnapSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    grid_size: float = 1.0
    angle_snap: bool = True
    envelope_snap: bool = True
    object_snap: bool = True
    tolerance: float = 10.0

    @field_validator("grid_size", "tolerance")
    @classmethod
    def must_not_be_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Snap distances cannot be negative")
        return v

    @classmethod
    def from_settings(cls) -> SnapSettings:
        return cls(
            enabled=settings.snap_enabled,
            grid_size=settings.grid_size_m,
            angle_snap=settings.angle_snap,
            envelope_snap=settings.envelope_snap,
            object_snap=settings.object_snap,
            tolerance=settings.snap_tolerance_m,
        )


class SnapGuideKind(str, Enum):
    ENVELOPE = "envelope"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class SnapGuide:
    kind: SnapGuideKind
    start: Position
    end: Position

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "start": list(self.start), "end": list(self.end)}


def snap_to_grid(point: Sequence[float], grid_size: float) -> Point:
    if grid_size <= 0:
        return (point[0], point[1])
    return (
        round(point[0] / grid_size) * grid_size,
        round(point[1] / grid_size) * grid_size,
    )


def snap_to_envelope_edge(
    point: Sequence[float],
    envelope: BaseGeometry,
    tolerance_m: float,
    frame: LocalFrame,
) -> tuple[Point, SnapGuide | None]:
    """Project a local point onto the nearest envelope edge within ``tolerance_m``.

    Returns the point unchanged and no guide when no edge is close enough.
    """
    best: Point = (point[0], point[1])
    best_dist = float("inf")
    guide: SnapGuide | None = None
    for ring in _exterior_rings(envelope):
        local = frame.to_local_ring(ring)
        for i in range(len(local) - 1):
            candidate = nearest_point_on_segment(point, local[i], local[i + 1])
            d = distance(point, candidate)
            if d < best_dist and d < tolerance_m:
                best, best_dist = candidate, d
                guide = SnapGuide(SnapGuideKind.ENVELOPE, tuple(ring[i][:2]), tuple(ring[i + 1][:2]))
    return best, guide


def compute_alignment_guides(
    point: Sequence[float],
    others: Iterable[DrawnObject],
    grid_size: float,
    frame: LocalFrame,
) -> list[SnapGuide]:
    """Horizontal/vertical guides through other objects' centroids near ``point``.

    ``point`` is local; a guide appears when the point is within two grid
    cells of a centroid along either axis.
    """
    guides: list[SnapGuide] = []
    threshold = grid_size * 2
    x, y = point[0], point[1]
    for obj in others:
        c = obj.polygon.centroid
        ox, oy = frame.to_local((c.x, c.y))
        if abs(y - oy) < threshold:
            guides.append(SnapGuide(
                SnapGuideKind.HORIZONTAL,
                frame.from_local((x - GUIDE_HALF_LENGTH_M, oy)),
                frame.from_local((x + GUIDE_HALF_LENGTH_M, oy)),
            ))
        if abs(x - ox) < threshold:
            guides.append(SnapGuide(
                SnapGuideKind.VERTICAL,
                frame.from_local((ox, y - GUIDE_HALF_LENGTH_M)),
                frame.from_local((ox, y + GUIDE_HALF_LENGTH_M)),
            ))
    return guides


def _exterior_rings(geom: BaseGeometry) -> list[list[tuple[float, ...]]]:
    if geom is None or geom.is_empty:
        return []
    polys = geom.geoms if isinstance(geom, MultiPolygon) else [geom]
    return [list(p.exterior.coords) for p in polys if hasattr(p, "exterior")]
