"""Drawn building and parking footprints."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum

from shapely.geometry import MultiPolygon, Polygon, mapping
from shapely.geometry.base import BaseGeometry

from siteplan.core.geometry.boolean import polygonal_part
from siteplan.core.geometry.offset import offset_polygon_outward
from siteplan.core.geometry.projection import area_m2, project
from siteplan.utils.units import format_area


class ObjectKind(str, Enum):
    BUILDING = "building"
    PARKING = "parking"


@dataclass(frozen=True)
class DrawnObject:
    """A footprint placed by the user.

    Instances are immutable. Every geometry change goes through
    :meth:`with_geometry`, which returns a new object with ``version`` bumped;
    consumers compare ``version`` to detect changes.
    """

    id: str
    kind: ObjectKind
    polygon: Polygon | MultiPolygon
    area_m2: float
    created_at: float
    version: int = 0

    def with_geometry(self, polygon: Polygon | MultiPolygon) -> DrawnObject:
        return replace(self, polygon=polygon, area_m2=area_m2(polygon), version=self.version + 1)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "polygon": mapping(self.polygon),
            "area_m2": round(self.area_m2, 2),
            "area_label": format_area(self.area_m2),
            "created_at": self.created_at,
            "version": self.version,
        }


def new_object(polygon: Polygon | MultiPolygon, kind: ObjectKind) -> DrawnObject:
    return DrawnObject(
        id=uuid.uuid4().hex,
        kind=ObjectKind(kind),
        polygon=polygon,
        area_m2=area_m2(polygon),
        created_at=time.time(),
    )


def is_within_envelope(
    polygon: BaseGeometry,
    envelope: BaseGeometry | None,
    tolerance_m: float = 0.0,
) -> bool:
    """Whether ``polygon`` lies inside ``envelope``, within ``tolerance_m`` meters.

    No envelope means no constraint. The test runs in the envelope's local
    frame so the tolerance is a true distance.
    """
    if envelope is None:
        return True
    if polygon is None or polygon.is_empty:
        return False
    frame = project(envelope)
    local_envelope = polygonal_part(frame.to_local_geometry(envelope))
    if local_envelope is None:
        return False
    if tolerance_m > 0:
        local_envelope = offset_polygon_outward(local_envelope, tolerance_m)
    return local_envelope.covers(frame.to_local_geometry(polygon))
