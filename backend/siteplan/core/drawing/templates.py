"""Parametric footprint templates sized and oriented to fit an envelope.

Each template is generated around the origin with its length along the x
axis, then rotated to the envelope's longest edge and moved to its centre.
The base dimension ``d`` is chosen from a target share of the envelope area
and every generator produces a footprint of area ``d**2``, so the share is
what the footprint actually covers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from shapely import affinity
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from siteplan.core.drawing.objects import ObjectKind, is_within_envelope
from siteplan.core.drawing.transforms import scale
from siteplan.core.geometry.boolean import largest_polygon
from siteplan.core.geometry.primitives import angle, distance
from siteplan.core.geometry.projection import project

logger = logging.getLogger(__name__)

TARGET_AREA_RATIO = {ObjectKind.BUILDING: 0.12, ObjectKind.PARKING: 0.06}
MAX_SHARE_OF_MIN_SIDE = 0.35
MIN_DIMENSION_M = 5.0
MAX_DIMENSION_M = 50.0
FIT_ATTEMPTS = 5
SHRINK_FACTOR = 0.85


class TemplateKind(str, Enum):
    RECTANGLE = "rectangle"
    SQUARE = "square"
    L_SHAPE = "l-shape"
    U_SHAPE = "u-shape"
    STRIP = "strip"


BUILDING_TEMPLATES = (TemplateKind.RECTANGLE, TemplateKind.SQUARE, TemplateKind.L_SHAPE, TemplateKind.U_SHAPE)
PARKING_TEMPLATES = (TemplateKind.RECTANGLE, TemplateKind.STRIP)


# ── Generators (local meters, centred on the origin) ───────────────────

def rectangle(width: float, length: float) -> Polygon:
    hw, hl = width / 2, length / 2
    return Polygon([(-hl, -hw), (hl, -hw), (hl, hw), (-hl, hw)])


def l_shape(size: float, arm_ratio: float = 0.4) -> Polygon:
    s, w = size / 2, size * arm_ratio
    return Polygon([
        (-s, -s), (-s + w, -s), (-s + w, s - w), (s, s - w), (s, s), (-s, s),
    ])


def u_shape(size: float, arm_ratio: float = 0.3) -> Polygon:
    s, w = size / 2, size * arm_ratio
    return Polygon([
        (-s, -s), (-s + w, -s), (-s + w, s - w), (s - w, s - w),
        (s - w, -s), (s, -s), (s, s), (-s, s),
    ])


_BUILDING_SHAPES: dict[TemplateKind, Callable[[float], Polygon]] = {
    TemplateKind.RECTANGLE: lambda d: rectangle(0.8 * d, 1.25 * d),
    TemplateKind.SQUARE: lambda d: rectangle(d, d),
    TemplateKind.L_SHAPE: lambda d: l_shape(d / 0.8),
    TemplateKind.U_SHAPE: lambda d: u_shape(d / math.sqrt(0.72)),
}

_PARKING_SHAPES: dict[TemplateKind, Callable[[float], Polygon]] = {
    TemplateKind.RECTANGLE: lambda d: rectangle(0.625 * d, 1.6 * d),
    TemplateKind.STRIP: lambda d: rectangle(0.4 * d, 2.5 * d),
}


def supported_templates(kind: ObjectKind) -> tuple[TemplateKind, ...]:
    return BUILDING_TEMPLATES if ObjectKind(kind) is ObjectKind.BUILDING else PARKING_TEMPLATES


def base_dimension(envelope_area_m2: float, min_side_m: float, kind: ObjectKind) -> float:
    """Side of a square with the target share of the envelope area.

    Capped at 35% of the envelope's shorter bounding-box side so narrow
    envelopes still get a footprint that fits, then clamped to [5, 50] m.
    """
    target = math.sqrt(max(envelope_area_m2, 0.0) * TARGET_AREA_RATIO[ObjectKind(kind)])
    capped = min(target, min_side_m * MAX_SHARE_OF_MIN_SIDE)
    return max(min(capped, MAX_DIMENSION_M), MIN_DIMENSION_M)


def template_shape(
    template: TemplateKind,
    kind: ObjectKind,
    envelope: BaseGeometry,
) -> Polygon | None:
    """Footprint for ``template`` centred in ``envelope``; ``None`` if unsupported."""
    kind = ObjectKind(kind)
    shapes = _BUILDING_SHAPES if kind is ObjectKind.BUILDING else _PARKING_SHAPES
    generator = shapes.get(TemplateKind(template))
    body = largest_polygon(envelope)
    if generator is None or body is None:
        return None

    frame = project(envelope)
    local = frame.to_local_geometry(envelope)
    min_x, min_y, max_x, max_y = local.bounds
    d = base_dimension(local.area, min(max_x - min_x, max_y - min_y), kind)

    center = local.centroid
    if not local.contains(center):
        center = local.representative_point()

    shape = generator(d)
    shape = affinity.rotate(shape, _longest_edge_angle(frame.to_local_geometry(body)), origin=(0, 0))
    shape = affinity.translate(shape, center.x, center.y)
    return frame.from_local_geometry(shape)


@dataclass
class TemplateFit:
    polygon: Polygon | None
    attempts: int
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.polygon is not None


def fit_template(
    template: TemplateKind,
    kind: ObjectKind,
    envelope: BaseGeometry,
    tolerance_m: float = 0.0,
) -> TemplateFit:
    """Generate a template and shrink it by 15% per retry until it fits.

    After five retries the fit is abandoned with an advisory message; this
    is not an error, the user can still draw by hand.
    """
    shape = template_shape(template, kind, envelope)
    if shape is None:
        return TemplateFit(None, 0, f"Template '{TemplateKind(template).value}' is not available for {ObjectKind(kind).value}.")

    attempts = 0
    while not is_within_envelope(shape, envelope, tolerance_m) and attempts < FIT_ATTEMPTS:
        attempts += 1
        shape = scale(shape, SHRINK_FACTOR)

    if not is_within_envelope(shape, envelope, tolerance_m):
        logger.info("template %s did not fit after %d attempts", template, attempts)
        return TemplateFit(
            None,
            attempts,
            "The generated shape does not fit in the envelope. Try drawing it manually.",
        )
    return TemplateFit(shape, attempts)


def _longest_edge_angle(polygon: Polygon) -> float:
    coords = list(polygon.exterior.coords)
    best_len, best_angle = 0.0, 0.0
    for a, b in zip(coords, coords[1:]):
        d = distance(a, b)
        if d > best_len:
            best_len, best_angle = d, angle(a, b)
    return best_angle
