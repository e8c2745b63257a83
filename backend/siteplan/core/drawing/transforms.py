"""Move / rotate / scale / stretch gestures on drawn footprints.

A gesture is a small state machine: ``Idle`` until a pointer-down starts an
action, one action record while the pointer drags, back to ``Idle`` on
release. Each action keeps the geometry it started from, and every pointer
move recomputes the result from that original rather than accumulating
deltas, so a drag can never drift.

All math happens in a local frame fixed when the gesture starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from shapely import affinity
from shapely.geometry.base import BaseGeometry

from siteplan.config import settings
from siteplan.core.drawing.objects import ObjectKind
from siteplan.core.drawing.snapping import (
    SnapGuide,
    SnapSettings,
    snap_to_envelope_edge,
    snap_to_grid,
)
from siteplan.core.geometry.boolean import Polygonal
from siteplan.core.geometry.primitives import Point, angle, distance
from siteplan.core.geometry.projection import LocalFrame, Position, project

MIN_SCALE = 0.2
MAX_SCALE = 5.0
MIN_STRETCH_SIZE_M = 0.01
ROTATION_HANDLE_OFFSET_M = 12.0


class TransformKind(str, Enum):
    MOVE = "move"
    ROTATE = "rotate"
    SCALE = "scale"
    STRETCH = "stretch"


class HandlePosition(str, Enum):
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"

    @property
    def is_corner(self) -> bool:
        return len(self.value) == 2


# ── Gesture states ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class MoveAction:
    object_id: str
    object_kind: ObjectKind
    original: Polygonal
    frame: LocalFrame
    pivot: Point  # local
    start: Point  # local


@dataclass(frozen=True)
class RotateAction:
    object_id: str
    object_kind: ObjectKind
    original: Polygonal
    frame: LocalFrame
    pivot: Point
    start: Point
    start_angle: float  # degrees, counter-clockwise from east


@dataclass(frozen=True)
class ScaleAction:
    object_id: str
    object_kind: ObjectKind
    original: Polygonal
    frame: LocalFrame
    pivot: Point
    start: Point
    start_distance: float


@dataclass(frozen=True)
class StretchAction:
    object_id: str
    object_kind: ObjectKind
    original: Polygonal
    frame: LocalFrame
    pivot: Point
    start: Point
    handle: HandlePosition
    bbox: tuple[float, float, float, float]  # local, of the original


TransformAction = Union[MoveAction, RotateAction, ScaleAction, StretchAction]
TransformState = Union[Idle, TransformAction]


def kind_of(state: TransformState) -> TransformKind | None:
    if isinstance(state, MoveAction):
        return TransformKind.MOVE
    if isinstance(state, RotateAction):
        return TransformKind.ROTATE
    if isinstance(state, ScaleAction):
        return TransformKind.SCALE
    if isinstance(state, StretchAction):
        return TransformKind.STRETCH
    return None


def begin(
    kind: TransformKind,
    object_id: str,
    object_kind: ObjectKind,
    original: Polygonal,
    start: Sequence[float],
    handle: HandlePosition | None = None,
) -> TransformAction | None:
    """Snapshot everything a gesture needs; ``None`` for a stretch without a handle."""
    frame = project(original)
    c = original.centroid
    pivot = frame.to_local((c.x, c.y))
    start_local = frame.to_local(start)
    common = dict(
        object_id=object_id,
        object_kind=object_kind,
        original=original,
        frame=frame,
        pivot=pivot,
        start=start_local,
    )

    if kind is TransformKind.MOVE:
        return MoveAction(**common)
    if kind is TransformKind.ROTATE:
        return RotateAction(**common, start_angle=angle(pivot, start_local))
    if kind is TransformKind.SCALE:
        return ScaleAction(**common, start_distance=distance(pivot, start_local))
    if kind is TransformKind.STRETCH and handle is not None:
        local = frame.to_local_geometry(original)
        return StretchAction(**common, handle=HandlePosition(handle), bbox=local.bounds)
    return None


@dataclass
class TransformOutcome:
    polygon: Polygonal | None
    rotation_angle: float | None = None
    guide: SnapGuide | None = None


def apply(
    action: TransformAction,
    pointer: Sequence[float],
    snap: SnapSettings,
    envelope: BaseGeometry | None = None,
    free: bool = False,
) -> TransformOutcome:
    """Geometry for the current pointer position; ``polygon`` is ``None`` if degenerate."""
    frame = action.frame
    current = frame.to_local(pointer)

    if isinstance(action, MoveAction):
        dx, dy = current[0] - action.start[0], current[1] - action.start[1]
        guide = None
        if snap.enabled:
            if snap.grid_size > 0:
                dx, dy = snap_to_grid((dx, dy), snap.grid_size)
            if snap.envelope_snap and envelope is not None:
                target = (action.start[0] + dx, action.start[1] + dy)
                snapped, guide = snap_to_envelope_edge(target, envelope, snap.grid_size * 3, frame)
                dx, dy = snapped[0] - action.start[0], snapped[1] - action.start[1]
        return TransformOutcome(translate(action.original, dx, dy, frame), guide=guide)

    if isinstance(action, RotateAction):
        delta = angle(action.pivot, current) - action.start_angle
        if snap.enabled and snap.angle_snap and not free:
            delta = snap_angle(delta)
        pivot = frame.from_local(action.pivot)
        return TransformOutcome(rotate(action.original, delta, pivot, frame), rotation_angle=delta)

    if isinstance(action, ScaleAction):
        if action.start_distance <= 0:
            return TransformOutcome(None)
        factor = distance(action.pivot, current) / action.start_distance
        factor = min(max(factor, MIN_SCALE), MAX_SCALE)
        pivot = frame.from_local(action.pivot)
        return TransformOutcome(scale(action.original, factor, pivot, frame))

    if snap.enabled and snap.grid_size > 0:
        current = snap_to_grid(current, snap.grid_size)
    return TransformOutcome(stretch(action.original, action.handle, action.bbox, current, frame))


# ── Affine operations ───────────────────────────────────────────────────

def translate(polygon: Polygonal, dx: float, dy: float, frame: LocalFrame | None = None) -> Polygonal:
    """Shift by ``(dx, dy)`` meters east/north."""
    frame = frame or project(polygon)
    local = frame.to_local_geometry(polygon)
    return frame.from_local_geometry(affinity.translate(local, dx, dy))


def rotate(
    polygon: Polygonal,
    angle_deg: float,
    pivot: Sequence[float] | None = None,
    frame: LocalFrame | None = None,
) -> Polygonal:
    """Rotate counter-clockwise by ``angle_deg`` about a geographic pivot (default: centroid)."""
    frame = frame or project(polygon)
    local = frame.to_local_geometry(polygon)
    origin = frame.to_local(pivot) if pivot is not None else "centroid"
    return frame.from_local_geometry(affinity.rotate(local, angle_deg, origin=origin))


def scale(
    polygon: Polygonal,
    factor: float,
    pivot: Sequence[float] | None = None,
    frame: LocalFrame | None = None,
) -> Polygonal:
    frame = frame or project(polygon)
    local = frame.to_local_geometry(polygon)
    origin = frame.to_local(pivot) if pivot is not None else "centroid"
    return frame.from_local_geometry(affinity.scale(local, factor, factor, origin=origin))


def stretch(
    polygon: Polygonal,
    handle: HandlePosition,
    bbox: tuple[float, float, float, float],
    target: Sequence[float],
    frame: LocalFrame,
) -> Polygonal | None:
    """Drag one handle of the local bounding box to ``target`` (local).

    Vertices keep their relative position inside the box. Returns ``None``
    when the new box would be thinner than 1 cm on either axis.
    """
    min_x, min_y, max_x, max_y = bbox
    width, height = max_x - min_x, max_y - min_y
    if width <= 0 or height <= 0:
        return None

    new_min_x, new_min_y, new_max_x, new_max_y = bbox
    tx, ty = target[0], target[1]
    if handle in (HandlePosition.NW, HandlePosition.W, HandlePosition.SW):
        new_min_x = tx
    if handle in (HandlePosition.NE, HandlePosition.E, HandlePosition.SE):
        new_max_x = tx
    if handle in (HandlePosition.NW, HandlePosition.N, HandlePosition.NE):
        new_max_y = ty
    if handle in (HandlePosition.SW, HandlePosition.S, HandlePosition.SE):
        new_min_y = ty

    new_width, new_height = new_max_x - new_min_x, new_max_y - new_min_y
    if new_width < MIN_STRETCH_SIZE_M or new_height < MIN_STRETCH_SIZE_M:
        return None

    sx, sy = new_width / width, new_height / height
    matrix = [sx, 0.0, 0.0, sy, new_min_x - min_x * sx, new_min_y - min_y * sy]
    local = frame.to_local_geometry(polygon)
    return frame.from_local_geometry(affinity.affine_transform(local, matrix))


def snap_angle(angle_deg: float, step: float | None = None) -> float:
    step = settings.rotation_snap_deg if step is None else step
    if step <= 0:
        return angle_deg
    return round(angle_deg / step) * step


# ── Handles ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Handles:
    """Eight stretch handles on the bounding box plus the rotation handle."""

    positions: dict[HandlePosition, Position]
    rotate: Position
    rotation_line_start: Position
    centroid: Position

    def to_dict(self) -> dict:
        return {
            **{h.value: list(p) for h, p in self.positions.items()},
            "rotate": list(self.rotate),
            "rotation_line_start": list(self.rotation_line_start),
            "centroid": list(self.centroid),
        }


def compute_handles(polygon: BaseGeometry) -> Handles | None:
    if polygon is None or polygon.is_empty:
        return None
    min_x, min_y, max_x, max_y = polygon.bounds
    cx, cy = (min_x + max_x) / 2, (min_y + max_y) / 2

    frame = project(polygon)
    top_x, top_y = frame.to_local((cx, max_y))
    rotate_handle = frame.from_local((top_x, top_y + ROTATION_HANDLE_OFFSET_M))

    return Handles(
        positions={
            HandlePosition.NW: (min_x, max_y),
            HandlePosition.N: (cx, max_y),
            HandlePosition.NE: (max_x, max_y),
            HandlePosition.E: (max_x, cy),
            HandlePosition.SE: (max_x, min_y),
            HandlePosition.S: (cx, min_y),
            HandlePosition.SW: (min_x, min_y),
            HandlePosition.W: (min_x, cy),
        },
        rotate=rotate_handle,
        rotation_line_start=(cx, max_y),
        centroid=(cx, cy),
    )
