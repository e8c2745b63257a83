"""Interactive editing of building and parking footprints.

``ShapeEngine`` owns the drawn objects (an arena keyed by id), the current
gesture state, snap settings and the undo history. All mutations go through
it and every accepted geometry change bumps the object's ``version``.

Geometry that would leave the buildable envelope is refused: the object
keeps its last valid geometry and, during a drag, the gesture stays active
so the user can drag back inside.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from shapely.geometry.base import BaseGeometry

from siteplan.config import settings
from siteplan.core.drawing import transforms
from siteplan.core.drawing.dimensions import distance_to_envelope, edge_dimensions
from siteplan.core.drawing.history import History, HistoryEntry
from siteplan.core.drawing.objects import DrawnObject, ObjectKind, is_within_envelope, new_object
from siteplan.core.drawing.snapping import SnapGuide, SnapSettings, compute_alignment_guides
from siteplan.core.drawing.templates import TemplateFit, TemplateKind, fit_template
from siteplan.core.drawing.transforms import (
    HandlePosition,
    Handles,
    Idle,
    TransformKind,
    TransformState,
    compute_handles,
)
from siteplan.core.errors import UnknownObjectError
from siteplan.core.geometry.boolean import Polygonal

logger = logging.getLogger(__name__)

ROTATE_HANDLE = "rotate"
OUTSIDE_ENVELOPE = "The drawn object must stay inside the buildable envelope."
NO_ENVELOPE = "No envelope available to place a template."

Listener = Callable[["ShapeEngine"], None]


class ShapeEngine:
    def __init__(
        self,
        envelope: BaseGeometry | None = None,
        snap_settings: SnapSettings | None = None,
        max_history: int | None = None,
        containment_tolerance_m: float | None = None,
    ) -> None:
        self._envelope = envelope
        self._snap = snap_settings or SnapSettings.from_settings()
        self._tolerance = (
            settings.containment_tolerance_m
            if containment_tolerance_m is None else containment_tolerance_m
        )
        self._objects: dict[str, DrawnObject] = {}
        self._active_id: str | None = None
        self._state: TransformState = Idle()
        self._history = History(max_history)
        self._restoring = False
        self._listeners: list[Listener] = []

        self.snap_guides: list[SnapGuide] = []
        self.rotation_angle: float | None = None
        self.rotation_free = False
        self.last_error: str | None = None

    # ── Read access ─────────────────────────────────────────────────────

    @property
    def envelope(self) -> BaseGeometry | None:
        return self._envelope

    @property
    def snap_settings(self) -> SnapSettings:
        return self._snap

    @property
    def objects(self) -> list[DrawnObject]:
        return list(self._objects.values())

    @property
    def buildings(self) -> list[DrawnObject]:
        return [o for o in self._objects.values() if o.kind is ObjectKind.BUILDING]

    @property
    def parkings(self) -> list[DrawnObject]:
        return [o for o in self._objects.values() if o.kind is ObjectKind.PARKING]

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def transform_state(self) -> TransformState:
        return self._state

    @property
    def is_transforming(self) -> bool:
        return not isinstance(self._state, Idle)

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def history_index(self) -> int:
        return self._history.index

    @property
    def history_length(self) -> int:
        return len(self._history)

    def get_object(self, object_id: str) -> DrawnObject | None:
        return self._objects.get(object_id)

    def require_object(self, object_id: str) -> DrawnObject:
        obj = self._objects.get(object_id)
        if obj is None:
            raise UnknownObjectError(object_id)
        return obj

    def get_active_object(self) -> DrawnObject | None:
        if self._active_id is None:
            return None
        return self._objects.get(self._active_id)

    def is_within_envelope(self, polygon: BaseGeometry) -> bool:
        return is_within_envelope(polygon, self._envelope, self._tolerance)

    def handles(self) -> Handles | None:
        active = self.get_active_object()
        return compute_handles(active.polygon) if active else None

    # ── Listeners ───────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change callback; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ── Configuration ───────────────────────────────────────────────────

    def set_envelope(self, envelope: BaseGeometry | None) -> None:
        self._envelope = envelope
        self._notify()

    def set_snap_settings(self, **changes: Any) -> SnapSettings:
        self._snap = SnapSettings.model_validate({**self._snap.model_dump(), **changes})
        self._notify()
        return self._snap

    # ── Object lifecycle ────────────────────────────────────────────────

    def add_object(self, polygon: Polygonal, kind: ObjectKind = ObjectKind.BUILDING) -> DrawnObject | None:
        """Add a hand-drawn footprint; refused with an advisory if it leaves the envelope."""
        if not self.is_within_envelope(polygon):
            logger.debug("rejected new %s outside envelope", kind)
            self.last_error = OUTSIDE_ENVELOPE
            self._notify()
            return None

        obj = new_object(polygon, kind)
        self._push_history(f"create {obj.kind.value}")
        self._objects[obj.id] = obj
        self._active_id = obj.id
        self.last_error = None
        self._notify()
        return obj

    def create_from_template(
        self,
        template: TemplateKind,
        kind: ObjectKind = ObjectKind.BUILDING,
    ) -> TemplateFit:
        if self._envelope is None:
            self.last_error = NO_ENVELOPE
            self._notify()
            return TemplateFit(None, 0, NO_ENVELOPE)

        fit = fit_template(template, kind, self._envelope, self._tolerance)
        if not fit.ok:
            self.last_error = fit.message
            self._notify()
            return fit

        obj = new_object(fit.polygon, kind)
        self._push_history(f"template {TemplateKind(template).value}")
        self._objects[obj.id] = obj
        self._active_id = obj.id
        self.last_error = None
        self._notify()
        return fit

    def delete_object(self, object_id: str) -> bool:
        if object_id not in self._objects:
            return False
        self._push_history("delete")
        del self._objects[object_id]
        if self._active_id == object_id:
            self._active_id = None
        self._notify()
        return True

    def clear_all(self) -> None:
        self._push_history("clear all")
        self._objects.clear()
        self._active_id = None
        self._notify()

    def select(self, object_id: str | None) -> bool:
        if object_id is not None and object_id not in self._objects:
            return False
        self._active_id = object_id
        self._notify()
        return True

    def update_object_geometry(self, object_id: str, polygon: Polygonal) -> DrawnObject | None:
        """Replace an object's geometry, bumping its version. No containment check."""
        obj = self._objects.get(object_id)
        if obj is None:
            return None
        updated = obj.with_geometry(polygon)
        self._objects[object_id] = updated
        self._notify()
        return updated

    # ── Gestures ────────────────────────────────────────────────────────

    def start_transform(
        self,
        kind: TransformKind,
        object_id: str,
        start: Sequence[float],
        original: Polygonal | None = None,
        handle: HandlePosition | None = None,
    ) -> bool:
        """Begin a gesture on ``object_id``. One history entry covers the whole drag.

        No-op (``False``) while another gesture is active, for an unknown
        object, or for a stretch without a handle.
        """
        if self.is_transforming:
            return False
        obj = self._objects.get(object_id)
        if obj is None:
            return False

        action = transforms.begin(
            TransformKind(kind), obj.id, obj.kind, original or obj.polygon, start, handle,
        )
        if action is None:
            return False

        self._push_history(f"start {TransformKind(kind).value}")
        self._state = action
        return True

    def apply_transform(self, pointer: Sequence[float], modifier: bool = False) -> bool:
        """Recompute the active gesture for ``pointer``; ``True`` if the geometry was accepted."""
        action = self._state
        if isinstance(action, Idle):
            return False

        outcome = transforms.apply(action, pointer, self._snap, self._envelope, free=modifier)
        if outcome.rotation_angle is not None:
            self.rotation_angle = round(outcome.rotation_angle)
            self.rotation_free = modifier

        obj = self._objects.get(action.object_id)
        if obj is None:
            return False
        if outcome.polygon is None or not self.is_within_envelope(outcome.polygon):
            logger.debug("rejected %s of %s", transforms.kind_of(action), action.object_id)
            return False

        self._objects[obj.id] = obj.with_geometry(outcome.polygon)
        self.last_error = None
        self.snap_guides = self._guides_for(action, outcome)
        self._notify()
        return True

    def end_transform(self) -> None:
        self._state = Idle()
        self.snap_guides = []
        self.rotation_angle = None
        self.rotation_free = False
        self._notify()

    def _guides_for(
        self,
        action: transforms.TransformAction,
        outcome: transforms.TransformOutcome,
    ) -> list[SnapGuide]:
        guides: list[SnapGuide] = [outcome.guide] if outcome.guide else []
        if not (self._snap.enabled and self._snap.object_snap and self._envelope is not None):
            return guides
        frame = action.frame
        c = outcome.polygon.centroid
        others = [o for o in self._objects.values() if o.id != action.object_id]
        guides.extend(compute_alignment_guides(
            frame.to_local((c.x, c.y)), others, self._snap.grid_size, frame,
        ))
        return guides

    # ── Adapter entry points ────────────────────────────────────────────

    def pointer_down(
        self,
        point: Sequence[float],
        object_id: str | None = None,
        handle: str | None = None,
        modifier: bool = False,
    ) -> bool:
        """Dispatch a pointer press the host has already hit-tested.

        Handles act on the active object: the rotation handle rotates, a
        box handle stretches (or scales, for a corner with the modifier
        held). Pressing the active object's body moves it; pressing another
        object selects it.
        """
        if handle is not None:
            active = self.get_active_object()
            if active is None:
                return False
            if handle == ROTATE_HANDLE:
                return self.start_transform(TransformKind.ROTATE, active.id, point)
            position = HandlePosition(handle)
            if modifier and position.is_corner:
                return self.start_transform(TransformKind.SCALE, active.id, point)
            return self.start_transform(TransformKind.STRETCH, active.id, point, handle=position)

        if object_id is None:
            return False
        if object_id == self._active_id:
            return self.start_transform(TransformKind.MOVE, object_id, point)
        return self.select(object_id)

    def pointer_move(self, point: Sequence[float], modifier: bool = False) -> bool:
        return self.apply_transform(point, modifier)

    def pointer_up(self) -> None:
        if self.is_transforming:
            self.end_transform()

    def key_down(self, key: str, ctrl: bool = False, shift: bool = False) -> bool:
        """Keyboard shortcuts; returns whether the key was handled."""
        k = key.lower()
        if ctrl and k == "z" and not shift:
            return self.undo()
        if ctrl and (k == "y" or (k == "z" and shift)):
            return self.redo()
        if key in ("Delete", "Backspace") and self._active_id is not None:
            return self.delete_object(self._active_id)
        if key == "Escape":
            # selection only; an in-progress drag keeps going
            self.select(None)
            return True
        return False

    # ── History ─────────────────────────────────────────────────────────

    def undo(self) -> bool:
        entry = self._history.undo(self._snapshot("current"))
        if entry is None:
            return False
        self._restore(entry)
        return True

    def redo(self) -> bool:
        entry = self._history.redo()
        if entry is None:
            return False
        self._restore(entry)
        return True

    def _snapshot(self, label: str) -> HistoryEntry:
        return HistoryEntry(
            buildings=tuple(self.buildings),
            parkings=tuple(self.parkings),
            active_id=self._active_id,
            label=label,
        )

    def _push_history(self, label: str) -> None:
        if self._restoring:
            return
        self._history.push(self._snapshot(label))

    def _restore(self, entry: HistoryEntry) -> None:
        self._restoring = True
        try:
            self._objects = {o.id: o for o in (*entry.buildings, *entry.parkings)}
            self._active_id = entry.active_id
            self._notify()
        finally:
            self._restoring = False

    # ── Serialisation ───────────────────────────────────────────────────

    def to_dict(self) -> dict:
        active = self.get_active_object()
        handles = self.handles()
        kind = transforms.kind_of(self._state)
        return {
            "buildings": [o.to_dict() for o in self.buildings],
            "parkings": [o.to_dict() for o in self.parkings],
            "active_id": self._active_id,
            "transform": kind.value if kind else None,
            "handles": handles.to_dict() if handles else None,
            "dimensions": [d.to_dict() for d in edge_dimensions(active.polygon)] if active else [],
            "distance_to_envelope": (
                distance_to_envelope(active.polygon, self._envelope).to_dict()
                if active and self._envelope is not None else None
            ),
            "snap_guides": [g.to_dict() for g in self.snap_guides],
            "snap_settings": self._snap.model_dump(),
            "rotation_angle": self.rotation_angle,
            "rotation_free": self.rotation_free,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
            "history_index": self.history_index,
            "history_length": self.history_length,
            "last_error": self.last_error,
        }
