"""Drawing session endpoints: footprints, gestures, snapping and undo/redo."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from shapely.errors import GEOSException
from shapely.geometry import shape

from siteplan.core.drawing.engine import ShapeEngine
from siteplan.core.errors import UnknownObjectError
from siteplan.models.schemas import (
    ActionResponse,
    DrawingEnvelopeRequest,
    KeyRequest,
    ObjectRequest,
    PointerDownRequest,
    PointerMoveRequest,
    SnapUpdate,
    TemplateRequest,
)

router = APIRouter(tags=["drawing"])

# One drawing session per process, like a single open editor.
_engine = ShapeEngine()


def _respond(ok: bool) -> dict:
    return ActionResponse(ok=ok, state=_engine.to_dict()).model_dump()


def _geometry(geojson: dict):
    try:
        return shape(geojson)
    except (ValueError, TypeError, GEOSException) as e:
        raise HTTPException(422, detail=f"Invalid geometry: {e}")


@router.get("/drawing/state")
async def drawing_state():
    return _engine.to_dict()


@router.post("/drawing/envelope")
async def set_envelope(req: DrawingEnvelopeRequest):
    _engine.set_envelope(_geometry(req.geometry) if req.geometry else None)
    return _respond(True)


@router.put("/drawing/snap")
async def update_snap(req: SnapUpdate):
    try:
        _engine.set_snap_settings(**req.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(422, detail=str(e))
    return _respond(True)


@router.post("/drawing/objects")
async def add_object(req: ObjectRequest):
    """Add a hand-drawn footprint. ``ok`` is false if it leaves the envelope."""
    obj = _engine.add_object(_geometry(req.geometry), req.kind)
    return _respond(obj is not None)


@router.post("/drawing/templates")
async def add_template(req: TemplateRequest):
    fit = _engine.create_from_template(req.template, req.kind)
    return _respond(fit.ok)


@router.delete("/drawing/objects/{object_id}")
async def delete_object(object_id: str):
    try:
        _engine.require_object(object_id)
    except UnknownObjectError as e:
        raise HTTPException(404, detail=str(e))
    return _respond(_engine.delete_object(object_id))


@router.post("/drawing/clear")
async def clear_all():
    _engine.clear_all()
    return _respond(True)


@router.post("/drawing/pointer/down")
async def pointer_down(req: PointerDownRequest):
    if req.object_id is not None:
        try:
            _engine.require_object(req.object_id)
        except UnknownObjectError as e:
            raise HTTPException(404, detail=str(e))
    ok = _engine.pointer_down(req.point, req.object_id, req.handle, req.modifier)
    return _respond(ok)


@router.post("/drawing/pointer/move")
async def pointer_move(req: PointerMoveRequest):
    return _respond(_engine.pointer_move(req.point, req.modifier))


@router.post("/drawing/pointer/up")
async def pointer_up():
    _engine.pointer_up()
    return _respond(True)


@router.post("/drawing/keys")
async def key_down(req: KeyRequest):
    return _respond(_engine.key_down(req.key, req.ctrl, req.shift))


@router.post("/drawing/undo")
async def undo():
    return _respond(_engine.undo())


@router.post("/drawing/redo")
async def redo():
    return _respond(_engine.redo())
