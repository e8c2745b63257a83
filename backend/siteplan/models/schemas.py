"""Pydantic schemas for API request/response validation."""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from siteplan.core.drawing.objects import ObjectKind
from siteplan.core.drawing.templates import TemplateKind
from siteplan.core.setback.ruleset import SetbackRuleset

POLYGON_TYPES = {"Polygon", "MultiPolygon"}


def _check_position(v: list[float]) -> list[float]:
    if len(v) != 2:
        raise ValueError("Coordinate must be [lng, lat]")
    if not all(math.isfinite(c) for c in v):
        raise ValueError("Coordinate must be a finite number")
    return v


def _check_polygon_geometry(v: dict[str, Any]) -> dict[str, Any]:
    if v.get("type") not in POLYGON_TYPES:
        raise ValueError("Geometry must be a GeoJSON Polygon or MultiPolygon")
    if not v.get("coordinates"):
        raise ValueError("Geometry has no coordinates")
    return v


class FacadeInput(BaseModel):
    start: list[float]  # [lng, lat]
    end: list[float]
    index: Optional[int] = None

    @field_validator("start", "end")
    @classmethod
    def must_be_position(cls, v: list[float]) -> list[float]:
        return _check_position(v)


class SetbackDistances(BaseModel):
    front_m: float = 0.0
    lateral_m: float = 0.0
    rear_m: float = 0.0


class ParcelRequest(BaseModel):
    rings: list[list[list[float]]]  # one outer ring per parcel part

    @field_validator("rings")
    @classmethod
    def rings_not_empty(cls, v: list[list[list[float]]]) -> list[list[list[float]]]:
        if not v:
            raise ValueError("Parcel needs at least one ring")
        for ring in v:
            for position in ring:
                _check_position(position)
        return v


class EnvelopeRequest(ParcelRequest):
    facade: Optional[FacadeInput] = None
    click: Optional[list[float]] = None
    ruleset: Optional[SetbackRuleset] = None
    ruleset_valid: bool = True
    setbacks: Optional[SetbackDistances] = None
    geojson: bool = False

    @field_validator("click")
    @classmethod
    def click_is_position(cls, v: Optional[list[float]]) -> Optional[list[float]]:
        return _check_position(v) if v is not None else v


class FacadeRequest(ParcelRequest):
    click: list[float]

    @field_validator("click")
    @classmethod
    def click_is_position(cls, v: list[float]) -> list[float]:
        return _check_position(v)


# ── Drawing session ─────────────────────────────────────────────────────

class DrawingEnvelopeRequest(BaseModel):
    geometry: Optional[dict[str, Any]] = None  # GeoJSON; null clears the envelope

    @field_validator("geometry")
    @classmethod
    def must_be_polygonal(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        return _check_polygon_geometry(v) if v is not None else v


class ObjectRequest(BaseModel):
    geometry: dict[str, Any]
    kind: ObjectKind = ObjectKind.BUILDING

    @field_validator("geometry")
    @classmethod
    def must_be_polygonal(cls, v: dict[str, Any]) -> dict[str, Any]:
        return _check_polygon_geometry(v)


class TemplateRequest(BaseModel):
    template: TemplateKind
    kind: ObjectKind = ObjectKind.BUILDING


class SnapUpdate(BaseModel):
    enabled: Optional[bool] = None
    grid_size: Optional[float] = None
    angle_snap: Optional[bool] = None
    envelope_snap: Optional[bool] = None
    object_snap: Optional[bool] = None
    tolerance: Optional[float] = None


class PointerDownRequest(BaseModel):
    point: list[float]
    object_id: Optional[str] = None
    handle: Optional[str] = None  # "nw".."w" or "rotate"
    modifier: bool = False

    @field_validator("point")
    @classmethod
    def must_be_position(cls, v: list[float]) -> list[float]:
        return _check_position(v)

    @field_validator("handle")
    @classmethod
    def known_handle(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in {"nw", "n", "ne", "e", "se", "s", "sw", "w", "rotate"}:
            raise ValueError(f"Unknown handle '{v}'")
        return v


class PointerMoveRequest(BaseModel):
    point: list[float]
    modifier: bool = False

    @field_validator("point")
    @classmethod
    def must_be_position(cls, v: list[float]) -> list[float]:
        return _check_position(v)


class KeyRequest(BaseModel):
    key: str
    ctrl: bool = False
    shift: bool = False


class ActionResponse(BaseModel):
    ok: bool
    state: dict
