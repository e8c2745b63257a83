"""Typed setback rulesets and their resolution into applied distances.

The upstream rules service hands over already-resolved minimum distances,
but in a loose payload: values may be numbers or strings such as ``"3,5 m"``,
keys may be French, and any of them may be missing. ``SetbackRuleset``
validates that payload once, and ``resolve_setbacks`` turns it into the
distances the envelope engine applies.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from siteplan.core.setback.facade import SegmentCategory

_NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")


def parse_loose_number(value: Any) -> float | None:
    """Read a number out of a loosely typed value; ``None`` when absent.

    Accepts numbers, numeric strings with a comma decimal separator and a
    unit suffix, and ``{"min_m": ...}`` wrappers.
    """
    if isinstance(value, dict):
        value = value.get("min_m")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", "."))
        if not match:
            return None
        number = float(match.group(0))
        return number if math.isfinite(number) else None
    return None


class FacadeMinimum(BaseModel):
    min_m: float | None = None

    @field_validator("min_m", mode="before")
    @classmethod
    def parse_min(cls, v: Any) -> float | None:
        return parse_loose_number(v)


class FacadeRules(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    front: FacadeMinimum | None = Field(default=None, alias="avant")
    lateral: FacadeMinimum | None = Field(default=None, alias="laterales")
    rear: FacadeMinimum | None = Field(default=None, alias="fond")

    @field_validator("front", "lateral", "rear", mode="before")
    @classmethod
    def wrap_bare_value(cls, v: Any) -> Any:
        if v is None or isinstance(v, (dict, FacadeMinimum)):
            return v
        return {"min_m": v}


class FallbackRules(BaseModel):
    """Generic minimums used when no per-facade value is given."""

    model_config = ConfigDict(populate_by_name=True)

    row_min_m: float | None = Field(default=None, alias="voirie")
    boundary_min_m: float | None = Field(default=None, alias="limites_separatives")
    rear_parcel_min_m: float | None = Field(default=None, alias="fond_parcelle")

    @field_validator("row_min_m", "boundary_min_m", "rear_parcel_min_m", mode="before")
    @classmethod
    def parse_min(cls, v: Any) -> float | None:
        return parse_loose_number(v)


class Completeness(BaseModel):
    ok: bool = True
    missing: list[str] = []


@dataclass(frozen=True)
class ExtractedSetbacks:
    front: float | None
    lateral: float | None
    rear: float | None
    directional: bool


class SetbackRuleset(BaseModel):
    facades: FacadeRules = FacadeRules()
    fallback: FallbackRules = FallbackRules()
    completeness: Completeness = Completeness()

    @model_validator(mode="before")
    @classmethod
    def unwrap_reculs(cls, data: Any) -> Any:
        # upstream nests everything under "reculs" with the generic values
        # beside the facades block
        if isinstance(data, dict) and isinstance(data.get("reculs"), dict):
            reculs = data["reculs"]
            data = {k: v for k, v in data.items() if k != "reculs"}
            data.setdefault("facades", reculs.get("facades") or {})
            data.setdefault("fallback", {
                key: reculs[key]
                for key in ("voirie", "limites_separatives", "fond_parcelle")
                if key in reculs
            })
        return data

    def extract(self) -> ExtractedSetbacks:
        """Pick the distances to apply and whether they are per-facade."""
        front = self.facades.front.min_m if self.facades.front else None
        lateral = self.facades.lateral.min_m if self.facades.lateral else None
        rear = self.facades.rear.min_m if self.facades.rear else None
        fb = self.fallback

        if front is not None or lateral is not None or rear is not None:
            return ExtractedSetbacks(
                front=front if front is not None else fb.row_min_m,
                lateral=lateral if lateral is not None else fb.boundary_min_m,
                rear=rear if rear is not None else fb.rear_parcel_min_m,
                directional=True,
            )
        return ExtractedSetbacks(
            front=fb.row_min_m,
            lateral=fb.boundary_min_m,
            rear=fb.rear_parcel_min_m,
            directional=False,
        )


class SetbackMode(str, Enum):
    DIRECTIONAL = "directional"
    UNIFORM = "uniform"
    FALLBACK_UNIFORM = "fallback-uniform"


@dataclass(frozen=True)
class AppliedSetbacks:
    front_m: float
    lateral_m: float
    rear_m: float
    max_m: float
    mode: SetbackMode
    has_data: bool
    has_facade: bool

    @property
    def is_directional(self) -> bool:
        return self.mode is SetbackMode.DIRECTIONAL

    def effective(self) -> tuple[float, float, float]:
        """``(front, lateral, rear)`` as applied to the envelope.

        Uniform modes apply the largest distance on every edge.
        """
        if self.is_directional:
            return (self.front_m, self.lateral_m, self.rear_m)
        return (self.max_m, self.max_m, self.max_m)

    def distance_for(self, category: SegmentCategory) -> float:
        front, lateral, rear = self.effective()
        if category is SegmentCategory.FRONT:
            return front
        if category is SegmentCategory.REAR:
            return rear
        return lateral

    def to_dict(self) -> dict:
        return {
            "front_m": self.front_m,
            "lateral_m": self.lateral_m,
            "rear_m": self.rear_m,
            "max_m": self.max_m,
            "mode": self.mode.value,
            "has_data": self.has_data,
            "has_facade": self.has_facade,
        }


def resolve_setbacks(
    ruleset: SetbackRuleset | dict | None,
    has_facade: bool,
    valid: bool = True,
) -> AppliedSetbacks | None:
    """Applied distances for the current facade state.

    ``None`` when there is no ruleset or it has been flagged invalid.
    Missing values apply as 0 and negative values are clamped to 0.
    """
    if ruleset is None or not valid:
        return None
    if isinstance(ruleset, dict):
        ruleset = SetbackRuleset.model_validate(ruleset)

    extracted = ruleset.extract()
    values = (extracted.front, extracted.lateral, extracted.rear)
    front, lateral, rear = (max(0.0, v) if v is not None else 0.0 for v in values)

    if not has_facade:
        mode = SetbackMode.UNIFORM
    elif extracted.directional:
        mode = SetbackMode.DIRECTIONAL
    else:
        mode = SetbackMode.FALLBACK_UNIFORM

    return AppliedSetbacks(
        front_m=front,
        lateral_m=lateral,
        rear_m=rear,
        max_m=max(front, lateral, rear),
        mode=mode,
        has_data=any(v is not None for v in values),
        has_facade=has_facade,
    )
