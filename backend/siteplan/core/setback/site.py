"""Parcel-level setback orchestration for site plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from shapely.geometry import MultiLineString, mapping
from shapely.geometry.base import BaseGeometry

from siteplan.core.geometry.boolean import Polygonal, safe_union
from siteplan.core.geometry.projection import area_m2
from siteplan.core.setback.bands import (
    SetbackBands,
    compute_bands,
    compute_forbidden_band,
    compute_hatch_lines,
)
from siteplan.core.setback.envelope import EnvelopeTier, compute_envelope
from siteplan.core.setback.facade import (
    FacadeSegment,
    SegmentClassification,
    classify_segments,
    find_closest_edge,
)
from siteplan.core.setback.ruleset import AppliedSetbacks, SetbackRuleset, resolve_setbacks

logger = logging.getLogger(__name__)


@dataclass
class SiteResult:
    """Envelope, forbidden zone and hatching for one parcel + facade state."""

    parcel: BaseGeometry
    envelope: Polygonal
    tier: EnvelopeTier
    forbidden_band: Polygonal | None = None
    bands: SetbackBands = field(default_factory=SetbackBands)
    hatch_lines: MultiLineString | None = None
    segments: list[SegmentClassification] = field(default_factory=list)
    applied: AppliedSetbacks | None = None

    @property
    def parcel_area_m2(self) -> float:
        return area_m2(self.parcel)

    @property
    def envelope_area_m2(self) -> float:
        return area_m2(self.envelope)

    def to_dict(self) -> dict:
        """Serialise to a plain dict for the API response."""
        def _geo(geom: BaseGeometry | None) -> dict | None:
            if geom is None or geom.is_empty:
                return None
            return mapping(geom)

        return {
            "envelope": _geo(self.envelope),
            "envelope_tier": self.tier.value,
            "forbidden_band": _geo(self.forbidden_band),
            "bands": {
                "front": _geo(self.bands.front),
                "lateral": _geo(self.bands.lateral),
                "rear": _geo(self.bands.rear),
            },
            "hatch_lines": _geo(self.hatch_lines),
            "segments": [s.to_dict() for s in self.segments],
            "applied": self.applied.to_dict() if self.applied else None,
            "parcel_area_m2": round(self.parcel_area_m2, 2),
            "envelope_area_m2": round(self.envelope_area_m2, 2),
        }

    def to_geojson(self) -> dict:
        """FeatureCollection with one feature per layer, for map renderers."""
        layers: list[tuple[str, BaseGeometry | None]] = [
            ("parcel", self.parcel),
            ("envelope", self.envelope),
            ("forbidden_band", self.forbidden_band),
            ("band_front", self.bands.front),
            ("band_lateral", self.bands.lateral),
            ("band_rear", self.bands.rear),
            ("hatch", self.hatch_lines),
        ]
        features = [
            {"type": "Feature", "geometry": mapping(geom), "properties": {"layer": name}}
            for name, geom in layers
            if geom is not None and not geom.is_empty
        ]
        features.extend(
            {
                "type": "Feature",
                "geometry": {"type": "LineString", "coordinates": [list(s.start), list(s.end)]},
                "properties": {"layer": "segment", "category": s.category.value, "index": s.index},
            }
            for s in self.segments
        )
        return {"type": "FeatureCollection", "features": features}


def compute_all_setbacks(
    parcel: BaseGeometry,
    facade: FacadeSegment | None,
    front_m: float,
    lateral_m: float,
    rear_m: float,
    hatch_spacing_m: float | None = None,
    hatch_angle_deg: float | None = None,
) -> SiteResult:
    """Envelope, forbidden band, per-category bands and hatching in one pass.

    Zero setbacks leave the parcel as the envelope with nothing forbidden.
    Per-category bands need a facade and a directional envelope; otherwise
    the whole forbidden band is reported as lateral.
    """
    if max(front_m, lateral_m, rear_m) <= 0:
        return SiteResult(
            parcel=parcel,
            envelope=parcel,
            tier=EnvelopeTier.IDENTITY,
            segments=classify_segments(parcel, facade),
        )

    env = compute_envelope(parcel, facade, front_m, lateral_m, rear_m)
    forbidden = compute_forbidden_band(parcel, env.envelope)

    if facade is not None and env.tier is EnvelopeTier.DIRECTIONAL:
        bands = compute_bands(parcel, env)
        if forbidden is None and not bands.is_empty:
            forbidden = safe_union(bands.non_empty())
    elif forbidden is not None:
        bands = SetbackBands(lateral=forbidden)
    else:
        bands = SetbackBands()

    hatch = compute_hatch_lines(
        parcel, env.envelope, hatch_spacing_m, hatch_angle_deg, frame=env.frame,
    )

    return SiteResult(
        parcel=parcel,
        envelope=env.envelope,
        tier=env.tier,
        forbidden_band=forbidden,
        bands=bands,
        hatch_lines=hatch,
        segments=env.segments,
    )


class SiteEngine:
    """Holds a parcel, its ruleset and the selected facade.

    The result is recomputed lazily and cached until one of the inputs
    changes. Changing the parcel clears the facade.
    """

    def __init__(
        self,
        parcel: BaseGeometry,
        ruleset: SetbackRuleset | dict | None = None,
        ruleset_valid: bool = True,
    ) -> None:
        self._parcel = parcel
        self._ruleset = ruleset
        self._ruleset_valid = ruleset_valid
        self._facade: FacadeSegment | None = None
        self._result: SiteResult | None = None

    @property
    def parcel(self) -> BaseGeometry:
        return self._parcel

    @property
    def facade(self) -> FacadeSegment | None:
        return self._facade

    @property
    def applied_setbacks(self) -> AppliedSetbacks | None:
        return resolve_setbacks(self._ruleset, self._facade is not None, self._ruleset_valid)

    @property
    def result(self) -> SiteResult:
        if self._result is None:
            self._result = self._compute()
        return self._result

    def set_parcel(self, parcel: BaseGeometry) -> None:
        self._parcel = parcel
        self._facade = None
        self._result = None

    def set_ruleset(self, ruleset: SetbackRuleset | dict | None, valid: bool = True) -> None:
        self._ruleset = ruleset
        self._ruleset_valid = valid
        self._result = None

    def set_facade(self, segment: FacadeSegment | None) -> None:
        self._facade = segment
        self._result = None

    def reset_facade(self) -> None:
        self.set_facade(None)

    def select_facade_from_click(self, point: Sequence[float]) -> bool:
        """Select the edge under a click; ``False`` (selection unchanged) if none is close."""
        segment = find_closest_edge(self._parcel, point)
        if segment is None:
            return False
        logger.debug("facade selected: edge %s at %.2fm", segment.index, segment.distance_m)
        self.set_facade(segment)
        return True

    def _compute(self) -> SiteResult:
        applied = self.applied_setbacks
        if applied is None:
            result = compute_all_setbacks(self._parcel, self._facade, 0.0, 0.0, 0.0)
        else:
            front, lateral, rear = applied.effective()
            result = compute_all_setbacks(self._parcel, self._facade, front, lateral, rear)
        result.applied = applied
        return result
