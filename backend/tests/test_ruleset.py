"""Tests for ruleset parsing and setback resolution."""

import math

import pytest
from pydantic import ValidationError

from siteplan.core.setback.facade import SegmentCategory
from siteplan.core.setback.ruleset import (
    SetbackMode,
    SetbackRuleset,
    parse_loose_number,
    resolve_setbacks,
)

UPSTREAM_PAYLOAD = {
    "reculs": {
        "facades": {
            "avant": {"min_m": "5 m"},
            "laterales": {"min_m": 3},
            "fond": {"min_m": "4,5"},
        },
        "voirie": 6,
        "limites_separatives": 2,
    },
    "completeness": {"ok": True, "missing": []},
}


class TestParseLooseNumber:
    @pytest.mark.parametrize("value, expected", [
        (3, 3.0),
        (2.5, 2.5),
        ("4", 4.0),
        ("3,5 m", 3.5),
        ("min. 6m", 6.0),
        ({"min_m": "7"}, 7.0),
    ])
    def test_accepted_values(self, value, expected):
        assert parse_loose_number(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, "", "n/a", True, [], math.nan, math.inf, {}])
    def test_absent_values(self, value):
        assert parse_loose_number(value) is None


class TestSetbackRuleset:
    def test_upstream_payload(self):
        ruleset = SetbackRuleset.model_validate(UPSTREAM_PAYLOAD)
        assert ruleset.facades.front.min_m == 5.0
        assert ruleset.facades.rear.min_m == 4.5
        assert ruleset.fallback.row_min_m == 6.0
        assert ruleset.fallback.boundary_min_m == 2.0
        assert ruleset.fallback.rear_parcel_min_m is None

    def test_english_field_names(self):
        ruleset = SetbackRuleset.model_validate({
            "facades": {"front": {"min_m": 5}, "lateral": 3},
        })
        assert ruleset.facades.front.min_m == 5.0
        assert ruleset.facades.lateral.min_m == 3.0

    def test_empty_payload(self):
        extracted = SetbackRuleset().extract()
        assert extracted.front is None
        assert not extracted.directional

    def test_facade_values_are_directional(self):
        extracted = SetbackRuleset.model_validate(UPSTREAM_PAYLOAD).extract()
        assert extracted.directional
        assert (extracted.front, extracted.lateral, extracted.rear) == (5.0, 3.0, 4.5)

    def test_missing_facade_value_uses_fallback(self):
        extracted = SetbackRuleset.model_validate({
            "reculs": {"facades": {"avant": 5}, "limites_separatives": 2},
        }).extract()
        assert extracted.directional
        assert extracted.lateral == 2.0
        assert extracted.rear is None

    def test_only_fallback_values(self):
        extracted = SetbackRuleset.model_validate({
            "reculs": {"voirie": "5", "limites_separatives": 3, "fond_parcelle": 4},
        }).extract()
        assert not extracted.directional
        assert (extracted.front, extracted.lateral, extracted.rear) == (5.0, 3.0, 4.0)

    def test_unparseable_facade_values_are_absent(self):
        extracted = SetbackRuleset.model_validate({
            "reculs": {"facades": {"avant": "voir plan"}, "voirie": 4},
        }).extract()
        assert not extracted.directional

    def test_wrong_shape_rejected(self):
        with pytest.raises(ValidationError):
            SetbackRuleset.model_validate({"facades": "nope"})


class TestResolveSetbacks:
    def test_no_ruleset(self):
        assert resolve_setbacks(None, has_facade=True) is None

    def test_invalid_ruleset(self):
        assert resolve_setbacks(UPSTREAM_PAYLOAD, has_facade=True, valid=False) is None

    def test_directional_with_facade(self):
        applied = resolve_setbacks(UPSTREAM_PAYLOAD, has_facade=True)
        assert applied.mode is SetbackMode.DIRECTIONAL
        assert applied.effective() == (5.0, 3.0, 4.5)
        assert applied.max_m == 5.0
        assert applied.distance_for(SegmentCategory.REAR) == 4.5

    def test_uniform_without_facade(self):
        applied = resolve_setbacks(UPSTREAM_PAYLOAD, has_facade=False)
        assert applied.mode is SetbackMode.UNIFORM
        assert applied.effective() == (5.0, 5.0, 5.0)
        assert applied.distance_for(SegmentCategory.LATERAL) == 5.0

    def test_fallback_uniform(self):
        applied = resolve_setbacks({"reculs": {"voirie": 5, "limites_separatives": 3}}, has_facade=True)
        assert applied.mode is SetbackMode.FALLBACK_UNIFORM
        assert applied.effective() == (5.0, 5.0, 5.0)

    def test_missing_values_apply_as_zero(self):
        applied = resolve_setbacks({"reculs": {"facades": {"avant": 5}}}, has_facade=True)
        assert (applied.front_m, applied.lateral_m, applied.rear_m) == (5.0, 0.0, 0.0)
        assert applied.has_data

    def test_negative_values_clamped(self):
        applied = resolve_setbacks({"facades": {"front": -3, "lateral": 2}}, has_facade=True)
        assert applied.front_m == 0.0
        assert applied.max_m == 2.0

    def test_empty_ruleset_has_no_data(self):
        applied = resolve_setbacks({}, has_facade=False)
        assert not applied.has_data
        assert applied.max_m == 0.0

    def test_accepts_model_instance(self):
        ruleset = SetbackRuleset.model_validate(UPSTREAM_PAYLOAD)
        assert resolve_setbacks(ruleset, has_facade=True).front_m == 5.0

    def test_to_dict(self):
        data = resolve_setbacks(UPSTREAM_PAYLOAD, has_facade=False).to_dict()
        assert data["mode"] == "uniform"
        assert data["max_m"] == 5.0
