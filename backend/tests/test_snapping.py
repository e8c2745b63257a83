"""Tests for grid, envelope-edge and alignment snapping."""

import pytest
from pydantic import ValidationError

from siteplan.core.drawing.objects import ObjectKind, new_object
from siteplan.core.drawing.snapping import (
    SnapGuideKind,
    SnapSettings,
    compute_alignment_guides,
    snap_to_envelope_edge,
    snap_to_grid,
)


class TestSnapSettings:
    def test_defaults(self):
        snap = SnapSettings()
        assert snap.enabled
        assert snap.grid_size == 1.0
        assert snap.tolerance == 10.0

    def test_from_settings(self):
        assert SnapSettings.from_settings() == SnapSettings()

    def test_negative_grid_rejected(self):
        with pytest.raises(ValidationError):
            SnapSettings(grid_size=-1)

    def test_frozen(self):
        snap = SnapSettings()
        with pytest.raises(ValidationError):
            snap.grid_size = 5


class TestSnapToGrid:
    def test_rounds_to_nearest(self):
        assert snap_to_grid((1.4, 2.6), 1.0) == (1.0, 3.0)

    def test_larger_grid(self):
        assert snap_to_grid((7.4, -3.1), 5.0) == (5.0, -5.0)

    def test_zero_grid_is_noop(self):
        assert snap_to_grid((1.4, 2.6), 0) == (1.4, 2.6)


class TestSnapToEnvelopeEdge:
    def test_snaps_onto_near_edge(self, make_rect, frame):
        envelope = make_rect(30, 30)
        point, guide = snap_to_envelope_edge((14, 3), envelope, 3.0, frame)
        assert point == pytest.approx((15.0, 3.0), abs=1e-6)
        assert guide.kind is SnapGuideKind.ENVELOPE

    def test_far_point_unchanged(self, make_rect, frame):
        envelope = make_rect(30, 30)
        point, guide = snap_to_envelope_edge((0, 0), envelope, 3.0, frame)
        assert point == (0, 0)
        assert guide is None

    def test_picks_nearest_edge(self, make_rect, frame):
        envelope = make_rect(30, 30)
        point, _ = snap_to_envelope_edge((14.5, 13), envelope, 3.0, frame)
        assert point == pytest.approx((15.0, 13.0), abs=1e-6)


class TestAlignmentGuides:
    def test_horizontal_guide(self, make_rect, frame):
        other = new_object(make_rect(4, 4, cx=20, cy=10), ObjectKind.BUILDING)
        guides = compute_alignment_guides((0, 10.5), [other], 1.0, frame)
        assert [g.kind for g in guides] == [SnapGuideKind.HORIZONTAL]
        start = frame.to_local(guides[0].start)
        end = frame.to_local(guides[0].end)
        assert start[1] == pytest.approx(10.0, abs=1e-6)
        assert end[0] - start[0] == pytest.approx(100.0)

    def test_vertical_guide(self, make_rect, frame):
        other = new_object(make_rect(4, 4, cx=-8, cy=30), ObjectKind.BUILDING)
        guides = compute_alignment_guides((-7, 0), [other], 1.0, frame)
        assert [g.kind for g in guides] == [SnapGuideKind.VERTICAL]

    def test_no_guide_when_far(self, make_rect, frame):
        other = new_object(make_rect(4, 4, cx=20, cy=20), ObjectKind.BUILDING)
        assert compute_alignment_guides((0, 0), [other], 1.0, frame) == []
