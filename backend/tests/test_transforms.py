"""Tests for gesture state and affine footprint transforms."""

import pytest

from siteplan.core.drawing import transforms
from siteplan.core.drawing.objects import ObjectKind
from siteplan.core.drawing.snapping import SnapSettings
from siteplan.core.drawing.transforms import (
    MAX_SCALE,
    MIN_SCALE,
    ROTATION_HANDLE_OFFSET_M,
    HandlePosition,
    MoveAction,
    RotateAction,
    StretchAction,
    TransformKind,
    compute_handles,
    snap_angle,
)

NO_SNAP = SnapSettings(enabled=False)


@pytest.fixture
def box(make_rect):
    """10 x 4 m footprint centred on the frame origin."""
    return make_rect(10, 4)


def local_bounds(frame, geom):
    return frame.to_local_geometry(geom).bounds


class TestAffine:
    def test_translate(self, box, frame):
        moved = transforms.translate(box, 3, -2)
        assert local_bounds(frame, moved) == pytest.approx((-2, -4, 8, 0), abs=1e-6)

    @pytest.mark.parametrize("angle", [0, 360, -360])
    def test_full_turn_is_identity(self, box, frame, angle):
        rotated = transforms.rotate(box, angle)
        assert local_bounds(frame, rotated) == pytest.approx(local_bounds(frame, box), abs=1e-6)

    def test_quarter_turn_swaps_extent(self, box, frame):
        rotated = transforms.rotate(box, 90)
        assert local_bounds(frame, rotated) == pytest.approx((-2, -5, 2, 5), abs=1e-6)

    def test_rotation_keeps_area(self, box, frame):
        assert frame.area_m2(transforms.rotate(box, 37)) == pytest.approx(40, rel=1e-6)

    def test_scale(self, box, frame):
        assert frame.area_m2(transforms.scale(box, 2)) == pytest.approx(160, rel=1e-6)

    def test_stretch_east_handle(self, box, frame):
        bbox = local_bounds(frame, box)
        stretched = transforms.stretch(box, HandlePosition.E, bbox, (10, 0), frame)
        assert local_bounds(frame, stretched) == pytest.approx((-5, -2, 10, 2), abs=1e-6)

    def test_stretch_corner_handle(self, box, frame):
        bbox = local_bounds(frame, box)
        stretched = transforms.stretch(box, HandlePosition.NW, bbox, (-8, 5), frame)
        assert local_bounds(frame, stretched) == pytest.approx((-8, -2, 5, 5), abs=1e-6)

    def test_stretch_past_opposite_side_rejected(self, box, frame):
        bbox = local_bounds(frame, box)
        assert transforms.stretch(box, HandlePosition.E, bbox, (-6, 0), frame) is None

    def test_snap_angle(self):
        assert snap_angle(12.4) == pytest.approx(10.0)
        assert snap_angle(13) == pytest.approx(15.0)
        assert snap_angle(13, step=0) == 13


class TestBegin:
    def test_move(self, box, to_geo):
        action = transforms.begin(TransformKind.MOVE, "a", ObjectKind.BUILDING, box, to_geo((1, 1)))
        assert isinstance(action, MoveAction)
        assert action.start == pytest.approx((1, 1), abs=1e-6)
        assert action.pivot == pytest.approx((0, 0), abs=1e-6)
        assert transforms.kind_of(action) is TransformKind.MOVE

    def test_rotate_records_start_angle(self, box, to_geo):
        action = transforms.begin(TransformKind.ROTATE, "a", ObjectKind.BUILDING, box, to_geo((0, 10)))
        assert isinstance(action, RotateAction)
        assert action.start_angle == pytest.approx(90.0)

    def test_stretch_needs_handle(self, box, to_geo):
        assert transforms.begin(TransformKind.STRETCH, "a", ObjectKind.BUILDING, box, to_geo((5, 0))) is None
        action = transforms.begin(
            TransformKind.STRETCH, "a", ObjectKind.BUILDING, box, to_geo((5, 0)), HandlePosition.E,
        )
        assert isinstance(action, StretchAction)

    def test_idle_has_no_kind(self):
        assert transforms.kind_of(transforms.Idle()) is None


class TestApply:
    def test_move_follows_pointer(self, box, frame, to_geo):
        action = transforms.begin(TransformKind.MOVE, "a", ObjectKind.BUILDING, box, to_geo((0, 0)))
        outcome = transforms.apply(action, to_geo((3.3, 0)), NO_SNAP)
        assert local_bounds(frame, outcome.polygon) == pytest.approx((-1.7, -2, 8.3, 2), abs=1e-6)

    def test_move_snaps_delta_to_grid(self, box, frame, to_geo):
        snap = SnapSettings(grid_size=1.0, envelope_snap=False)
        action = transforms.begin(TransformKind.MOVE, "a", ObjectKind.BUILDING, box, to_geo((0.3, 0.2)))
        outcome = transforms.apply(action, to_geo((3.6, 0.1)), snap)
        assert local_bounds(frame, outcome.polygon) == pytest.approx((-2, -2, 8, 2), abs=1e-6)

    def test_move_snaps_to_envelope_edge(self, box, make_rect, to_geo):
        envelope = make_rect(40, 40)
        snap = SnapSettings(grid_size=1.0)
        action = transforms.begin(TransformKind.MOVE, "a", ObjectKind.BUILDING, box, to_geo((0, 0)))
        outcome = transforms.apply(action, to_geo((18.4, 0)), snap, envelope)
        assert outcome.guide is not None

    def test_recomputed_from_original(self, box, frame, to_geo):
        action = transforms.begin(TransformKind.MOVE, "a", ObjectKind.BUILDING, box, to_geo((0, 0)))
        for x in (1, 5, 2, 7, 0):
            outcome = transforms.apply(action, to_geo((x, 0)), NO_SNAP)
        assert local_bounds(frame, outcome.polygon) == pytest.approx(local_bounds(frame, box), abs=1e-6)

    def test_rotate_snaps_to_five_degrees(self, box, to_geo):
        snap = SnapSettings()
        action = transforms.begin(TransformKind.ROTATE, "a", ObjectKind.BUILDING, box, to_geo((10, 0)))
        # pointer at roughly 32 degrees
        outcome = transforms.apply(action, to_geo((8.48, 5.3)), snap)
        assert outcome.rotation_angle == pytest.approx(30.0)

    def test_rotate_free_with_modifier(self, box, to_geo):
        snap = SnapSettings()
        action = transforms.begin(TransformKind.ROTATE, "a", ObjectKind.BUILDING, box, to_geo((10, 0)))
        outcome = transforms.apply(action, to_geo((8.48, 5.3)), snap, free=True)
        assert outcome.rotation_angle == pytest.approx(32.0, abs=0.1)

    def test_scale_by_pointer_distance(self, box, frame, to_geo):
        action = transforms.begin(TransformKind.SCALE, "a", ObjectKind.BUILDING, box, to_geo((5, 0)))
        outcome = transforms.apply(action, to_geo((10, 0)), NO_SNAP)
        assert frame.area_m2(outcome.polygon) == pytest.approx(160, rel=1e-6)

    @pytest.mark.parametrize("x, factor", [(0.01, MIN_SCALE), (100, MAX_SCALE)])
    def test_scale_clamped(self, box, frame, to_geo, x, factor):
        action = transforms.begin(TransformKind.SCALE, "a", ObjectKind.BUILDING, box, to_geo((5, 0)))
        outcome = transforms.apply(action, to_geo((x, 0)), NO_SNAP)
        assert frame.area_m2(outcome.polygon) == pytest.approx(40 * factor ** 2, rel=1e-6)

    def test_scale_from_pivot_is_degenerate(self, box, to_geo):
        c = box.centroid
        action = transforms.begin(TransformKind.SCALE, "a", ObjectKind.BUILDING, box, (c.x, c.y))
        assert transforms.apply(action, to_geo((5, 0)), NO_SNAP).polygon is None

    def test_stretch_snaps_target(self, box, frame, to_geo):
        snap = SnapSettings(grid_size=1.0)
        action = transforms.begin(
            TransformKind.STRETCH, "a", ObjectKind.BUILDING, box, to_geo((5, 0)), HandlePosition.E,
        )
        outcome = transforms.apply(action, to_geo((9.3, 0.4)), snap)
        assert local_bounds(frame, outcome.polygon) == pytest.approx((-5, -2, 9, 2), abs=1e-6)


class TestHandles:
    def test_eight_handles_and_rotation(self, box, frame):
        handles = compute_handles(box)
        assert len(handles.positions) == 8
        assert frame.to_local(handles.positions[HandlePosition.NE]) == pytest.approx((5, 2), abs=1e-6)
        rx, ry = frame.to_local(handles.rotate)
        assert ry == pytest.approx(2 + ROTATION_HANDLE_OFFSET_M, abs=1e-6)

    def test_to_dict(self, box):
        data = compute_handles(box).to_dict()
        assert set(data) >= {"nw", "se", "rotate", "centroid"}

    def test_corner_handles(self):
        assert HandlePosition.NE.is_corner
        assert not HandlePosition.N.is_corner
