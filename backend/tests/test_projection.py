"""Tests for the local meter frame."""

import math
import warnings

import pytest
from shapely.geometry import Point, Polygon

from siteplan.core.geometry.projection import (
    METERS_PER_DEGREE_LAT,
    LocalFrame,
    area_m2,
    project,
)


class TestLocalFrame:
    def test_center_maps_to_origin(self, frame):
        assert frame.to_local((2.35, 48.85)) == pytest.approx((0.0, 0.0))

    def test_one_degree_latitude(self, frame):
        _, y = frame.to_local((2.35, 49.85))
        assert y == pytest.approx(METERS_PER_DEGREE_LAT)

    def test_longitude_shrinks_with_latitude(self, frame):
        x, _ = frame.to_local((3.35, 48.85))
        assert x == pytest.approx(METERS_PER_DEGREE_LAT * math.cos(math.radians(48.85)))

    def test_round_trip(self, frame):
        pos = (2.3512, 48.8534)
        assert frame.from_local(frame.to_local(pos)) == pytest.approx(pos, abs=1e-12)

    def test_distance_in_meters(self, frame):
        a = frame.from_local((0, 0))
        b = frame.from_local((30, 40))
        assert frame.distance(a, b) == pytest.approx(50.0)

    def test_geometry_round_trip(self, square_parcel, frame):
        local = frame.to_local_geometry(square_parcel)
        back = frame.from_local_geometry(local)
        assert back.equals_exact(square_parcel, 1e-12)

    def test_geometry_projection_emits_no_warnings(self, square_parcel, frame):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            local = frame.to_local_geometry(square_parcel)
            frame.from_local_geometry(local)
        assert local.area == pytest.approx(1600, rel=1e-6)

    def test_pole_does_not_divide_by_zero(self):
        frame = LocalFrame(0.0, 90.0)
        assert math.isfinite(frame.from_local((10, 10))[0])


class TestProject:
    def test_centred_on_centroid(self, make_rect):
        parcel = make_rect(20, 20, cx=100, cy=50)
        frame = project(parcel)
        c = parcel.centroid
        assert (frame.center_lng, frame.center_lat) == pytest.approx((c.x, c.y))

    def test_from_position(self):
        frame = project((2.0, 45.0))
        assert frame.center_lng == 2.0
        assert frame.center_lat == 45.0

    def test_empty_geometry(self):
        frame = project(Polygon())
        assert frame == LocalFrame(0.0, 0.0)


class TestArea:
    def test_rectangle_area(self, make_rect):
        assert area_m2(make_rect(20, 60)) == pytest.approx(1200.0, rel=1e-6)

    def test_empty_is_zero(self):
        assert area_m2(Polygon()) == 0.0

    def test_point_has_no_area(self):
        assert area_m2(Point(2.35, 48.85)) == 0.0
