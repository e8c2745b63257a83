"""Tests for the forbidden zone, setback bands and hatching."""

import pytest
from shapely.geometry import MultiLineString

from siteplan.core.setback.bands import (
    MIN_HATCH_SEGMENT_M,
    compute_bands,
    compute_forbidden_band,
    compute_hatch_lines,
)
from siteplan.core.setback.envelope import compute_envelope
from siteplan.core.setback.facade import FacadeSegment, SegmentCategory


@pytest.fixture
def south_facade(to_geo):
    return FacadeSegment(start=to_geo((-10, -30)), end=to_geo((10, -30)))


@pytest.fixture
def directional(long_parcel, south_facade):
    return compute_envelope(long_parcel, south_facade, 5, 3, 4)


class TestForbiddenBand:
    def test_area_is_parcel_minus_envelope(self, long_parcel, directional, frame):
        band = compute_forbidden_band(long_parcel, directional.envelope)
        assert frame.area_m2(band) == pytest.approx(1200 - 14 * 51, rel=1e-6)

    def test_no_band_when_envelope_is_parcel(self, square_parcel):
        assert compute_forbidden_band(square_parcel, square_parcel) is None


class TestSetbackBands:
    def test_every_category_present(self, long_parcel, directional):
        bands = compute_bands(long_parcel, directional)
        for category in SegmentCategory:
            assert bands.get(category) is not None

    def test_band_areas(self, long_parcel, directional, frame):
        bands = compute_bands(long_parcel, directional)
        total = sum(frame.area_m2(b) for b in bands.non_empty())
        assert total == pytest.approx(1200 - 14 * 51, rel=1e-3)

    def test_front_band_touches_front_edge(self, long_parcel, directional, frame):
        bands = compute_bands(long_parcel, directional)
        minx, miny, maxx, maxy = frame.to_local_geometry(bands.front).bounds
        assert miny == pytest.approx(-30, abs=1e-6)
        assert maxy == pytest.approx(-25, abs=1e-6)

    def test_bands_outside_envelope(self, long_parcel, directional, frame):
        bands = compute_bands(long_parcel, directional)
        local_env = frame.to_local_geometry(directional.envelope)
        for band in bands.non_empty():
            assert frame.to_local_geometry(band).intersection(local_env).area < 1e-6

    def test_non_directional_envelope_has_no_bands(self, square_parcel):
        result = compute_envelope(square_parcel, None, 0.001, 0.001, 0.001)
        assert compute_bands(square_parcel, result).is_empty


class TestHatchLines:
    def test_hatch_covers_forbidden_zone(self, long_parcel, directional, frame):
        lines = compute_hatch_lines(long_parcel, directional.envelope)
        assert isinstance(lines, MultiLineString)
        assert len(lines.geoms) > 10

    def test_hatch_stays_in_parcel_outside_envelope(self, long_parcel, directional, frame):
        lines = frame.to_local_geometry(compute_hatch_lines(long_parcel, directional.envelope))
        local_parcel = frame.to_local_geometry(long_parcel)
        local_env = frame.to_local_geometry(directional.envelope)
        assert local_parcel.buffer(1e-6).contains(lines)
        for line in lines.geoms:
            assert line.intersection(local_env.buffer(-1e-6)).length == pytest.approx(0, abs=1e-6)

    def test_short_segments_dropped(self, long_parcel, directional, frame):
        lines = frame.to_local_geometry(compute_hatch_lines(long_parcel, directional.envelope))
        assert all(line.length >= MIN_HATCH_SEGMENT_M - 1e-9 for line in lines.geoms)

    def test_hatch_direction(self, square_parcel, frame):
        envelope = compute_envelope(square_parcel, None, 5, 5, 5).envelope
        lines = frame.to_local_geometry(compute_hatch_lines(square_parcel, envelope, angle_deg=0))
        for line in lines.geoms:
            (_, y1), (_, y2) = line.coords
            assert y1 == pytest.approx(y2, abs=1e-6)

    def test_spacing(self, square_parcel, frame):
        envelope = compute_envelope(square_parcel, None, 5, 5, 5).envelope
        lines = frame.to_local_geometry(
            compute_hatch_lines(square_parcel, envelope, spacing_m=2, angle_deg=0)
        )
        ys = sorted({round(line.coords[0][1], 6) for line in lines.geoms})
        assert all(b - a == pytest.approx(2.0) for a, b in zip(ys, ys[1:]))

    def test_no_forbidden_zone_no_hatch(self, square_parcel):
        assert compute_hatch_lines(square_parcel, square_parcel) is None

    def test_zero_spacing(self, long_parcel, directional):
        assert compute_hatch_lines(long_parcel, directional.envelope, spacing_m=0) is None
