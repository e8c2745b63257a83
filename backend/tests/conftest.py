"""Shared parcel builders.

Parcels are laid out in meters around a fixed point in Paris and projected
to (lng, lat), so tests can reason in meters while the engine sees real
geographic input.
"""

import pytest
from shapely.geometry import Polygon

from siteplan.core.geometry.projection import LocalFrame

CENTER = (2.35, 48.85)


def _rect_ring(width_m, height_m, cx=0.0, cy=0.0):
    hw, hh = width_m / 2, height_m / 2
    return [
        (cx - hw, cy - hh), (cx + hw, cy - hh), (cx + hw, cy + hh), (cx - hw, cy + hh),
    ]


@pytest.fixture
def frame():
    return LocalFrame(*CENTER)


@pytest.fixture
def make_rect(frame):
    """``make_rect(width_m, height_m, cx=0, cy=0, clockwise=False)`` -> geographic Polygon."""
    def build(width_m, height_m, cx=0.0, cy=0.0, clockwise=False):
        ring = _rect_ring(width_m, height_m, cx, cy)
        if clockwise:
            ring = ring[::-1]
        return Polygon(frame.from_local_ring(ring))
    return build


@pytest.fixture
def make_polygon(frame):
    """Geographic polygon from a list of local (x, y) meter points."""
    def build(points):
        return Polygon(frame.from_local_ring(points))
    return build


@pytest.fixture
def to_geo(frame):
    return frame.from_local


@pytest.fixture
def to_local(frame):
    """Local (x, y) of a point, or local copy of a geometry."""
    def convert(value):
        if hasattr(value, "geom_type"):
            return frame.to_local_geometry(value)
        return frame.to_local(value)
    return convert


@pytest.fixture
def square_parcel(make_rect):
    return make_rect(40, 40)


@pytest.fixture
def long_parcel(make_rect):
    """20 m wide (east-west), 60 m deep (north-south)."""
    return make_rect(20, 60)
