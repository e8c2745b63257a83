"""Tests for per-edge offsetting and corner stitching."""

import pytest
from shapely.geometry import Polygon

from siteplan.core.geometry.offset import (
    OffsetEdge,
    offset_edges,
    offset_polygon_inward,
    offset_polygon_outward,
    stitch_offset_edges,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]


class TestOffsetEdges:
    def test_ccw_edges_move_inward(self):
        edges = offset_edges(SQUARE, [1, 1, 1, 1])
        assert len(edges) == 4
        # bottom edge goes east, so inward is north
        assert edges[0].p1 == pytest.approx((0.0, 1.0))
        assert edges[0].p2 == pytest.approx((10.0, 1.0))

    def test_cw_edges_move_inward(self):
        cw = SQUARE[::-1]
        edges = offset_edges(cw, [1, 1, 1, 1])
        # first CW edge is the left side going north; inward is east
        assert edges[0].p1 == pytest.approx((1.0, 0.0))
        assert edges[0].p2 == pytest.approx((1.0, 10.0))

    def test_per_edge_distances(self):
        edges = offset_edges(SQUARE, [1, 2, 3, 4])
        assert [e.distance for e in edges] == [1, 2, 3, 4]
        assert edges[1].p1[0] == pytest.approx(8.0)
        assert edges[2].p1[1] == pytest.approx(7.0)
        assert edges[3].p1[0] == pytest.approx(4.0)

    def test_negative_distance_clamped(self):
        edges = offset_edges(SQUARE, [-5, 1, 1, 1])
        assert edges[0].distance == 0
        assert edges[0].p1 == pytest.approx((0.0, 0.0))

    def test_zero_length_edge_skipped(self):
        ring = [(0, 0), (10, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        edges = offset_edges(ring, [1] * 5)
        assert [e.index for e in edges] == [0, 2, 3, 4]


class TestStitching:
    def test_uniform_square(self):
        corners = stitch_offset_edges(SQUARE, offset_edges(SQUARE, [1, 1, 1, 1]))
        assert corners[0] == corners[-1]
        assert Polygon(corners).area == pytest.approx(64.0)

    def test_corner_k_joins_edge_k_and_next(self):
        corners = stitch_offset_edges(SQUARE, offset_edges(SQUARE, [1, 2, 3, 4]))
        # corner 0: bottom edge (y=1) meets right edge (x=8)
        assert corners[0] == pytest.approx((8.0, 1.0))
        # corner 3: left edge (x=4) meets bottom edge (y=1)
        assert corners[3] == pytest.approx((4.0, 1.0))

    def test_directional_area(self):
        corners = stitch_offset_edges(SQUARE, offset_edges(SQUARE, [1, 2, 3, 4]))
        assert Polygon(corners).area == pytest.approx(4.0 * 6.0)

    def test_collinear_neighbours_use_edge_end(self):
        # the bottom side is split in two collinear edges
        ring = [(0, 0), (5, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        corners = stitch_offset_edges(ring, offset_edges(ring, [1] * 5))
        assert corners[0] == pytest.approx((5.0, 1.0))
        assert Polygon(corners).area == pytest.approx(64.0)

    def test_far_intersection_replaced_by_midpoint(self):
        # nearly parallel edges offset by different amounts meet far away
        ring = [(0, 0), (100, 0), (200, 0.01), (200, 10), (0, 10), (0, 0)]
        edges = offset_edges(ring, [1, 5, 1, 1, 1])
        corners = stitch_offset_edges(ring, edges)
        expected = (
            (edges[0].p2[0] + edges[1].p1[0]) / 2,
            (edges[0].p2[1] + edges[1].p1[1]) / 2,
        )
        assert corners[0] == pytest.approx(expected)

    def test_too_few_edges(self):
        edge = OffsetEdge(0, (0, 0), (1, 0), 1.0)
        assert stitch_offset_edges(SQUARE, [edge, edge]) is None


class TestUniformOffsets:
    def test_inward_keeps_square_corners(self):
        result = offset_polygon_inward(Polygon(SQUARE), 1)
        assert result.area == pytest.approx(64.0)

    def test_collapse_returns_none(self):
        assert offset_polygon_inward(Polygon(SQUARE), 6) is None

    def test_outward(self):
        result = offset_polygon_outward(Polygon(SQUARE), 1)
        assert result.area == pytest.approx(144.0)
