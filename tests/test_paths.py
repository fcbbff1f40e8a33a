"""Tests for contour generation."""
import math

import numpy as np
import pytest

from brow_map.anchors import screen_anchors, side_anchors
from brow_map.config import Policy
from brow_map.model import Side, SideOffset, set_side_offset
from brow_map.paths import (
    LineSegment,
    QuadSegment,
    build_contour,
    contour_segments,
    flatten,
    side_contour,
)


def _anchor_list(offset, side):
    return list(side_anchors(offset, side))


class TestStraightContour:

    def test_zero_curvature_is_polygon_through_anchors(self):
        offset = SideOffset(curvature=0.0)
        segs = contour_segments(offset, Side.RIGHT)
        anchors = _anchor_list(offset, Side.RIGHT)
        assert len(segs) == 5
        assert all(isinstance(s, LineSegment) for s in segs)
        for i, seg in enumerate(segs):
            assert seg.start == anchors[i]
            assert seg.end == anchors[(i + 1) % 5]

    def test_below_threshold_is_straight(self):
        segs = contour_segments(SideOffset(curvature=0.04), Side.LEFT)
        assert all(isinstance(s, LineSegment) for s in segs)

    def test_threshold_is_policy(self):
        segs = contour_segments(SideOffset(curvature=0.3), Side.LEFT, Policy(curve_threshold=0.5))
        assert all(isinstance(s, LineSegment) for s in segs)


class TestCurvedContour:

    def test_anchors_stay_on_path(self):
        offset = SideOffset(curvature=0.6)
        segs = contour_segments(offset, Side.RIGHT)
        anchors = _anchor_list(offset, Side.RIGHT)
        assert all(isinstance(s, QuadSegment) for s in segs)
        for i, seg in enumerate(segs):
            assert seg.start == anchors[i]
            assert seg.end == anchors[(i + 1) % 5]
            assert seg.point_at(0.0) == pytest.approx(anchors[i])
            assert seg.point_at(1.0) == pytest.approx(anchors[(i + 1) % 5])

    def test_control_offset_proportional_to_curvature(self):
        def bend(curvature):
            seg = contour_segments(SideOffset(curvature=curvature), Side.RIGHT)[0]
            mx = (seg.start[0] + seg.end[0]) / 2
            my = (seg.start[1] + seg.end[1]) / 2
            chord = math.hypot(seg.end[0] - seg.start[0], seg.end[1] - seg.start[1])
            return math.hypot(seg.control[0] - mx, seg.control[1] - my) / chord

        assert bend(0.5) == pytest.approx(0.5 * 0.12)
        assert bend(1.0) == pytest.approx(2 * bend(0.5))

    def test_control_is_perpendicular_to_chord(self):
        seg = contour_segments(SideOffset(curvature=1.0), Side.RIGHT)[1]
        mx = (seg.start[0] + seg.end[0]) / 2
        my = (seg.start[1] + seg.end[1]) / 2
        cx, cy = seg.control[0] - mx, seg.control[1] - my
        dx, dy = seg.end[0] - seg.start[0], seg.end[1] - seg.start[1]
        assert cx * dx + cy * dy == pytest.approx(0.0, abs=1e-9)

    def test_bends_outward(self):
        offset = SideOffset(curvature=1.0)
        anchors = np.array(_anchor_list(offset, Side.RIGHT))
        centroid = anchors.mean(axis=0)
        for seg in contour_segments(offset, Side.RIGHT):
            mid = (np.array(seg.start) + np.array(seg.end)) / 2
            assert np.linalg.norm(np.array(seg.control) - centroid) > np.linalg.norm(mid - centroid)

    def test_idempotent(self):
        offset = SideOffset(width=140.0, arch_height=30.0, curvature=0.8)
        assert contour_segments(offset, Side.LEFT) == contour_segments(offset, Side.LEFT)

    def test_mirror_symmetry(self):
        offset = SideOffset(curvature=0.7, bottom_arch=5.0)
        left = flatten(contour_segments(offset, Side.LEFT))
        right = flatten(contour_segments(offset, Side.RIGHT))
        np.testing.assert_allclose(left, right * np.array([-1.0, 1.0]), atol=1e-9)


class TestFlatten:

    def test_polyline_contains_anchors(self):
        offset = SideOffset(curvature=0.6)
        pts = flatten(contour_segments(offset, Side.RIGHT), steps=8)
        assert pts.shape == (40, 2)
        for i, anchor in enumerate(_anchor_list(offset, Side.RIGHT)):
            np.testing.assert_allclose(pts[i * 8], anchor)

    def test_straight_polyline_is_anchors(self):
        offset = SideOffset(curvature=0.0)
        pts = flatten(contour_segments(offset, Side.LEFT), steps=8)
        np.testing.assert_allclose(pts, np.array(_anchor_list(offset, Side.LEFT)))

    def test_build_contour_from_anchors(self):
        anchors = side_anchors(SideOffset(), Side.RIGHT)
        assert build_contour(anchors, 0.0)[0] == LineSegment(anchors.top_start, anchors.top_arch)


class TestSideContour:

    def test_screen_contour_starts_at_screen_anchor(self, flat_config, unit_viewport):
        c = set_side_offset(flat_config, Side.LEFT, x=12.0, rotation=15.0, scale=1.3)
        pts = side_contour(c, Side.LEFT, unit_viewport, steps=6)
        a = screen_anchors(c, Side.LEFT, unit_viewport)
        assert pts.shape == (30, 2)
        np.testing.assert_allclose(pts[0], a.top_start)
        np.testing.assert_allclose(pts[12], a.tail)
