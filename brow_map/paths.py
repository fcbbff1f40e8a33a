"""
paths.py
========
Closed mold contour through the five anchors:

    top_start -> top_arch -> tail -> bottom_arch -> bottom_start -> top_start

Below the curvature threshold every edge is a straight line. Above it every
edge becomes a quadratic segment whose single control point sits on the chord's
perpendicular bisector, pushed away from the anchor centroid by
`curvature * curve_bend * chord length`. Anchors are always segment endpoints,
so curvature bends the path between them and never moves them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Union

import numpy as np

from .anchors import Anchors, Point, Viewport, side_anchors, side_matrix, transform_points
from .config import DEFAULT_POLICY, Policy
from .model import OverlayConfig, Side, SideOffset


@dataclass(frozen=True)
class LineSegment:
    start: Point
    end: Point


@dataclass(frozen=True)
class QuadSegment:
    start: Point
    control: Point
    end: Point

    def point_at(self, t: float) -> Point:
        u = 1.0 - t
        a, b, c = u * u, 2.0 * u * t, t * t
        return (
            a * self.start[0] + b * self.control[0] + c * self.end[0],
            a * self.start[1] + b * self.control[1] + c * self.end[1],
        )


Segment = Union[LineSegment, QuadSegment]


def _bent(start: Point, end: Point, centroid: Point, amount: float) -> Segment:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length <= 1e-9:
        return LineSegment(start, end)
    mx = (start[0] + end[0]) / 2.0
    my = (start[1] + end[1]) / 2.0
    nx, ny = -dy / length, dx / length
    # outward = away from the centroid
    if nx * (mx - centroid[0]) + ny * (my - centroid[1]) < 0:
        nx, ny = -nx, -ny
    k = amount * length
    return QuadSegment(start, (mx + nx * k, my + ny * k), end)


def build_contour(anchors: Anchors, curvature: float, policy: Policy = DEFAULT_POLICY) -> List[Segment]:
    pts = list(anchors)
    pairs = [(pts[i], pts[(i + 1) % len(pts)]) for i in range(len(pts))]
    if curvature < policy.curve_threshold:
        return [LineSegment(a, b) for a, b in pairs]
    cx = sum(p[0] for p in pts) / len(pts)
    cy = sum(p[1] for p in pts) / len(pts)
    amount = curvature * policy.curve_bend
    return [_bent(a, b, (cx, cy), amount) for a, b in pairs]


def contour_segments(offset: SideOffset, side: Side, policy: Policy = DEFAULT_POLICY) -> List[Segment]:
    """Local-space contour of one side."""
    return build_contour(side_anchors(offset, side, policy), offset.curvature, policy)


def flatten(segments: List[Segment], steps: int = 12) -> np.ndarray:
    """Sample a closed contour into an (N, 2) polyline; the closing edge is implied."""
    steps = max(1, int(steps))
    out = []
    for seg in segments:
        if isinstance(seg, LineSegment):
            out.append(seg.start)
            continue
        for i in range(steps):
            out.append(seg.point_at(i / steps))
    return np.array(out, dtype=float).reshape(-1, 2)


def side_contour(config: OverlayConfig, side: Side, viewport: Viewport, policy: Policy = DEFAULT_POLICY,
                 steps: int = 12) -> np.ndarray:
    """Screen-space polyline of one side's mold."""
    local = flatten(contour_segments(config.offset(side), side, policy), steps)
    return transform_points(side_matrix(config, side, viewport), local)
