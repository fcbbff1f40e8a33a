"""
grid.py
=======
Visagism construction grid: reference lines that follow both molds (center
axis, start and arch verticals, symmetry horizontals, the crossed start-to-arch
mapping and the tail "V"). Lines are built in overlay space from each side's
anchors and moved to the screen with the global transform only, so the grid
stays level with the face when a single side is rotated.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List

from .anchors import Anchors, Point, Viewport, global_matrix, side_anchors, side_local_matrix, transform_points
from .config import DEFAULT_POLICY, Policy
from .model import OverlayConfig, Side

AXIS_HALF_HEIGHT = 300.0
VERTICAL_HALF_HEIGHT = 250.0
HORIZONTAL_HALF_WIDTH = 200.0
TAIL_ORIGIN_Y = 200.0


@dataclass(frozen=True)
class GridLine:
    start: Point
    end: Point
    dashed: bool = False
    weight: float = 0.3


def _overlay_anchors(config: OverlayConfig, side: Side, policy: Policy) -> Anchors:
    local = side_anchors(config.offset(side), side, policy)
    pts = transform_points(side_local_matrix(config, side), local.as_array())
    return Anchors(*(tuple(float(v) for v in p) for p in pts))


def grid_lines(config: OverlayConfig, policy: Policy = DEFAULT_POLICY) -> List[GridLine]:
    """Grid in overlay space."""
    lt = _overlay_anchors(config, Side.LEFT, policy)
    rt = _overlay_anchors(config, Side.RIGHT, policy)
    w = HORIZONTAL_HALF_WIDTH
    v = VERTICAL_HALF_HEIGHT
    return [
        GridLine((0.0, -AXIS_HALF_HEIGHT), (0.0, AXIS_HALF_HEIGHT), weight=0.8),
        # start verticals
        GridLine((lt.top_start[0], -v), (lt.top_start[0], v)),
        GridLine((rt.top_start[0], -v), (rt.top_start[0], v)),
        # arch verticals
        GridLine((lt.top_arch[0], -v), (lt.top_arch[0], v), dashed=True),
        GridLine((rt.top_arch[0], -v), (rt.top_arch[0], v), dashed=True),
        # symmetry horizontals
        GridLine((-w, lt.top_start[1]), (w, rt.top_start[1])),
        GridLine((-w, lt.bottom_start[1]), (w, rt.bottom_start[1])),
        GridLine((-w, lt.top_arch[1]), (w, rt.top_arch[1])),
        # crossed mapping
        GridLine(lt.top_start, (rt.top_start[0], rt.top_arch[1])),
        GridLine(rt.top_start, (lt.top_start[0], lt.top_arch[1])),
        # tail V
        GridLine((0.0, TAIL_ORIGIN_Y), lt.tail),
        GridLine((0.0, TAIL_ORIGIN_Y), rt.tail),
        GridLine(lt.top_start, rt.top_start, weight=1.0),
    ]


def screen_grid_lines(config: OverlayConfig, viewport: Viewport, policy: Policy = DEFAULT_POLICY) -> List[GridLine]:
    m = global_matrix(config, viewport)
    out = []
    for line in grid_lines(config, policy):
        a, b = transform_points(m, [line.start, line.end])
        out.append(replace(line, start=(float(a[0]), float(a[1])), end=(float(b[0]), float(b[1]))))
    return out
