"""
visual.py
=========
OpenCV drawing for the overlay: construction grid, both molds (the targeted
side drawn heavier), control handles (the side not being edited dimmed), and
the status/help text.

Everything is drawn onto a copy of the frame and blended back with the
configured opacity, so the camera image stays visible under the guides.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from .anchors import Point, Viewport
from .config import DEFAULT_POLICY, Policy
from .grid import screen_grid_lines
from .hittest import ActiveHandle, handle_positions
from .model import OverlayConfig, Side, TargetSide
from .paths import side_contour

SHIFT = 4  # fixed-point bits for sub-pixel cv2 drawing
_ONE = 1 << SHIFT

BGR = Tuple[int, int, int]


def hex_to_bgr(color: str) -> BGR:
    s = color.lstrip("#")
    if len(s) != 6:
        return (0, 255, 255)
    r, g, b = int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)
    return (b, g, r)


def _fixed(p: Point) -> Tuple[int, int]:
    return (int(round(p[0] * _ONE)), int(round(p[1] * _ONE)))


def _dim(color: BGR, factor: float) -> BGR:
    return tuple(int(c * factor) for c in color)


def _dashed_line(img, p0: Point, p1: Point, color: BGR, thickness: int, dash: float = 6.0) -> None:
    a = np.asarray(p0, dtype=float)
    b = np.asarray(p1, dtype=float)
    length = float(np.hypot(*(b - a)))
    if length <= 0:
        return
    n = max(1, int(length // dash))
    for i in range(0, n, 2):
        s = a + (b - a) * (i / n)
        e = a + (b - a) * (min(i + 1, n) / n)
        cv2.line(img, _fixed(s), _fixed(e), color, thickness, cv2.LINE_AA, SHIFT)


def _blend(frame, layer, alpha: float) -> None:
    cv2.addWeighted(layer, alpha, frame, 1.0 - alpha, 0.0, dst=frame)


def draw_grid(img, config: OverlayConfig, viewport: Viewport, policy: Policy = DEFAULT_POLICY) -> None:
    color = hex_to_bgr(config.color)
    for line in screen_grid_lines(config, viewport, policy):
        thickness = 2 if line.weight >= 0.8 else 1
        if line.dashed:
            _dashed_line(img, line.start, line.end, color, thickness)
        else:
            cv2.line(img, _fixed(line.start), _fixed(line.end), color, thickness, cv2.LINE_AA, SHIFT)


def draw_molds(img, config: OverlayConfig, viewport: Viewport, policy: Policy = DEFAULT_POLICY) -> None:
    color = hex_to_bgr(config.color)
    for side in (Side.LEFT, Side.RIGHT):
        pts = side_contour(config, side, viewport, policy)
        fixed = np.round(pts * _ONE).astype(np.int32).reshape(-1, 1, 2)
        thickness = 3 if config.active_side is side else 1
        cv2.polylines(img, [fixed], True, color, thickness, cv2.LINE_AA, SHIFT)


def draw_handles(img, config: OverlayConfig, viewport: Viewport, active: Optional[ActiveHandle] = None,
                 policy: Policy = DEFAULT_POLICY) -> None:
    color = hex_to_bgr(config.color)
    radius = max(1, int(round(config.handle_size * viewport.zoom * config.scale)))
    for handle, pos in handle_positions(config, viewport, policy):
        focused = config.target_side is TargetSide.BOTH or config.active_side is handle.side
        fill = color if focused else _dim(color, 0.2)
        center = _fixed(pos)
        cv2.circle(img, center, radius * _ONE, fill, -1, cv2.LINE_AA, SHIFT)
        cv2.circle(img, center, radius * _ONE, (0, 0, 0), 1, cv2.LINE_AA, SHIFT)
        if active is not None and handle == active:
            cv2.circle(img, center, (radius + 4) * _ONE, (255, 255, 255), 1, cv2.LINE_AA, SHIFT)


def draw_overlay(frame, config: OverlayConfig, viewport: Viewport, active: Optional[ActiveHandle] = None,
                 policy: Policy = DEFAULT_POLICY, handles: bool = True):
    """Draw grid, molds and (optionally) handles onto `frame` in place."""
    if config.show_visagism_grid:
        layer = frame.copy()
        draw_grid(layer, config, viewport, policy)
        _blend(frame, layer, config.opacity * 0.5)
    layer = frame.copy()
    draw_molds(layer, config, viewport, policy)
    if handles and config.show_guides:
        draw_handles(layer, config, viewport, active, policy)
    _blend(frame, layer, config.opacity)
    return frame


def draw_status(frame, info_lines: Iterable[str], origin: Tuple[int, int] = (10, 24)) -> None:
    x0, y0 = origin
    for i, txt in enumerate(info_lines):
        cv2.putText(frame, txt, (x0, y0 + i * 18), cv2.FONT_HERSHEY_SIMPLEX, 0.55, (0, 255, 0), 1, cv2.LINE_AA)


def draw_panel(frame, rect: Sequence[float], lines: Iterable[str]) -> None:
    """Darkened side panel listing the keyboard controls."""
    x0, y0, x1, y1 = (int(v) for v in rect)
    layer = frame.copy()
    cv2.rectangle(layer, (x0, y0), (x1, y1), (0, 0, 0), -1)
    _blend(frame, layer, 0.7)
    for i, txt in enumerate(lines):
        cv2.putText(frame, txt, (x0 + 12, y0 + 28 + i * 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                    (0, 191, 255), 1, cv2.LINE_AA)
