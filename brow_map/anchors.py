"""
anchors.py
==========
Anchor point math: the five named control points of a mold in its side's local
space, and the homogeneous transforms that carry them onto the screen.

Local space has its origin at the inner start of the brow, x growing outward
(negative for the left side) and y growing downward. Screen placement is

    viewport center + (posX, posY) -> global rotation/scale -> side translate
    (dir * spacing / 2 + x, y) -> side rotation -> side scale

which matches how the overlay is rendered and hit-tested.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from .config import DEFAULT_POLICY, Defaults, Policy
from .model import OverlayConfig, Side, SideOffset

Point = Tuple[float, float]

ANCHOR_NAMES = ("top_start", "top_arch", "tail", "bottom_arch", "bottom_start")


@dataclass(frozen=True)
class Anchors:
    top_start: Point
    top_arch: Point
    tail: Point
    bottom_arch: Point
    bottom_start: Point

    def __iter__(self) -> Iterator[Point]:
        return (getattr(self, name) for name in ANCHOR_NAMES)

    def as_array(self) -> np.ndarray:
        return np.array(list(self), dtype=float)


def side_anchors(offset: SideOffset, side: Side, policy: Policy = DEFAULT_POLICY) -> Anchors:
    d = side.dir
    w = offset.width
    h = offset.arch_height
    t = offset.thickness
    return Anchors(
        top_start=(0.0, 0.0),
        top_arch=(w * policy.arch_ratio * d, -h),
        tail=(w * d, h * policy.tail_drop),
        bottom_arch=(w * policy.arch_ratio * policy.bottom_arch_ratio * d, -h + t + offset.bottom_arch),
        bottom_start=(0.0, t),
    )


@dataclass(frozen=True)
class Viewport:
    """Where overlay space sits on the render surface."""

    cx: float = 0.0
    cy: float = 0.0
    zoom: float = 1.0  # pixels per overlay unit

    @classmethod
    def for_frame(cls, width: int, height: int, view_box: float = Defaults.view_box) -> "Viewport":
        return cls(width / 2.0, height / 2.0, min(width, height) / view_box)


def translation(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])


def rotation(degrees: float) -> np.ndarray:
    r = math.radians(degrees)
    c, s = math.cos(r), math.sin(r)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def scaling(s: float) -> np.ndarray:
    return np.array([[s, 0.0, 0.0], [0.0, s, 0.0], [0.0, 0.0, 1.0]])


def global_matrix(config: OverlayConfig, viewport: Viewport) -> np.ndarray:
    """Overlay space -> screen."""
    return (
        translation(viewport.cx + config.pos_x, viewport.cy + config.pos_y)
        @ scaling(viewport.zoom)
        @ rotation(config.rotation)
        @ scaling(config.scale)
    )


def side_local_matrix(config: OverlayConfig, side: Side) -> np.ndarray:
    """Side local space -> overlay space."""
    off = config.offset(side)
    start_x = side.dir * config.spacing / 2.0
    return translation(start_x + off.x, off.y) @ rotation(off.rotation) @ scaling(off.scale)


def side_matrix(config: OverlayConfig, side: Side, viewport: Viewport) -> np.ndarray:
    return global_matrix(config, viewport) @ side_local_matrix(config, side)


def transform_points(matrix: np.ndarray, points) -> np.ndarray:
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    homo = np.hstack([pts, np.ones((len(pts), 1))])
    return (homo @ matrix.T)[:, :2]


def screen_anchors(config: OverlayConfig, side: Side, viewport: Viewport, policy: Policy = DEFAULT_POLICY) -> Anchors:
    local = side_anchors(config.offset(side), side, policy)
    pts = transform_points(side_matrix(config, side, viewport), local.as_array())
    return Anchors(*(tuple(float(v) for v in p) for p in pts))
