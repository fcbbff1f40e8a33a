"""
hittest.py
==========
Handle hit-testing. Each handle is bound to one anchor of one side:

    pos -> top_start, thickness -> bottom_start, arch -> top_arch,
    bottom_arch -> bottom_arch, width -> tail

Sides are scanned left then right and handles in the order above; the first
handle within the radius wins, even if a later one is closer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .anchors import Point, Viewport, screen_anchors
from .config import DEFAULT_POLICY, Policy
from .model import OverlayConfig, Side


class HandleType(Enum):
    POS = "pos"
    THICKNESS = "thickness"
    ARCH = "arch"
    BOTTOM_ARCH = "bottomArch"
    WIDTH = "width"


HANDLE_ORDER = (HandleType.POS, HandleType.THICKNESS, HandleType.ARCH, HandleType.BOTTOM_ARCH, HandleType.WIDTH)
SIDE_ORDER = (Side.LEFT, Side.RIGHT)

HANDLE_ANCHOR = {
    HandleType.POS: "top_start",
    HandleType.THICKNESS: "bottom_start",
    HandleType.ARCH: "top_arch",
    HandleType.BOTTOM_ARCH: "bottom_arch",
    HandleType.WIDTH: "tail",
}


@dataclass(frozen=True)
class ActiveHandle:
    side: Side
    type: HandleType


def handle_positions(config: OverlayConfig, viewport: Viewport,
                     policy: Policy = DEFAULT_POLICY) -> List[Tuple[ActiveHandle, Point]]:
    """Screen position of every handle, in hit-test order."""
    out = []
    for side in SIDE_ORDER:
        anchors = screen_anchors(config, side, viewport, policy)
        for htype in HANDLE_ORDER:
            out.append((ActiveHandle(side, htype), getattr(anchors, HANDLE_ANCHOR[htype])))
    return out


def hit_test(point: Point, config: OverlayConfig, viewport: Viewport, radius: float | None = None,
             policy: Policy = DEFAULT_POLICY) -> Optional[ActiveHandle]:
    if not config.show_guides:
        return None
    r = policy.hit_radius if radius is None else radius
    px, py = point
    for handle, (hx, hy) in handle_positions(config, viewport, policy):
        if math.hypot(hx - px, hy - py) < r:
            return handle
    return None
