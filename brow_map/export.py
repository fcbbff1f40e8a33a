"""
export.py
=========
One-shot snapshot export: the current camera frame with both molds drawn on
top, written as a PNG.

The mirror flag applies to the video layer only. Contours are computed in
on-screen orientation already, so they are drawn after the flip and never
flipped themselves. Callers pass the frame and config they captured together,
which keeps the pairing consistent while the camera thread keeps producing.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

import cv2
import numpy as np

from .anchors import Viewport
from .config import DEFAULT_POLICY, Policy
from .model import OverlayConfig
from .visual import draw_overlay

log = logging.getLogger(__name__)


def video_layer(frame: np.ndarray, mirror: bool) -> np.ndarray:
    return cv2.flip(frame, 1) if mirror else frame.copy()


def compose_snapshot(frame: np.ndarray, config: OverlayConfig, viewport: Viewport | None = None,
                     policy: Policy = DEFAULT_POLICY) -> np.ndarray:
    img = video_layer(frame, config.mirror)
    if viewport is None:
        h, w = img.shape[:2]
        viewport = Viewport.for_frame(w, h)
    return draw_overlay(img, config, viewport, policy=policy, handles=False)


def snapshot_path(directory: str, now: float | None = None) -> str:
    stamp = time.strftime("%Y%m%d_%H%M%S", time.localtime(now))
    return os.path.join(directory, f"brow_map_{stamp}.png")


def export_snapshot(frame: np.ndarray, config: OverlayConfig, directory: str, viewport: Viewport | None = None,
                    policy: Policy = DEFAULT_POLICY) -> Optional[str]:
    """Compose and write a snapshot; returns the file path, or None if writing failed."""
    img = compose_snapshot(frame, config, viewport, policy)
    path = snapshot_path(directory)
    try:
        os.makedirs(directory, exist_ok=True)
        ok = cv2.imwrite(path, img)
    except (OSError, cv2.error) as exc:
        log.error("snapshot export to %s failed: %s", path, exc)
        return None
    if not ok:
        log.error("snapshot export to %s failed", path)
        return None
    log.info("snapshot written to %s", path)
    return path
