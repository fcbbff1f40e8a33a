"""
config.py
=========
Centralized configuration and CLI argument parsing for BrowMap.

This module defines default values and exposes a function `parse_args()` that
returns a populated namespace. The rest of the app should import from here to
avoid scattering configuration across modules.

Key groups:
- Camera & window: capture size, device index, snapshot/export locations.
- Overlay defaults: initial transform and mold shape, display flags, palette.
- Policy: clamp minimums, hit radius, curve constants and gesture policies.
  These values diverged across revisions of the tool, so they are named and
  overridable instead of being hardcoded where they are used.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, replace


COLORS = (
    "#ffff00",
    "#ffffff",
    "#00ff00",
    "#ff00ff",
    "#00ffff",
    "#ff4400",
)

PINCH_RELEASE_END = "end"
PINCH_RELEASE_PAN = "pan"


@dataclass
class Defaults:
    # Camera & window
    camera_width: int = 1280
    camera_height: int = 720
    view_box: float = 500.0  # overlay units fitted to the shorter frame side
    panel_width: int = 320  # reserved help panel on the right edge
    config_path: str = os.path.join(os.path.expanduser("~"), ".brow_map", "config.json")
    export_dir: str = "."

    # Global transform
    pos_x: float = 0.0
    pos_y: float = -60.0
    scale: float = 1.1
    rotation: float = 0.0

    # Mold shape
    width: float = 120.0
    arch_height: float = 22.0
    bottom_arch: float = 0.0
    thickness: float = 10.0
    curvature: float = 0.6
    spacing: float = 50.0

    # Display
    show_guides: bool = True
    show_visagism_grid: bool = True
    opacity: float = 0.8
    color: str = COLORS[0]
    mirror: bool = True
    handle_size: float = 6.0


@dataclass(frozen=True)
class Policy:
    # Clamps
    scale_min: float = 0.2
    scale_max: float = 5.0
    min_width: float = 30.0
    min_thickness: float = 1.0
    min_bottom_arch: float = -30.0
    opacity_min: float = 0.05
    opacity_max: float = 1.0
    handle_size_min: float = 2.0
    handle_size_max: float = 16.0

    # Anchors & path
    arch_ratio: float = 0.618  # golden-ratio position of the arch peak
    tail_drop: float = 0.3  # tail height as a fraction of arch height
    bottom_arch_ratio: float = 0.95
    curve_threshold: float = 0.05
    curve_bend: float = 0.12

    # Gestures
    hit_radius: float = 42.0
    flip_pan_x_when_mirrored: bool = False
    pinch_release: str = PINCH_RELEASE_END
    sync_transform_to_sides: bool = False


DEFAULT_POLICY = Policy()


def add_args(parser: argparse.ArgumentParser, d: Defaults) -> None:
    # Camera and window
    parser.add_argument("--camera", type=int, default=0, help="Camera index (0,1,2,...) to open")
    parser.add_argument("--width", type=int, default=d.camera_width, help="Camera capture width")
    parser.add_argument("--height", type=int, default=d.camera_height, help="Camera capture height")
    parser.add_argument("--list_cameras", action="store_true", help="List available camera indices and exit")
    parser.add_argument("--probe", type=int, default=6, help="When listing cameras, probe indices [0..N-1]")
    parser.add_argument("--config_path", default=d.config_path, help="JSON snapshot loaded at start and saved on exit")
    parser.add_argument("--export_dir", default=d.export_dir, help="Directory for exported snapshot images")
    parser.add_argument("--no_autosave", action="store_true", help="Do not save the configuration on exit")

    # Policy
    p = DEFAULT_POLICY
    parser.add_argument("--hit_radius", type=float, default=p.hit_radius, help="Handle hit radius in screen pixels")
    parser.add_argument("--min_width", type=float, default=p.min_width, help="Minimum mold width")
    parser.add_argument("--min_thickness", type=float, default=p.min_thickness, help="Minimum mold thickness")
    parser.add_argument("--tail_drop", type=float, default=p.tail_drop, help="Tail height as a fraction of arch height (0.1-0.4)")
    parser.add_argument("--curve_bend", type=float, default=p.curve_bend, help="Control point offset per unit of curvature, relative to chord length")
    parser.add_argument("--flip_pan", action="store_true", help="Flip horizontal pan direction while mirror mode is on")
    parser.add_argument("--pinch_release", choices=[PINCH_RELEASE_END, PINCH_RELEASE_PAN], default=p.pinch_release,
                        help="What happens when one finger lifts during a pinch: end the gesture or resume panning")
    parser.add_argument("--sync_sides", action="store_true", help="Mirror transform edits made in 'both' mode into each side")

    # Debug
    parser.add_argument("--log_level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")


def policy_from_args(args: argparse.Namespace) -> Policy:
    return replace(
        DEFAULT_POLICY,
        hit_radius=args.hit_radius,
        min_width=args.min_width,
        min_thickness=args.min_thickness,
        tail_drop=min(0.4, max(0.1, args.tail_drop)),
        curve_bend=args.curve_bend,
        flip_pan_x_when_mirrored=args.flip_pan,
        pinch_release=args.pinch_release,
        sync_transform_to_sides=args.sync_sides,
    )


def parse_args(argv=None) -> argparse.Namespace:
    d = Defaults()
    parser = argparse.ArgumentParser(description="BrowMap eyebrow mapping overlay")
    add_args(parser, d)
    args = parser.parse_args(argv)
    return args
