"""
snapshot.py
===========
JSON persistence for the overlay configuration.

Snapshots use camelCase keys (`posX`, `archHeight`, `leftOffset`,
`targetSide`, ...), the same layout the browser build of BrowMap keeps in
local storage, so either can read the other's file. Loading never fails: a
missing, unreadable or malformed file gives the built-in default configuration.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from dataclasses import replace
from typing import Any, Dict

from .config import DEFAULT_POLICY, Policy
from .model import OverlayConfig, SideOffset, TargetSide, default_config, is_color, normalize

log = logging.getLogger(__name__)

CONFIG_NUMBERS = {
    "posX": "pos_x",
    "posY": "pos_y",
    "scale": "scale",
    "rotation": "rotation",
    "width": "width",
    "archHeight": "arch_height",
    "bottomArch": "bottom_arch",
    "thickness": "thickness",
    "curvature": "curvature",
    "spacing": "spacing",
    "opacity": "opacity",
    "handleSize": "handle_size",
}
CONFIG_FLAGS = {
    "showGuides": "show_guides",
    "showVisagismGrid": "show_visagism_grid",
    "mirror": "mirror",
}
SIDE_NUMBERS = {
    "x": "x",
    "y": "y",
    "scale": "scale",
    "rotation": "rotation",
    "width": "width",
    "archHeight": "arch_height",
    "bottomArch": "bottom_arch",
    "thickness": "thickness",
    "curvature": "curvature",
}
OFFSETS = {"leftOffset": "left_offset", "rightOffset": "right_offset"}


class InvalidConfigSnapshot(ValueError):
    """Persisted data that cannot be turned into an OverlayConfig."""


def _side_to_dict(offset: SideOffset) -> Dict[str, Any]:
    return {key: getattr(offset, attr) for key, attr in SIDE_NUMBERS.items()}


def config_to_dict(config: OverlayConfig) -> Dict[str, Any]:
    data: Dict[str, Any] = {key: getattr(config, attr) for key, attr in CONFIG_NUMBERS.items()}
    data.update({key: getattr(config, attr) for key, attr in CONFIG_FLAGS.items()})
    data["color"] = config.color
    data["targetSide"] = config.target_side.value
    for key, attr in OFFSETS.items():
        data[key] = _side_to_dict(getattr(config, attr))
    return data


def _number(data: Dict[str, Any], key: str) -> float:
    value = data[key]
    # bool is an int subclass; a flag in a numeric slot is a corrupt snapshot
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfigSnapshot(f"{key} must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidConfigSnapshot(f"{key} is out of range") from None
    if not math.isfinite(number):
        raise InvalidConfigSnapshot(f"{key} must be finite")
    return number


def _side_from_dict(data: Any, base: SideOffset, key: str) -> SideOffset:
    if not isinstance(data, dict):
        raise InvalidConfigSnapshot(f"{key} must be an object")
    values = {attr: _number(data, k) for k, attr in SIDE_NUMBERS.items() if k in data}
    return replace(base, **values)


def config_from_dict(data: Any, base: OverlayConfig | None = None) -> OverlayConfig:
    """Build a config from a decoded snapshot; keys that are absent keep `base` values."""
    if not isinstance(data, dict):
        raise InvalidConfigSnapshot("snapshot must be a JSON object")
    base = base or default_config()
    values: Dict[str, Any] = {attr: _number(data, k) for k, attr in CONFIG_NUMBERS.items() if k in data}
    for key, attr in CONFIG_FLAGS.items():
        if key in data:
            if not isinstance(data[key], bool):
                raise InvalidConfigSnapshot(f"{key} must be true or false")
            values[attr] = data[key]
    if "color" in data:
        if not isinstance(data["color"], str):
            raise InvalidConfigSnapshot("color must be a string")
        values["color"] = data["color"]
    if "targetSide" in data:
        try:
            values["target_side"] = TargetSide(data["targetSide"])
        except ValueError:
            raise InvalidConfigSnapshot(f"unknown targetSide {data['targetSide']!r}") from None
    for key, attr in OFFSETS.items():
        if key in data:
            values[attr] = _side_from_dict(data[key], getattr(base, attr), key)
    return replace(base, **values)


def load_config(path: str, policy: Policy = DEFAULT_POLICY) -> OverlayConfig:
    if not os.path.exists(path):
        log.info("no saved configuration at %s, using defaults", path)
        return default_config()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        config = config_from_dict(data)
    except (OSError, ValueError, RecursionError) as exc:
        # json.JSONDecodeError and InvalidConfigSnapshot are both ValueErrors;
        # deeply nested input overflows the decoder instead
        log.warning("could not load configuration from %s (%s), using defaults", path, exc)
        return default_config()
    if not is_color(config.color):
        config = replace(config, color=default_config().color)
    return normalize(config, policy)


def save_config(config: OverlayConfig, path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".brow_map-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(config_to_dict(config), fh, indent=2)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise
    log.info("configuration saved to %s", path)


def clear_config(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
