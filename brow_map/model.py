"""
model.py
========
Geometry model of the overlay: the configuration types, the pure update
operations that clamp every field into its domain, and `GeometryModel`, the
single owner of the current configuration.

Every update returns a new frozen `OverlayConfig`; nothing here mutates a
config in place. `GeometryModel` swaps its `config` reference and bumps
`revision` only when an update actually changed something, so a host can
redraw on model mutation instead of on every raw input sample.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Callable, Dict, Optional

from .config import COLORS, DEFAULT_POLICY, Defaults, Policy

log = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


class Side(Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def dir(self) -> int:
        return -1 if self is Side.LEFT else 1


class TargetSide(Enum):
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"

    @property
    def side(self) -> Optional[Side]:
        if self is TargetSide.BOTH:
            return None
        return Side(self.value)


@dataclass(frozen=True)
class SideOffset:
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0
    width: float = Defaults.width
    arch_height: float = Defaults.arch_height
    bottom_arch: float = Defaults.bottom_arch
    thickness: float = Defaults.thickness
    curvature: float = Defaults.curvature


@dataclass(frozen=True)
class OverlayConfig:
    # Global transform
    pos_x: float = Defaults.pos_x
    pos_y: float = Defaults.pos_y
    scale: float = Defaults.scale
    rotation: float = Defaults.rotation
    # Default shape, copied into a side when edited in 'both' mode
    width: float = Defaults.width
    arch_height: float = Defaults.arch_height
    bottom_arch: float = Defaults.bottom_arch
    thickness: float = Defaults.thickness
    curvature: float = Defaults.curvature
    spacing: float = Defaults.spacing
    left_offset: SideOffset = field(default_factory=SideOffset)
    right_offset: SideOffset = field(default_factory=SideOffset)
    target_side: TargetSide = TargetSide.BOTH
    # Display
    show_guides: bool = Defaults.show_guides
    show_visagism_grid: bool = Defaults.show_visagism_grid
    opacity: float = Defaults.opacity
    color: str = Defaults.color
    handle_size: float = Defaults.handle_size
    mirror: bool = Defaults.mirror

    def offset(self, side: Side) -> SideOffset:
        return self.left_offset if side is Side.LEFT else self.right_offset

    @property
    def active_side(self) -> Optional[Side]:
        return self.target_side.side


SHAPE_FIELDS = ("width", "arch_height", "bottom_arch", "thickness", "curvature")
_OFFSET_ATTR = {Side.LEFT: "left_offset", Side.RIGHT: "right_offset"}
_OFFSET_ATTRS = frozenset(_OFFSET_ATTR.values())
_SIDE_NUMERIC = frozenset(f.name for f in fields(SideOffset))
_CONFIG_NUMERIC = frozenset(
    ("pos_x", "pos_y", "scale", "rotation", "spacing", "opacity", "handle_size") + SHAPE_FIELDS
)
_CONFIG_FLAGS = frozenset(("show_guides", "show_visagism_grid", "mirror"))


def is_color(value) -> bool:
    return isinstance(value, str) and _COLOR_RE.match(value) is not None


def _clamp(value: float, lo: float | None = None, hi: float | None = None) -> float:
    if lo is not None and value < lo:
        value = lo
    if hi is not None and value > hi:
        value = hi
    return value


def _number(value, fallback: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        log.debug("non-numeric value %r replaced by %r", value, fallback)
        return fallback
    if not math.isfinite(v):
        log.debug("non-finite value %r replaced by %r", value, fallback)
        return fallback
    return v


def _coerce_target(value, fallback: TargetSide) -> TargetSide:
    if isinstance(value, TargetSide):
        return value
    try:
        return TargetSide(value)
    except ValueError:
        log.debug("unknown target side %r ignored", value)
        return fallback


def _sanitize(current, partial: dict) -> dict:
    """Coerce incoming values against the current ones (bad input keeps the old value).

    Keys that are not fields of `current` are dropped.
    """
    if isinstance(current, SideOffset):
        clean = {}
        for key, value in partial.items():
            if key in _SIDE_NUMERIC:
                clean[key] = _number(value, getattr(current, key))
            else:
                log.debug("unknown side offset field %r ignored", key)
        return clean
    clean = {}
    for key, value in partial.items():
        if key in _CONFIG_NUMERIC:
            clean[key] = _number(value, getattr(current, key))
        elif key in _CONFIG_FLAGS:
            clean[key] = bool(value)
        elif key == "target_side":
            clean[key] = _coerce_target(value, current.target_side)
        elif key == "color":
            clean[key] = value.lower() if is_color(value) else current.color
        elif key in _OFFSET_ATTRS and isinstance(value, SideOffset):
            clean[key] = value
        else:
            log.debug("unknown config field %r ignored", key)
    return clean


def clamp_side(offset: SideOffset, policy: Policy = DEFAULT_POLICY) -> SideOffset:
    return replace(
        offset,
        scale=_clamp(offset.scale, policy.scale_min, policy.scale_max),
        width=_clamp(offset.width, policy.min_width),
        arch_height=_clamp(offset.arch_height, 0.0),
        bottom_arch=_clamp(offset.bottom_arch, policy.min_bottom_arch),
        thickness=_clamp(offset.thickness, policy.min_thickness),
        curvature=_clamp(offset.curvature, 0.0),
    )


def normalize(config: OverlayConfig, policy: Policy = DEFAULT_POLICY) -> OverlayConfig:
    """Clamp every field of `config` (including both side offsets) into its domain."""
    return replace(
        config,
        scale=_clamp(config.scale, policy.scale_min, policy.scale_max),
        width=_clamp(config.width, policy.min_width),
        arch_height=_clamp(config.arch_height, 0.0),
        bottom_arch=_clamp(config.bottom_arch, policy.min_bottom_arch),
        thickness=_clamp(config.thickness, policy.min_thickness),
        curvature=_clamp(config.curvature, 0.0),
        spacing=_clamp(config.spacing, 0.0),
        opacity=_clamp(config.opacity, policy.opacity_min, policy.opacity_max),
        handle_size=_clamp(config.handle_size, policy.handle_size_min, policy.handle_size_max),
        left_offset=clamp_side(config.left_offset, policy),
        right_offset=clamp_side(config.right_offset, policy),
    )


def default_config(d: Defaults | None = None) -> OverlayConfig:
    d = d or Defaults()
    shape = dict(
        width=d.width,
        arch_height=d.arch_height,
        bottom_arch=d.bottom_arch,
        thickness=d.thickness,
        curvature=d.curvature,
    )
    return OverlayConfig(
        pos_x=d.pos_x,
        pos_y=d.pos_y,
        scale=d.scale,
        rotation=d.rotation,
        spacing=d.spacing,
        left_offset=SideOffset(**shape),
        right_offset=SideOffset(**shape),
        target_side=TargetSide.BOTH,
        show_guides=d.show_guides,
        show_visagism_grid=d.show_visagism_grid,
        opacity=d.opacity,
        color=d.color,
        handle_size=d.handle_size,
        mirror=d.mirror,
        **shape,
    )


# ---------------------------------------------------------------------------
# Pure update operations
# ---------------------------------------------------------------------------

def set_global(config: OverlayConfig, policy: Policy = DEFAULT_POLICY, **partial) -> OverlayConfig:
    updated = replace(config, **_sanitize(config, partial))
    return normalize(updated, policy)


def set_side_offset(config: OverlayConfig, side: Side, policy: Policy = DEFAULT_POLICY, **partial) -> OverlayConfig:
    current = config.offset(side)
    offset = clamp_side(replace(current, **_sanitize(current, partial)), policy)
    return replace(config, **{_OFFSET_ATTR[side]: offset})


def set_target_side(config: OverlayConfig, side) -> OverlayConfig:
    return replace(config, target_side=_coerce_target(side, config.target_side))


def reset_to_default() -> OverlayConfig:
    return default_config()


# ---------------------------------------------------------------------------
# Discrete field edits
# ---------------------------------------------------------------------------

class FieldId(Enum):
    POS_X = "posX"
    POS_Y = "posY"
    SCALE = "scale"
    ROTATION = "rotation"
    WIDTH = "width"
    ARCH_HEIGHT = "archHeight"
    BOTTOM_ARCH = "bottomArch"
    THICKNESS = "thickness"
    CURVATURE = "curvature"
    SPACING = "spacing"
    OPACITY = "opacity"
    HANDLE_SIZE = "handleSize"


GlobalUpdate = Callable[[OverlayConfig, float, Policy], OverlayConfig]
SideUpdate = Callable[[OverlayConfig, Side, float, Policy], OverlayConfig]


@dataclass(frozen=True)
class FieldRoute:
    config_attr: str
    side_attr: Optional[str]
    shape: bool
    update_global: GlobalUpdate
    update_side: Optional[SideUpdate]


def _global_update(attr: str) -> GlobalUpdate:
    def update(config, value, policy):
        return set_global(config, policy, **{attr: value})
    return update


def _side_update(attr: str) -> SideUpdate:
    def update(config, side, value, policy):
        return set_side_offset(config, side, policy, **{attr: value})
    return update


def _route(config_attr: str, side_attr: Optional[str] = None, shape: bool = False) -> FieldRoute:
    return FieldRoute(
        config_attr=config_attr,
        side_attr=side_attr,
        shape=shape,
        update_global=_global_update(config_attr),
        update_side=_side_update(side_attr) if side_attr else None,
    )


FIELD_ROUTES: Dict[FieldId, FieldRoute] = {
    FieldId.POS_X: _route("pos_x", "x"),
    FieldId.POS_Y: _route("pos_y", "y"),
    FieldId.SCALE: _route("scale", "scale"),
    FieldId.ROTATION: _route("rotation", "rotation"),
    FieldId.WIDTH: _route("width", "width", shape=True),
    FieldId.ARCH_HEIGHT: _route("arch_height", "arch_height", shape=True),
    FieldId.BOTTOM_ARCH: _route("bottom_arch", "bottom_arch", shape=True),
    FieldId.THICKNESS: _route("thickness", "thickness", shape=True),
    FieldId.CURVATURE: _route("curvature", "curvature", shape=True),
    FieldId.SPACING: _route("spacing"),
    FieldId.OPACITY: _route("opacity"),
    FieldId.HANDLE_SIZE: _route("handle_size"),
}


def apply_field(config: OverlayConfig, field_id: FieldId, value: float, policy: Policy = DEFAULT_POLICY) -> OverlayConfig:
    """Write one field, routed by `config.target_side`.

    In 'both' mode transform fields land on the global transform (and in both
    sides when `policy.sync_transform_to_sides`), shape fields land on the
    default shape and both sides. With a single side targeted, side fields
    only touch that side's offset. Config-wide fields ignore the target.
    """
    route = FIELD_ROUTES[field_id]
    if route.update_side is None:
        return route.update_global(config, value, policy)
    side = config.active_side
    if side is not None:
        return route.update_side(config, side, value, policy)
    config = route.update_global(config, value, policy)
    if route.shape or policy.sync_transform_to_sides:
        for s in Side:
            config = route.update_side(config, s, value, policy)
    return config


def display_value(config: OverlayConfig, field_id: FieldId) -> float:
    route = FIELD_ROUTES[field_id]
    side = config.active_side
    if side is not None and route.side_attr:
        return getattr(config.offset(side), route.side_attr)
    return getattr(config, route.config_attr)


# ---------------------------------------------------------------------------
# Owner
# ---------------------------------------------------------------------------

class GeometryModel:
    """Holds the one live `OverlayConfig`; every mutation goes through here."""

    def __init__(self, config: OverlayConfig | None = None, policy: Policy = DEFAULT_POLICY):
        self.policy = policy
        self.config = normalize(config if config is not None else default_config(), policy)
        self.revision = 0

    def _commit(self, config: OverlayConfig) -> bool:
        if config == self.config:
            return False
        self.config = config
        self.revision += 1
        return True

    def set_global(self, **partial) -> bool:
        return self._commit(set_global(self.config, self.policy, **partial))

    def set_side_offset(self, side: Side, **partial) -> bool:
        return self._commit(set_side_offset(self.config, side, self.policy, **partial))

    def set_target_side(self, side) -> bool:
        return self._commit(set_target_side(self.config, side))

    def apply_field(self, field_id: FieldId, value: float) -> bool:
        return self._commit(apply_field(self.config, field_id, value, self.policy))

    def nudge_field(self, field_id: FieldId, delta: float) -> bool:
        return self.apply_field(field_id, display_value(self.config, field_id) + delta)

    def reset_to_default(self) -> bool:
        return self._commit(normalize(reset_to_default(), self.policy))

    def toggle(self, flag: str) -> bool:
        if flag not in _CONFIG_FLAGS:
            raise ValueError(f"not a display flag: {flag}")
        return self.set_global(**{flag: not getattr(self.config, flag)})

    def cycle_color(self) -> bool:
        try:
            idx = COLORS.index(self.config.color)
        except ValueError:
            idx = -1
        return self.set_global(color=COLORS[(idx + 1) % len(COLORS)])
