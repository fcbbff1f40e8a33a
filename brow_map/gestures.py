"""
gestures.py
===========
Gesture state machine for pan, pinch-rotate and handle drags.

This module is pure logic. It takes contact events (start/move/end/cancel with
a contact id and a screen position) and turns them into `GeometryModel`
mutations. Transient state (contacts, last pointer position, pinch baseline,
bound handle) lives in a `GestureSession` owned by the machine, separate from
the model, so raw input samples never trigger a redraw by themselves.

States: IDLE, PAN, PINCH_ROTATE, HANDLE_DRAG.

- First contact: ignored as a whole gesture if it lands in a reserved UI
  region; otherwise a handle hit starts HANDLE_DRAG and a miss starts PAN.
- Second contact while panning: PINCH_ROTATE, with the distance, angle and the
  edited target's scale/rotation snapshotted.
- One of the two pinch contacts lifting: per `Policy.pinch_release`, either the
  gesture ends (IDLE until every contact lifts) or PAN resumes.
- No contacts left: IDLE from anywhere.

Events that make no sense in the current state are dropped (logged at DEBUG).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from .anchors import Point, Viewport
from .config import PINCH_RELEASE_PAN, Policy
from .hittest import ActiveHandle, HandleType, hit_test
from .model import GeometryModel, Side

log = logging.getLogger(__name__)

Rect = Tuple[float, float, float, float]  # x0, y0, x1, y1


class GestureMode(Enum):
    IDLE = "idle"
    PAN = "pan"
    PINCH_ROTATE = "pinch_rotate"
    HANDLE_DRAG = "handle_drag"


class ContactPhase(Enum):
    START = "start"
    MOVE = "move"
    END = "end"
    CANCEL = "cancel"


@dataclass(frozen=True)
class ContactEvent:
    phase: ContactPhase
    contact_id: int
    x: float
    y: float

    @property
    def pos(self) -> Point:
        return (self.x, self.y)


@dataclass
class GestureSession:
    mode: GestureMode = GestureMode.IDLE
    contacts: Dict[int, Point] = field(default_factory=dict)
    primary: Optional[int] = None
    secondary: Optional[int] = None
    last_pos: Optional[Point] = None
    # pinch baseline
    initial_distance: float = 0.0
    initial_angle: float = 0.0
    initial_scale: float = 1.0
    initial_rotation: float = 0.0
    pinch_target: Optional[Side] = None
    active_handle: Optional[ActiveHandle] = None
    # set when the current gesture was rejected or spent; cleared once all contacts lift
    suppressed: bool = False


def contact_distance(p1: Point, p2: Point) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def contact_angle(p1: Point, p2: Point) -> float:
    return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))


def _wrap_degrees(a: float) -> float:
    return (a + 180.0) % 360.0 - 180.0


def _in_rect(p: Point, r: Rect) -> bool:
    return r[0] <= p[0] <= r[2] and r[1] <= p[1] <= r[3]


class GestureMachine:
    def __init__(self, model: GeometryModel, viewport: Viewport | None = None, policy: Policy | None = None,
                 reserved_regions: Sequence[Rect] = ()):
        self.model = model
        self.viewport = viewport or Viewport()
        self.policy = policy or model.policy
        self.reserved_regions = list(reserved_regions)
        self.session = GestureSession()

    @property
    def mode(self) -> GestureMode:
        return self.session.mode

    @property
    def active_handle(self) -> Optional[ActiveHandle]:
        return self.session.active_handle

    def in_reserved_region(self, pos: Point) -> bool:
        return any(_in_rect(pos, r) for r in self.reserved_regions)

    def reset(self) -> None:
        """Abort whatever is in progress and forget every contact."""
        self.session = GestureSession()

    def handle(self, event: ContactEvent) -> GestureMode:
        if event.phase is ContactPhase.START:
            self._on_start(event.contact_id, event.pos)
        elif event.phase is ContactPhase.MOVE:
            self._on_move(event.contact_id, event.pos)
        else:
            self._on_end(event.contact_id)
        return self.session.mode

    # convenience wrappers for hosts that do not build events themselves
    def start(self, contact_id: int, x: float, y: float) -> GestureMode:
        return self.handle(ContactEvent(ContactPhase.START, contact_id, x, y))

    def move(self, contact_id: int, x: float, y: float) -> GestureMode:
        return self.handle(ContactEvent(ContactPhase.MOVE, contact_id, x, y))

    def end(self, contact_id: int, x: float = 0.0, y: float = 0.0) -> GestureMode:
        return self.handle(ContactEvent(ContactPhase.END, contact_id, x, y))

    # -- transitions --------------------------------------------------------

    def _on_start(self, cid: int, pos: Point) -> None:
        s = self.session
        if cid in s.contacts:
            log.debug("duplicate start for contact %s ignored", cid)
            return
        s.contacts[cid] = pos
        if s.suppressed:
            return
        if len(s.contacts) == 1 and s.mode is GestureMode.IDLE:
            self._begin(cid, pos)
        elif len(s.contacts) == 2 and s.mode is GestureMode.PAN:
            self._begin_pinch(cid)
        else:
            log.debug("extra contact %s ignored in %s", cid, s.mode.value)

    def _begin(self, cid: int, pos: Point) -> None:
        s = self.session
        if self.in_reserved_region(pos):
            log.debug("gesture starting at %s is inside a reserved region", pos)
            s.suppressed = True
            return
        s.primary = cid
        s.last_pos = pos
        handle = hit_test(pos, self.model.config, self.viewport, policy=self.policy)
        if handle is not None:
            s.mode = GestureMode.HANDLE_DRAG
            s.active_handle = handle
        else:
            s.mode = GestureMode.PAN

    def _begin_pinch(self, cid: int) -> None:
        s = self.session
        config = self.model.config
        p1, p2 = s.contacts[s.primary], s.contacts[cid]
        s.mode = GestureMode.PINCH_ROTATE
        s.secondary = cid
        s.initial_distance = contact_distance(p1, p2)
        s.initial_angle = contact_angle(p1, p2)
        s.pinch_target = config.active_side
        if s.pinch_target is None:
            s.initial_scale = config.scale
            s.initial_rotation = config.rotation
        else:
            off = config.offset(s.pinch_target)
            s.initial_scale = off.scale
            s.initial_rotation = off.rotation

    def _on_end(self, cid: int) -> None:
        s = self.session
        if cid not in s.contacts:
            log.debug("end for unknown contact %s ignored", cid)
            return
        del s.contacts[cid]
        if not s.contacts:
            self.session = GestureSession()
            return
        if s.mode is GestureMode.PINCH_ROTATE and cid in (s.primary, s.secondary):
            remaining = s.secondary if cid == s.primary else s.primary
            if self.policy.pinch_release == PINCH_RELEASE_PAN:
                s.mode = GestureMode.PAN
                s.primary = remaining
                s.secondary = None
                s.last_pos = s.contacts[remaining]
                s.pinch_target = None
            else:
                self._spend()
        elif s.mode in (GestureMode.PAN, GestureMode.HANDLE_DRAG) and cid == s.primary:
            self._spend()

    def _spend(self) -> None:
        """End the gesture while some contacts are still down."""
        contacts = self.session.contacts
        self.session = GestureSession(contacts=contacts, suppressed=True)

    # -- updates ------------------------------------------------------------

    def _on_move(self, cid: int, pos: Point) -> None:
        s = self.session
        if cid not in s.contacts:
            log.debug("move for unknown contact %s ignored", cid)
            return
        s.contacts[cid] = pos
        if s.mode is GestureMode.PAN and cid == s.primary:
            self._pan(pos)
        elif s.mode is GestureMode.PINCH_ROTATE and cid in (s.primary, s.secondary):
            self._pinch()
        elif s.mode is GestureMode.HANDLE_DRAG and cid == s.primary:
            self._drag(pos)

    def _pan(self, pos: Point) -> None:
        s = self.session
        dx = pos[0] - s.last_pos[0]
        dy = pos[1] - s.last_pos[1]
        s.last_pos = pos
        config = self.model.config
        if self.policy.flip_pan_x_when_mirrored and config.mirror:
            dx = -dx
        side = config.active_side
        if side is None:
            self.model.set_global(pos_x=config.pos_x + dx, pos_y=config.pos_y + dy)
        else:
            off = config.offset(side)
            self.model.set_side_offset(side, x=off.x + dx, y=off.y + dy)

    def _pinch(self) -> None:
        s = self.session
        p1, p2 = s.contacts[s.primary], s.contacts[s.secondary]
        if s.initial_distance > 1e-9:
            factor = contact_distance(p1, p2) / s.initial_distance
        else:
            factor = 1.0
        p = self.policy
        new_scale = min(max(s.initial_scale * factor, p.scale_min), p.scale_max)
        new_rotation = s.initial_rotation + _wrap_degrees(contact_angle(p1, p2) - s.initial_angle)
        if s.pinch_target is None:
            self.model.set_global(scale=new_scale, rotation=new_rotation)
        else:
            self.model.set_side_offset(s.pinch_target, scale=new_scale, rotation=new_rotation)

    def _drag(self, pos: Point) -> None:
        s = self.session
        dx = pos[0] - s.last_pos[0]
        dy = pos[1] - s.last_pos[1]
        s.last_pos = pos
        side = s.active_handle.side
        htype = s.active_handle.type
        off = self.model.config.offset(side)
        p = self.policy
        if htype is HandleType.POS:
            self.model.set_side_offset(side, x=off.x + dx, y=off.y + dy)
        elif htype is HandleType.WIDTH:
            self.model.set_side_offset(side, width=max(p.min_width, off.width + dx * side.dir))
        elif htype is HandleType.ARCH:
            self.model.set_side_offset(side, arch_height=max(0.0, off.arch_height - dy))
        elif htype is HandleType.BOTTOM_ARCH:
            self.model.set_side_offset(side, bottom_arch=max(p.min_bottom_arch, off.bottom_arch + dy))
        elif htype is HandleType.THICKNESS:
            self.model.set_side_offset(side, thickness=max(p.min_thickness, off.thickness + dy))
