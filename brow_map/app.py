"""
app.py
======
Main application orchestrator: parses config, loads the saved overlay, opens
the camera, runs the frame loop, feeds mouse input into the gesture machine,
and draws the overlay.

High-level flow:
1) Parse CLI args into a config namespace and a gesture/geometry Policy
2) Load the overlay snapshot (defaults if missing or unreadable)
3) Open camera with the platform's preferred backend and start a FrameGrabber
4) For each latest frame:
   - Mirror the video layer if mirror mode is on
   - Draw grid, molds and handles; status line; help panel
   - Keyboard shortcuts for target side, toggles, save, export and reset
5) Save the overlay on exit and close gracefully on 'q' / Esc

Mouse mapping: left button is a single contact (pan or handle drag). Holding
the right button emulates a two-finger pinch: a pinned contact is placed
opposite the pointer across the overlay origin, so moving the pointer away or
around the origin scales and rotates.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional

import cv2

from .anchors import Viewport
from .camera import FrameGrabber, list_cameras, open_camera
from .config import Defaults, parse_args, policy_from_args
from .export import export_snapshot, video_layer
from .gestures import GestureMachine, GestureMode
from .model import FieldId, GeometryModel, TargetSide, display_value
from .snapshot import clear_config, load_config, save_config
from .visual import draw_overlay, draw_panel, draw_status

log = logging.getLogger(__name__)

WINDOW = "BrowMap"
MOUSE_CONTACT = 0
PIVOT_CONTACT = 1

HELP_LINES = [
    "BROW MAP",
    "drag      move / edit handle",
    "r-drag    pinch: scale + rotate",
    "wheel     scale",
    "1 / 2 / 3 left / both / right",
    "g         visagism grid",
    "h         edit handles",
    "m         mirror camera",
    "c         next color",
    "[ / ]     opacity",
    ", / .     rotate",
    "- / =     spacing",
    "s         save",
    "x         export snapshot",
    "0         reset to defaults",
    "p         hide this panel",
    "q         quit",
]


class MouseBridge:
    """Turns OpenCV mouse callbacks into contact events for the gesture machine."""

    def __init__(self, machine: GestureMachine):
        self.machine = machine
        self.pinch_origin: Optional[tuple] = None

    def _origin(self):
        vp = self.machine.viewport
        config = self.machine.model.config
        return (vp.cx + config.pos_x, vp.cy + config.pos_y)

    def _pivot(self, x: float, y: float):
        ox, oy = self.pinch_origin
        return (2 * ox - x, 2 * oy - y)

    def __call__(self, event, x, y, flags, param=None) -> None:
        m = self.machine
        if event == cv2.EVENT_LBUTTONDOWN and self.pinch_origin is None:
            m.start(MOUSE_CONTACT, x, y)
        elif event == cv2.EVENT_LBUTTONUP and self.pinch_origin is None:
            m.end(MOUSE_CONTACT, x, y)
        elif event == cv2.EVENT_RBUTTONDOWN and m.mode is GestureMode.IDLE:
            if m.in_reserved_region((x, y)):
                return
            self.pinch_origin = self._origin()
            px, py = self._pivot(x, y)
            if m.start(PIVOT_CONTACT, px, py) is not GestureMode.PAN:
                # pivot landed on a handle or a reserved region; no pinch this time
                m.reset()
                self.pinch_origin = None
                return
            m.start(MOUSE_CONTACT, x, y)
        elif event == cv2.EVENT_RBUTTONUP and self.pinch_origin is not None:
            m.end(MOUSE_CONTACT, x, y)
            m.end(PIVOT_CONTACT)
            self.pinch_origin = None
        elif event == cv2.EVENT_MOUSEMOVE:
            if self.pinch_origin is not None:
                px, py = self._pivot(x, y)
                m.move(PIVOT_CONTACT, px, py)
                m.move(MOUSE_CONTACT, x, y)
            elif flags & cv2.EVENT_FLAG_LBUTTON:
                m.move(MOUSE_CONTACT, x, y)
        elif event == cv2.EVENT_MOUSEWHEEL and m.mode is GestureMode.IDLE:
            step = 0.02 if cv2.getMouseWheelDelta(flags) > 0 else -0.02
            m.model.nudge_field(FieldId.SCALE, step)


def _target(side: TargetSide) -> Callable[[GeometryModel], str]:
    def action(model: GeometryModel) -> str:
        model.set_target_side(side)
        return f"Target side: {side.value.upper()}"
    return action


def _toggle(flag: str, label: str) -> Callable[[GeometryModel], str]:
    def action(model: GeometryModel) -> str:
        model.toggle(flag)
        return f"{label}: {'ON' if getattr(model.config, flag) else 'OFF'}"
    return action


def _nudge(field_id: FieldId, delta: float) -> Callable[[GeometryModel], str]:
    def action(model: GeometryModel) -> str:
        model.nudge_field(field_id, delta)
        return f"{field_id.value}: {display_value(model.config, field_id):.2f}"
    return action


def _next_color(model: GeometryModel) -> str:
    model.cycle_color()
    return f"Color: {model.config.color}"


KEY_ACTIONS: Dict[str, Callable[[GeometryModel], str]] = {
    "1": _target(TargetSide.LEFT),
    "2": _target(TargetSide.BOTH),
    "3": _target(TargetSide.RIGHT),
    "g": _toggle("show_visagism_grid", "Visagism grid"),
    "h": _toggle("show_guides", "Edit handles"),
    "m": _toggle("mirror", "Mirror"),
    "c": _next_color,
    "[": _nudge(FieldId.OPACITY, -0.05),
    "]": _nudge(FieldId.OPACITY, 0.05),
    ",": _nudge(FieldId.ROTATION, -1.0),
    ".": _nudge(FieldId.ROTATION, 1.0),
    "-": _nudge(FieldId.SPACING, -2.0),
    "=": _nudge(FieldId.SPACING, 2.0),
}


def status_lines(model: GeometryModel, machine: GestureMachine) -> List[str]:
    config = model.config
    side = {
        TargetSide.BOTH: "Sync: both sides",
        TargetSide.LEFT: "Editing: left",
        TargetSide.RIGHT: "Editing: right",
    }[config.target_side]
    lines = [side, f"Gesture: {machine.mode.value}"]
    if machine.active_handle is not None:
        h = machine.active_handle
        lines.append(f"Handle: {h.side.value} {h.type.value}")
    return lines


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    d = Defaults()

    if args.list_cameras:
        found = set(list_cameras(args.probe))
        for i in range(args.probe):
            print(f"Camera {i}: {'OK' if i in found else 'Not available'}")
        return

    policy = policy_from_args(args)
    model = GeometryModel(load_config(args.config_path, policy), policy)
    machine = GestureMachine(model, policy=policy)
    bridge = MouseBridge(machine)

    cap = open_camera(args.camera, args.width, args.height)
    grabber = FrameGrabber(cap)
    grabber.start()
    cv2.namedWindow(WINDOW, cv2.WINDOW_NORMAL)
    cv2.setMouseCallback(WINDOW, bridge)
    show_panel = True

    try:
        while True:
            frame = grabber.read_latest()
            if frame is None:
                if grabber.failed:
                    print("Camera stopped delivering frames")
                    break
                time.sleep(0.001)
                continue
            # one config per frame: display and export see the same pairing
            config = model.config
            view = video_layer(frame, config.mirror)
            h, w = view.shape[:2]
            machine.viewport = Viewport.for_frame(w, h, d.view_box)
            panel = (w - d.panel_width, 0, w - 1, h - 1)
            machine.reserved_regions = [panel] if show_panel else []

            draw_overlay(view, config, machine.viewport, machine.active_handle, policy)
            draw_status(view, status_lines(model, machine))
            if show_panel:
                draw_panel(view, panel, HELP_LINES)
            cv2.imshow(WINDOW, view)

            key = cv2.waitKey(1) & 0xFF
            if key == 0xFF:
                continue
            ch = chr(key)
            if ch in ("q", "\x1b"):
                break
            if ch == "p":
                show_panel = not show_panel
            elif ch == "s":
                try:
                    save_config(model.config, args.config_path)
                    print(f"Saved to {args.config_path}")
                except OSError as exc:
                    log.error("could not save configuration: %s", exc)
            elif ch == "x":
                path = export_snapshot(frame, config, args.export_dir, machine.viewport, policy)
                if path:
                    print(f"Snapshot: {path}")
            elif ch == "0":
                machine.reset()
                model.reset_to_default()
                clear_config(args.config_path)
                print("Reset to defaults")
            elif ch in KEY_ACTIONS:
                print(KEY_ACTIONS[ch](model))
    except KeyboardInterrupt:
        # Graceful exit on Ctrl+C
        pass
    finally:
        grabber.stop()
        if not args.no_autosave:
            try:
                save_config(model.config, args.config_path)
            except OSError as exc:
                log.error("could not save configuration: %s", exc)
        cap.release()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
