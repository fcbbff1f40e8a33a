"""Tests for the gesture state machine."""
import math

import pytest

from brow_map.config import PINCH_RELEASE_PAN, Policy
from brow_map.gestures import ContactEvent, ContactPhase, GestureMachine, GestureMode
from brow_map.hittest import ActiveHandle, HandleType, handle_positions
from brow_map.model import GeometryModel, Side, set_global, set_side_offset


@pytest.fixture
def machine(model, unit_viewport):
    return GestureMachine(model, unit_viewport)


def _handle_at(model, viewport, side, htype):
    return dict(handle_positions(model.config, viewport))[ActiveHandle(side, htype)]


class TestPan:

    def test_pan_scenario(self, machine, model):
        assert machine.start(0, 100.0, 100.0) is GestureMode.PAN
        machine.move(0, 110.0, 115.0)
        assert model.config.pos_x == pytest.approx(10.0)
        assert model.config.pos_y == pytest.approx(15.0)
        assert machine.end(0, 110.0, 115.0) is GestureMode.IDLE
        rev = model.revision
        assert machine.move(0, 500.0, 500.0) is GestureMode.IDLE
        assert model.revision == rev
        assert model.config.pos_x == pytest.approx(10.0)

    def test_pan_is_incremental(self, machine, model):
        machine.start(0, 100.0, 100.0)
        machine.move(0, 105.0, 100.0)
        machine.move(0, 107.0, 98.0)
        assert model.config.pos_x == pytest.approx(7.0)
        assert model.config.pos_y == pytest.approx(-2.0)

    def test_pan_single_side(self, machine, model):
        model.set_target_side("left")
        machine.start(0, 100.0, 100.0)
        machine.move(0, 90.0, 120.0)
        assert model.config.left_offset.x == pytest.approx(-10.0)
        assert model.config.left_offset.y == pytest.approx(20.0)
        assert model.config.right_offset.x == 0.0
        assert model.config.pos_x == 0.0

    def test_mirror_flip_is_opt_in(self, model, unit_viewport):
        assert model.config.mirror is True
        plain = GestureMachine(model, unit_viewport)
        plain.start(0, 100.0, 100.0)
        plain.move(0, 110.0, 100.0)
        assert model.config.pos_x == pytest.approx(10.0)
        plain.end(0)

        flipped = GestureMachine(model, unit_viewport, policy=Policy(flip_pan_x_when_mirrored=True))
        flipped.start(0, 100.0, 100.0)
        flipped.move(0, 110.0, 105.0)
        assert model.config.pos_x == pytest.approx(0.0)
        assert model.config.pos_y == pytest.approx(5.0)


class TestPinchRotate:

    def _pinch(self, machine):
        machine.start(0, 300.0, 300.0)
        return machine.start(1, 400.0, 300.0)

    def test_pinch_scenario(self, machine, model):
        assert self._pinch(machine) is GestureMode.PINCH_ROTATE
        a = math.radians(30.0)
        machine.move(1, 300.0 + 150.0 * math.cos(a), 300.0 + 150.0 * math.sin(a))
        assert model.config.scale == pytest.approx(1.5)
        assert model.config.rotation == pytest.approx(30.0)

    def test_pinch_uses_baseline_not_increment(self, machine, model):
        self._pinch(machine)
        machine.move(1, 500.0, 300.0)
        machine.move(1, 450.0, 300.0)
        assert model.config.scale == pytest.approx(1.5)

    @pytest.mark.parametrize("x", [300.0, 300.5, 1e9])
    def test_scale_always_clamped(self, machine, model, x):
        self._pinch(machine)
        machine.move(1, x, 300.0)
        assert 0.2 <= model.config.scale <= 5.0

    def test_extreme_ratios_hit_bounds(self, machine, model):
        self._pinch(machine)
        machine.move(1, 300.0, 300.0)
        assert model.config.scale == 0.2
        machine.move(1, 300.0 + 1e7, 300.0)
        assert model.config.scale == 5.0

    def test_zero_initial_distance_keeps_scale(self, machine, model):
        machine.start(0, 300.0, 300.0)
        machine.start(1, 300.0, 300.0)
        machine.move(1, 350.0, 300.0)
        assert model.config.scale == 1.0

    def test_rotation_wraps_across_atan2_branch(self, machine, model):
        machine.start(0, 300.0, 300.0)
        machine.start(1, 200.0, 301.0)  # about 179.4 degrees
        machine.move(1, 200.0, 299.0)  # about -179.4 degrees
        assert abs(model.config.rotation) < 2.0

    def test_pinch_on_single_side(self, machine, model):
        model.set_target_side("right")
        model.set_side_offset(Side.RIGHT, scale=2.0, rotation=10.0)
        self._pinch(machine)
        machine.move(1, 350.0, 300.0)
        assert model.config.right_offset.scale == pytest.approx(1.0)
        assert model.config.right_offset.rotation == pytest.approx(10.0)
        assert model.config.scale == 1.0

    def test_target_fixed_at_entry(self, machine, model):
        self._pinch(machine)
        model.set_target_side("left")
        machine.move(1, 500.0, 300.0)
        assert model.config.scale == pytest.approx(2.0)
        assert model.config.left_offset.scale == 1.0

    def test_release_one_contact_ends_session(self, machine, model):
        self._pinch(machine)
        assert machine.end(1) is GestureMode.IDLE
        rev = model.revision
        machine.move(0, 350.0, 350.0)
        assert model.revision == rev
        # a new finger while the old one is still down does not start anything
        assert machine.start(2, 100.0, 100.0) is GestureMode.IDLE
        machine.end(0)
        machine.end(2)
        assert machine.start(3, 100.0, 100.0) is GestureMode.PAN

    def test_release_policy_resume_pan(self, model, unit_viewport):
        machine = GestureMachine(model, unit_viewport, policy=Policy(pinch_release=PINCH_RELEASE_PAN))
        machine.start(0, 300.0, 300.0)
        machine.start(1, 400.0, 300.0)
        assert machine.end(1) is GestureMode.PAN
        machine.move(0, 310.0, 320.0)
        assert model.config.pos_x == pytest.approx(10.0)
        assert model.config.pos_y == pytest.approx(20.0)

    def test_third_contact_ignored(self, machine, model):
        self._pinch(machine)
        assert machine.start(2, 0.0, 0.0) is GestureMode.PINCH_ROTATE
        rev = model.revision
        machine.move(2, 50.0, 50.0)
        assert model.revision == rev
        machine.end(2)
        assert machine.mode is GestureMode.PINCH_ROTATE


class TestHandleDrag:

    def test_arch_drag_scenario(self, machine, model, unit_viewport):
        p = _handle_at(model, unit_viewport, Side.LEFT, HandleType.ARCH)
        assert machine.start(0, *p) is GestureMode.HANDLE_DRAG
        assert machine.active_handle == ActiveHandle(Side.LEFT, HandleType.ARCH)
        machine.move(0, p[0], p[1] - 10.0)
        assert model.config.left_offset.arch_height == pytest.approx(32.0)
        machine.move(0, p[0], p[1] + 40.0)
        assert model.config.left_offset.arch_height == 0.0
        assert model.config.right_offset.arch_height == 22.0

    def test_width_drag_follows_side_direction(self, model, unit_viewport):
        machine = GestureMachine(model, unit_viewport)
        p = _handle_at(model, unit_viewport, Side.RIGHT, HandleType.WIDTH)
        machine.start(0, *p)
        machine.move(0, p[0] + 20.0, p[1])
        assert model.config.right_offset.width == pytest.approx(140.0)
        machine.end(0)

        p = _handle_at(model, unit_viewport, Side.LEFT, HandleType.WIDTH)
        machine.start(0, *p)
        machine.move(0, p[0] - 20.0, p[1])
        assert model.config.left_offset.width == pytest.approx(140.0)

    def test_width_minimum(self, machine, model, unit_viewport):
        p = _handle_at(model, unit_viewport, Side.RIGHT, HandleType.WIDTH)
        machine.start(0, *p)
        machine.move(0, p[0] - 500.0, p[1])
        assert model.config.right_offset.width == 30.0

    def test_thickness_drag(self, model, unit_viewport):
        model.set_side_offset(Side.RIGHT, thickness=60.0)
        machine = GestureMachine(model, unit_viewport)
        p = _handle_at(model, unit_viewport, Side.RIGHT, HandleType.THICKNESS)
        machine.start(0, *p)
        assert machine.active_handle == ActiveHandle(Side.RIGHT, HandleType.THICKNESS)
        machine.move(0, p[0], p[1] + 5.0)
        assert model.config.right_offset.thickness == pytest.approx(65.0)
        machine.move(0, p[0], p[1] - 1000.0)
        assert model.config.right_offset.thickness == 1.0

    def test_bottom_arch_drag(self, model, unit_viewport):
        model.set_side_offset(Side.LEFT, arch_height=80.0, bottom_arch=60.0)
        machine = GestureMachine(model, unit_viewport)
        p = _handle_at(model, unit_viewport, Side.LEFT, HandleType.BOTTOM_ARCH)
        machine.start(0, *p)
        assert machine.active_handle == ActiveHandle(Side.LEFT, HandleType.BOTTOM_ARCH)
        machine.move(0, p[0], p[1] + 10.0)
        assert model.config.left_offset.bottom_arch == pytest.approx(70.0)
        machine.move(0, p[0], p[1] - 1000.0)
        assert model.config.left_offset.bottom_arch == -30.0

    def test_pos_drag_ignores_target_side(self, machine, model):
        model.set_target_side("right")
        machine.start(0, -25.0, 0.0)
        machine.move(0, -20.0, 7.0)
        assert model.config.left_offset.x == pytest.approx(5.0)
        assert model.config.left_offset.y == pytest.approx(7.0)
        assert model.config.pos_x == 0.0
        assert model.config.right_offset.x == 0.0

    def test_second_contact_does_not_pinch(self, machine, model):
        machine.start(0, -25.0, 0.0)
        assert machine.start(1, 300.0, 300.0) is GestureMode.HANDLE_DRAG
        machine.move(1, 400.0, 300.0)
        assert model.config.scale == 1.0

    def test_hidden_guides_pan_instead(self, model, unit_viewport):
        model.toggle("show_guides")
        machine = GestureMachine(model, unit_viewport)
        assert machine.start(0, -25.0, 0.0) is GestureMode.PAN


class TestRobustness:

    def test_move_without_start(self, machine, model):
        assert machine.move(7, 10.0, 10.0) is GestureMode.IDLE
        assert model.revision == 0

    def test_end_without_start(self, machine):
        assert machine.end(7) is GestureMode.IDLE

    def test_duplicate_start_ignored(self, machine, model):
        machine.start(0, 100.0, 100.0)
        assert machine.start(0, 200.0, 200.0) is GestureMode.PAN
        machine.move(0, 101.0, 100.0)
        assert model.config.pos_x == pytest.approx(1.0)

    def test_cancel_behaves_like_end(self, machine):
        machine.start(0, 100.0, 100.0)
        assert machine.handle(ContactEvent(ContactPhase.CANCEL, 0, 0.0, 0.0)) is GestureMode.IDLE

    def test_reset_from_any_state(self, machine, model):
        machine.start(0, 300.0, 300.0)
        machine.start(1, 400.0, 300.0)
        machine.reset()
        assert machine.mode is GestureMode.IDLE
        assert machine.session.contacts == {}
        rev = model.revision
        machine.move(1, 500.0, 300.0)
        machine.end(0)
        assert model.revision == rev

    def test_reserved_region_ignores_gesture(self, model, unit_viewport):
        machine = GestureMachine(model, unit_viewport, reserved_regions=[(200.0, 0.0, 400.0, 400.0)])
        assert machine.start(0, 250.0, 100.0) is GestureMode.IDLE
        machine.move(0, 260.0, 110.0)
        assert machine.start(1, 100.0, 100.0) is GestureMode.IDLE
        assert model.revision == 0
        machine.end(0)
        machine.end(1)
        assert machine.start(2, 100.0, 100.0) is GestureMode.PAN

    def test_primary_lift_with_extra_contact(self, machine, model):
        machine.start(0, -25.0, 0.0)
        machine.start(1, 300.0, 300.0)
        assert machine.end(0) is GestureMode.IDLE
        rev = model.revision
        machine.move(1, 310.0, 300.0)
        assert model.revision == rev

    def test_session_kept_off_the_model(self, machine, model):
        machine.start(0, 100.0, 100.0)
        machine.move(0, 100.0, 100.0)
        assert model.revision == 0


def test_pinch_on_scaled_default_config(unit_viewport):
    model = GeometryModel(set_global(set_side_offset(GeometryModel().config, Side.LEFT, x=3.0), scale=1.1))
    machine = GestureMachine(model, unit_viewport)
    machine.start(0, 1000.0, 1000.0)
    machine.start(1, 1100.0, 1000.0)
    machine.move(1, 1200.0, 1000.0)
    assert model.config.scale == pytest.approx(2.2)
