"""Tests for trigger-driven spawning, release and collection."""

import math

import pytest

from haloscope.core.lifecycle import LifecycleController
from haloscope.io.triggers import TriggerEvent


def _dist(ax, ay, bx, by):
    return math.hypot(ax - bx, ay - by)


class TestPlacement:
    def test_first_spawn_near_idle_point(self, controller, config):
        c = controller.on_trigger_on(60)
        ix, iy = controller.idle_point
        assert _dist(c.x, c.y, ix, iy) == pytest.approx(config.spawn_offset)

    def test_idle_point_inside_margin(self, controller, config):
        m = config.idle_margin
        for note in range(20):
            controller.on_trigger_on(note)
            controller.on_trigger_off(note)
            controller.reconcile()
            x, y = controller.idle_point
            assert m <= x <= 1 - m
            assert m <= y <= 1 - m

    def test_idle_point_rerolled_only_when_going_active(self, controller):
        initial = controller.idle_point
        controller.on_trigger_on(60)
        first = controller.idle_point
        assert first != initial
        controller.on_trigger_on(64)
        assert controller.idle_point == first

        controller.on_trigger_off(60)
        controller.on_trigger_off(64)
        controller.on_trigger_on(67)
        assert controller.idle_point != first

    def test_single_gated_neighbour(self, controller, config):
        a = controller.on_trigger_on(60)
        b = controller.on_trigger_on(64)
        assert _dist(a.x, a.y, b.x, b.y) == pytest.approx(config.neighbor_offset)

    def test_two_gated_midpoint(self, controller, scene):
        scene.add_circle(0.0, 0.0, external_id=1)
        scene.add_circle(2.0, 0.0, external_id=2)
        controller.active.update({1, 2})
        for _ in range(10):
            x, y = controller.placement()
            assert _dist(x, y, 1.0, 0.0) == pytest.approx(1.0)

    def test_only_first_two_gated_count(self, controller, scene):
        scene.add_circle(0.0, 0.0, external_id=1)
        scene.add_circle(2.0, 0.0, external_id=2)
        scene.add_circle(9.0, 9.0, external_id=3)
        controller.active.update({1, 2, 3})
        c = controller.on_trigger_on(4)
        assert _dist(c.x, c.y, 1.0, 0.0) == pytest.approx(1.0)

    def test_released_circles_do_not_anchor(self, controller, scene, config):
        ghost = scene.add_circle(0.9, 0.9, external_id=1)
        ghost.envelope.release()
        c = controller.on_trigger_on(60)
        ix, iy = controller.idle_point
        assert _dist(c.x, c.y, ix, iy) == pytest.approx(config.spawn_offset)


class TestReconcile:
    def test_trigger_off_releases_matching_circle(self, controller):
        a = controller.on_trigger_on(60)
        b = controller.on_trigger_on(64)
        controller.on_trigger_off(60)
        controller.reconcile()
        assert not a.is_gated
        assert b.is_gated

    def test_reconcile_is_explicit(self, controller):
        a = controller.on_trigger_on(60)
        controller.on_trigger_off(60)
        assert a.is_gated
        controller.reconcile()
        assert not a.is_gated

    def test_circles_without_id_are_left_alone(self, controller, scene):
        free = scene.add_circle(0.5, 0.5)
        controller.reconcile()
        assert free.is_gated

    def test_trigger_off_twice_is_idempotent(self, controller):
        controller.on_trigger_on(60)
        controller.on_trigger_on(64)
        controller.on_trigger_off(60)
        controller.reconcile()
        once = (set(controller.active), [c.is_gated for c in controller.scene.circles])

        controller.on_trigger_off(60)
        controller.reconcile()
        twice = (set(controller.active), [c.is_gated for c in controller.scene.circles])
        assert once == twice

    def test_trigger_off_unknown_id_is_noop(self, controller):
        a = controller.on_trigger_on(60)
        controller.on_trigger_off(99)
        assert controller.reconcile() == 0
        assert controller.active == {60}
        assert a.is_gated

    def test_all_released_scene_drains_and_resets(self, controller, scene, config):
        for note in (60, 64, 67, 71):
            controller.on_trigger_on(note)
        scene.update(config.attack_ms)
        for note in (60, 64, 67, 71):
            controller.on_trigger_off(note)
            controller.reconcile()

        elapsed = 0.0
        while elapsed <= config.decay_ms:
            scene.update(10.0)
            controller.reconcile()
            elapsed += 10.0

        assert scene.circles == []
        assert scene.t == 0


class TestEndToEnd:
    def test_note_lifecycle(self, controller, scene, config):
        circle = controller.handle(TriggerEvent("on", 60, 100))
        assert len(scene) == 1
        assert circle.is_gated
        assert circle.external_id == 60
        assert circle.envelope.value == 0.0

        scene.update(config.attack_ms / 2)
        assert circle.envelope.value == pytest.approx(0.5)
        scene.update(config.attack_ms / 2)
        assert circle.envelope.value == 1.0

        controller.handle(TriggerEvent("off", 60))
        assert not circle.is_gated
        assert circle.envelope.value == 1.0

        scene.update(config.decay_ms / 2)
        assert circle.envelope.value == pytest.approx(0.5)
        controller.reconcile()
        assert len(scene) == 1

        scene.update(config.decay_ms / 2)
        controller.reconcile()
        assert scene.circles == []
        assert scene.t == 0

    def test_handle_ignores_unknown_kind(self, controller, scene):
        assert controller.handle(TriggerEvent("pitchbend", 0)) is None
        assert len(scene) == 0

    def test_fresh_controller_has_no_active_ids(self, scene):
        assert LifecycleController(scene).active == set()
