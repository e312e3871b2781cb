"""Tests for the frame loop and scene cycling."""

import math
import random

import pytest

from haloscope.core.lifecycle import LifecycleController
from haloscope.driver import AnimationDriver, SceneCycler, ambient_scene
from haloscope.io.triggers import TriggerEvent, TriggerInbox
from haloscope.visualizers.stripes import StripeRenderer


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def driver(scene, config, canvas, clock):
    inbox = TriggerInbox()
    return AnimationDriver(
        scene,
        StripeRenderer(config),
        canvas,
        clock=clock,
        inbox=inbox,
        controller=LifecycleController(scene),
    )


class TestAnimationDriver:
    def test_dt_is_wall_clock_delta(self, driver, clock):
        driver.scene.spawn_at(0.5, 0.5)
        assert driver.frame()
        assert driver.scene.t == 0.0

        clock.now += 16.0
        driver.frame()
        assert driver.scene.t == 16.0

        # No frame skipping: a slow frame is one big step
        clock.now += 250.0
        driver.frame()
        assert driver.scene.t == 266.0
        assert driver.frames == 3

    def test_renders_every_frame(self, driver, canvas):
        driver.frame()
        driver.frame()
        assert len(canvas.fills) == 2

    def test_stop_prevents_further_frames(self, driver, canvas, clock):
        driver.scene.spawn_at(0.5, 0.5)
        driver.frame()
        driver.stop()
        clock.now += 100.0
        assert not driver.frame()
        assert driver.scene.t == 0.0
        assert len(canvas.fills) == 1

    def test_drains_triggers_before_update(self, driver, clock):
        driver.inbox.push(TriggerEvent("on", 60, 100))
        driver.frame()
        assert len(driver.scene) == 1
        circle = driver.scene.circles[0]
        assert circle.is_gated

        driver.inbox.push(TriggerEvent("off", 60))
        clock.now += 10.0
        driver.frame()
        assert not circle.is_gated
        assert len(driver.inbox) == 0

    def test_collects_decayed_circles_without_new_events(self, driver, clock, config):
        driver.inbox.push(TriggerEvent("on", 60, 100))
        driver.inbox.push(TriggerEvent("off", 60))
        driver.frame()
        assert len(driver.scene) == 1

        clock.now += config.decay_ms + 1
        driver.frame()
        assert len(driver.scene) == 0
        assert driver.scene.t == 0.0

    def test_without_controller_events_are_ignored(self, scene, config, canvas, clock):
        inbox = TriggerInbox()
        driver = AnimationDriver(scene, StripeRenderer(config), canvas, clock=clock, inbox=inbox)
        inbox.push(TriggerEvent("on", 60))
        driver.frame()
        assert len(scene) == 0


class TestSceneCycler:
    def test_replace_stops_previous_driver(self, scene, config, canvas, clock):
        made = []

        def make_driver():
            d = AnimationDriver(ambient_scene(config), StripeRenderer(config), canvas, clock=clock)
            made.append(d)
            return d

        cycler = SceneCycler(make_driver)
        first = cycler.replace()
        assert cycler.frame()
        second = cycler.replace()

        assert first.stopped
        assert not first.frame()
        assert not second.stopped
        assert cycler.driver is second
        assert cycler.generation == 2
        assert made == [first, second]

    def test_close(self, config, canvas, clock):
        cycler = SceneCycler(
            lambda: AnimationDriver(ambient_scene(config), StripeRenderer(config), canvas, clock=clock)
        )
        assert not cycler.frame()
        driver = cycler.replace()
        cycler.close()
        assert driver.stopped
        assert cycler.driver is None
        assert not cycler.frame()


def test_ambient_scene_is_a_still_cluster(config):
    scene = ambient_scene(config, random.Random(7))
    assert len(scene) == 3
    m = config.idle_margin
    limit = 2 * math.sqrt(2) * config.spawn_offset
    for c in scene.circles:
        assert c.is_gated
        assert c.period == 0.0
        assert c.phase == 0.0
        assert c.external_id is None
        assert m - config.spawn_offset <= c.x <= 1 - m + config.spawn_offset
    for a in scene.circles:
        for b in scene.circles:
            assert math.hypot(a.x - b.x, a.y - b.y) <= limit
