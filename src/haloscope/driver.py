"""
Frame loop: advances a Scene, feeds it triggers and renders it.

Everything that touches a scene runs here, on the render thread, one
frame at a time. Trigger events reach the scene through the inbox that is
drained at the top of each frame.
"""

import random
import time
from typing import Callable, Iterable, Optional

from haloscope.config import HaloConfig
from haloscope.core.lifecycle import LifecycleController
from haloscope.core.scene import Scene
from haloscope.io.triggers import TriggerEvent, TriggerInbox
from haloscope.visualizers.stripes import Canvas, StripeRenderer


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


class AnimationDriver:
    """
    One scene's frame loop with variable time step.

    `frame()` does nothing once `stop()` was called, so a driver that is
    torn down never advances or draws again.
    """

    def __init__(
        self,
        scene: Scene,
        renderer: StripeRenderer,
        canvas: Canvas,
        clock: Callable[[], float] = monotonic_ms,
        inbox: Optional[TriggerInbox] = None,
        controller: Optional[LifecycleController] = None,
    ):
        self.scene = scene
        self.renderer = renderer
        self.canvas = canvas
        self.clock = clock
        self.inbox = inbox
        self.controller = controller
        self.stopped = False
        self.frames = 0
        self.last_t = clock()

    def dispatch(self, events: Iterable[TriggerEvent]):
        if self.controller is None:
            return
        for event in events:
            self.controller.handle(event)

    def frame(self) -> bool:
        """Run one frame. Returns False if the driver has been stopped."""
        if self.stopped:
            return False

        if self.inbox is not None:
            self.dispatch(self.inbox.drain())

        now = self.clock()
        dt = max(0.0, now - self.last_t)
        self.last_t = now
        self.scene.update(dt)
        if self.controller is not None:
            # Collect circles that decayed since the last trigger
            self.controller.reconcile()

        self.renderer.render(self.canvas, self.scene)
        self.frames += 1
        return True

    def stop(self):
        self.stopped = True


class SceneCycler:
    """
    Holds the current driver and swaps it for a fresh one on demand.

    The old driver is stopped before the new one is created, so at most
    one driver ever renders.
    """

    def __init__(self, make_driver: Callable[[], AnimationDriver]):
        self.make_driver = make_driver
        self.driver: Optional[AnimationDriver] = None
        self.generation = 0

    def replace(self) -> AnimationDriver:
        self.close()
        self.driver = self.make_driver()
        self.generation += 1
        return self.driver

    def frame(self) -> bool:
        if self.driver is None:
            return False
        return self.driver.frame()

    def close(self):
        if self.driver is not None:
            self.driver.stop()
            self.driver = None


def ambient_scene(config: HaloConfig, rng: Optional[random.Random] = None, count: int = 3) -> Scene:
    """
    A self-running scene: a few still circles clustered around a random
    point, fading in and out over one scene timeout.
    """
    rng = rng or random.Random()
    scene = Scene(config=config, rng=rng)
    m = config.idle_margin
    x, y = rng.uniform(m, 1 - m), rng.uniform(m, 1 - m)
    dx = config.spawn_offset
    for _ in range(count):
        scene.add_circle(
            x + rng.uniform(-dx, dx),
            y + rng.uniform(-dx, dx),
            vx=config.drift_speed * rng.uniform(-1, 1),
            vy=config.drift_speed * rng.uniform(-1, 1),
            period=0.0,
            phase=0.0,
        )
    return scene
