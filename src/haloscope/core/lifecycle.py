"""
Trigger-driven lifecycle for halo circles.

Trigger-on events spawn circles placed relative to what is already
sounding; trigger-off events drop ids from the active set, and
`reconcile` releases and collects the circles that no longer belong.
"""

import math
from typing import Optional, Set, Tuple

from haloscope.core.scene import Circle, Scene


class LifecycleController:
    """
    Maps external trigger ids onto circles of a single Scene.

    The active id set and the idle spawn point live here, next to the
    scene they describe, so a fresh controller means a fresh start.
    """

    def __init__(self, scene: Scene):
        self.scene = scene
        self.active: Set[int] = set()
        self.idle_point = self._random_idle_point()

    @property
    def rng(self):
        return self.scene.rng

    def _random_idle_point(self) -> Tuple[float, float]:
        m = self.scene.config.idle_margin
        return (self.rng.uniform(m, 1 - m), self.rng.uniform(m, 1 - m))

    def _offset(self, x: float, y: float, radius: float) -> Tuple[float, float]:
        angle = self.rng.uniform(0, 2 * math.pi)
        return (x + math.cos(angle) * radius, y + math.sin(angle) * radius)

    def placement(self) -> Tuple[float, float]:
        """
        Pick a spawn position from the circles currently gated.

        None gated: near the idle point. One: around it. Two or more:
        around the midpoint of the first two, at half their distance,
        so chords cluster and single notes stand apart.
        """
        cfg = self.scene.config
        gated = self.scene.gated()

        if not gated:
            return self._offset(*self.idle_point, cfg.spawn_offset)

        if len(gated) == 1:
            c = gated[0]
            return self._offset(c.x, c.y, cfg.neighbor_offset)

        a, b = gated[0], gated[1]
        mid_x = (a.x + b.x) / 2
        mid_y = (a.y + b.y) / 2
        half = math.hypot(a.x - b.x, a.y - b.y) / 2
        return self._offset(mid_x, mid_y, half)

    def on_trigger_on(self, trigger_id: int) -> Circle:
        if not self.active:
            self.idle_point = self._random_idle_point()
        self.active.add(trigger_id)
        x, y = self.placement()
        return self.scene.spawn_at(x, y, external_id=trigger_id)

    def on_trigger_off(self, trigger_id: int):
        self.active.discard(trigger_id)

    def reconcile(self) -> int:
        """
        Release circles whose id went inactive, then collect silent ones.

        Returns the number of circles removed.
        """
        for circle in self.scene.circles:
            if circle.external_id is None or not circle.is_gated:
                continue
            if circle.external_id not in self.active:
                circle.envelope.release()
        return self.scene.collect()

    def handle(self, event) -> Optional[Circle]:
        """Apply one TriggerEvent and reconcile straight after."""
        circle = None
        if event.kind == "on":
            circle = self.on_trigger_on(event.id)
        elif event.kind == "off":
            self.on_trigger_off(event.id)
        self.reconcile()
        return circle
