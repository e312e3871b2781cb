"""
Scene model: halo objects and the simulation clock that moves them.
"""

import math
import random
from dataclasses import dataclass, field
from typing import List, Optional

from haloscope.config import HaloConfig
from haloscope.core.envelope import Envelope

# Released objects below this envelope value are collected
SILENCE = 1e-6


@dataclass
class Circle:
    """A halo centre drifting across the unit square."""

    x: float
    y: float
    r: float
    vx: float
    vy: float
    period: float
    phase: float
    envelope: Envelope
    external_id: Optional[int] = None

    @property
    def is_gated(self) -> bool:
        return self.envelope.gate

    @property
    def is_silent(self) -> bool:
        return not self.envelope.gate and self.envelope.value < SILENCE


@dataclass
class Scene:
    """
    Owns every live circle and the simulated clock `t` (ms).

    Insertion order is draw order. `t` returns to 0 whenever the scene
    empties so periodic modulation restarts cleanly.
    """

    config: HaloConfig = field(default_factory=HaloConfig)
    rng: random.Random = field(default_factory=random.Random)
    t: float = 0.0
    circles: List[Circle] = field(default_factory=list)

    def update(self, dt: float):
        """Advance the clock, positions (per frame) and envelopes (per ms)."""
        assert math.isfinite(dt) and dt >= 0, f"invalid dt: {dt}"
        self.t += dt
        for circle in self.circles:
            circle.x += circle.vx
            circle.y += circle.vy
            circle.envelope.advance(dt)

    def add_circle(
        self,
        x: float,
        y: float,
        r: float = 0.1,
        vx: float = 0.0,
        vy: float = 0.0,
        period: Optional[float] = None,
        phase: Optional[float] = None,
        external_id: Optional[int] = None,
        gate: bool = True,
    ) -> Circle:
        assert math.isfinite(x) and math.isfinite(y), f"invalid position: {(x, y)}"
        cfg = self.config
        envelope = Envelope(cfg.attack_ms, cfg.decay_ms)
        if gate:
            envelope.trigger()
        circle = Circle(
            x=x,
            y=y,
            r=r,
            vx=vx,
            vy=vy,
            period=self.rng.uniform(*cfg.period_range) if period is None else period,
            phase=self.rng.uniform(0, 2 * math.pi) if phase is None else phase,
            envelope=envelope,
            external_id=external_id,
        )
        self.circles.append(circle)
        return circle

    def spawn_at(self, x: float, y: float, external_id: Optional[int] = None) -> Circle:
        """Spawn a slowly drifting, already triggered circle at (x, y)."""
        v = self.config.drift_speed
        period = None if self.config.oscillate_triggered else 0.0
        return self.add_circle(
            x,
            y,
            vx=v * self.rng.uniform(-1, 1),
            vy=v * self.rng.uniform(-1, 1),
            period=period,
            external_id=external_id,
        )

    def gated(self) -> List[Circle]:
        return [c for c in self.circles if c.is_gated]

    def collect(self) -> int:
        """Drop released, silent circles. Returns how many were removed."""
        before = len(self.circles)
        self.circles = [c for c in self.circles if not c.is_silent]
        if not self.circles:
            self.t = 0.0
        return before - len(self.circles)

    def __len__(self) -> int:
        return len(self.circles)
