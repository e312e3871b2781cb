"""
Attack/decay envelope driving per-object intensity.

The gate opens on trigger (attack ramps 0 -> 1) and closes on release
(decay ramps 1 -> 0 from the release moment). All times are wall-clock
milliseconds.
"""

import math

from haloscope.core.interpolate import build_interpolator


def _ramp(duration_ms: float, start: float, end: float):
    # A zero-length ramp is a single point: the lookup clamps straight to `end`.
    if duration_ms <= 0:
        return build_interpolator([(0.0, end)])
    return build_interpolator([(0.0, start), (duration_ms, end)])


class Envelope:
    """
    Gate-driven attack/decay envelope.

    States are ATTACKING (gate open) and RELEASING (gate closed). An
    envelope constructed closed has never been triggered and reads 0.
    """

    def __init__(self, attack_ms: float, decay_ms: float, gate: bool = False):
        if attack_ms < 0 or decay_ms < 0:
            raise ValueError("Envelope durations must be non-negative")
        self.attack_ms = float(attack_ms)
        self.decay_ms = float(decay_ms)
        self._attack = _ramp(self.attack_ms, 0.0, 1.0)
        self._decay = _ramp(self.decay_ms, 1.0, 0.0)

        self.gate = gate
        self.elapsed_ms = 0.0
        # Never released: closed construction reads as fully decayed
        self.elapsed_at_release = 0.0 if gate else -math.inf

    @property
    def state(self) -> str:
        return "attacking" if self.gate else "releasing"

    def trigger(self):
        """Open the gate and restart from the beginning of the attack."""
        self.gate = True
        self.elapsed_ms = 0.0
        self.elapsed_at_release = 0.0

    def release(self):
        """Close the gate, remembering when it happened."""
        if not self.gate:
            return
        self.gate = False
        self.elapsed_at_release = self.elapsed_ms

    def advance(self, dt: float):
        """Add dt milliseconds of elapsed time, whatever the gate state."""
        self.elapsed_ms += dt

    @property
    def value(self) -> float:
        if self.gate:
            return self._attack(self.elapsed_ms)
        return self._decay(self.elapsed_ms - self.elapsed_at_release)

    def __repr__(self) -> str:
        return (
            f"Envelope(attack_ms={self.attack_ms}, decay_ms={self.decay_ms}, "
            f"state={self.state}, value={self.value:.3f})"
        )
