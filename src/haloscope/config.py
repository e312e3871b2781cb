"""
Configuration for the halo renderer, scene and trigger handling.
"""

from dataclasses import dataclass, field, replace
from typing import Tuple

CURVE_MODES = ("linear", "exponential")


def bpm_to_ms(bpm: float) -> float:
    """Length of one beat in milliseconds."""
    return (60 * 1000) / bpm


# Target profiles shared by the CLIs
PROFILES = {
    "low": {"width": 1280, "height": 720, "fps": 30, "quality": "fast"},
    "medium": {"width": 1920, "height": 1080, "fps": 60, "quality": "medium"},
    "high": {"width": 3840, "height": 2160, "fps": 60, "quality": "high"},
}


@dataclass
class HaloConfig:
    """Tunables for stripes, envelopes, spawning and scene cycling."""

    width: int = 1920
    height: int = 1080
    fps: int = 60

    # Stripes (fractions of the long side of the surface)
    stripe_count: int = 300
    stripe_width: float = 0.01 / 6
    spacing_growth: float = 1 / 200  # spacing = width * (1 + i * growth)
    stripe_offset: float = 0.0

    # Bright band: centre = base + rate * t (t in ms)
    brightest_base: float = 0.1
    brightest_rate: float = 1e-4
    curve_mode: str = "linear"  # "linear", "exponential"

    # Oscillation
    oscillation_rate: float = 0.003  # radians per ms, scaled by period
    period_range: Tuple[float, float] = (1.0, 2.0)
    oscillate_triggered: bool = False

    # Envelope
    attack_ms: float = 150.0
    decay_ms: float = 2500.0

    # Placement (unit-square coordinates)
    spawn_offset: float = 0.02
    neighbor_offset: float = 0.05
    idle_margin: float = 0.3
    drift_speed: float = 1e-4

    # Scene cycling
    scene_timeout_ms: float = field(default_factory=lambda: bpm_to_ms(120) * 16)
    scene_fade: bool = False

    def validate(self) -> "HaloConfig":
        """Raise ValueError for settings the renderer cannot honour."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid surface size: {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValueError(f"Invalid fps: {self.fps}")
        if self.stripe_count <= 0 or self.stripe_width <= 0:
            raise ValueError("Stripe count and width must be positive")
        if self.attack_ms < 0 or self.decay_ms < 0:
            raise ValueError("Envelope durations must be non-negative")
        if self.brightest_base <= 0:
            raise ValueError("Brightest band must start beyond the centre")
        if self.scene_timeout_ms <= 0:
            raise ValueError("Scene timeout must be positive")
        lo, hi = self.period_range
        if lo > hi:
            raise ValueError(f"Invalid period range: {self.period_range}")
        if self.curve_mode not in CURVE_MODES:
            raise ValueError(f"Unknown curve mode: {self.curve_mode!r} (expected one of {CURVE_MODES})")
        return self

    def with_profile(self, profile: str) -> "HaloConfig":
        """Copy with resolution and fps taken from a named profile."""
        p = PROFILES[profile]
        return replace(self, width=p["width"], height=p["height"], fps=p["fps"])

    @property
    def frame_ms(self) -> float:
        return 1000.0 / self.fps
