"""Interpolation, envelopes and the scene model."""

from haloscope.core.interpolate import InterpolationError, build_interpolator
from haloscope.core.envelope import Envelope
from haloscope.core.scene import Circle, Scene
from haloscope.core.lifecycle import LifecycleController

__all__ = [
    "InterpolationError",
    "build_interpolator",
    "Envelope",
    "Circle",
    "Scene",
    "LifecycleController",
]
