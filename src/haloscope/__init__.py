"""Generative stripe halos driven by note triggers."""

from haloscope.config import HaloConfig
from haloscope.core.envelope import Envelope
from haloscope.core.interpolate import build_interpolator
from haloscope.core.lifecycle import LifecycleController
from haloscope.core.scene import Circle, Scene
from haloscope.driver import AnimationDriver, SceneCycler
from haloscope.visualizers.stripes import StripeRenderer

__version__ = "0.1.0"
__all__ = [
    "HaloConfig",
    "Envelope",
    "build_interpolator",
    "LifecycleController",
    "Circle",
    "Scene",
    "AnimationDriver",
    "SceneCycler",
    "StripeRenderer",
]
