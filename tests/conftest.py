"""Pytest configuration and shared fixtures."""

import os
import random

# Headless pygame for every test
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from haloscope.config import HaloConfig
from haloscope.core.lifecycle import LifecycleController
from haloscope.core.scene import Scene


class RecordingCanvas:
    """Canvas that records draw calls instead of rasterising them."""

    def __init__(self, width: int = 100, height: int = 100):
        self.width = width
        self.height = height
        self.fills = []
        self.strokes = []

    @property
    def size(self):
        return (self.width, self.height)

    def fill(self, color):
        self.fills.append(color)
        self.strokes = []

    def stroke_circle(self, center, radius, color, width):
        self.strokes.append((center, radius, color, width))


@pytest.fixture
def config() -> HaloConfig:
    """Small, fast configuration."""
    return HaloConfig(
        width=64,
        height=48,
        fps=30,
        stripe_count=40,
        stripe_width=0.02,
        attack_ms=100.0,
        decay_ms=200.0,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def scene(config, rng) -> Scene:
    return Scene(config=config, rng=rng)


@pytest.fixture
def controller(scene) -> LifecycleController:
    return LifecycleController(scene)


@pytest.fixture
def canvas() -> RecordingCanvas:
    return RecordingCanvas()
