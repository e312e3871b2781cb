"""
Stripe halo renderer.

Each circle is drawn as a stack of concentric rings. Ring spacing widens
with the ring index, and ring brightness follows a distance curve whose
bright band slowly moves outwards as the scene clock runs.

The stripe loop is the outer loop and the circle loop the inner one, so
rings of different circles interleave: a later circle's outer rings are
drawn over an earlier circle's inner rings.
"""

import math
from typing import List, Optional, Protocol, Tuple

import numpy as np
import pygame
import pygame.gfxdraw

from haloscope.config import HaloConfig
from haloscope.core.interpolate import LINEAR, build_interpolator
from haloscope.core.scene import Circle, Scene

RGBA = Tuple[int, int, int, int]

BLACK = (0, 0, 0)


def gray(level: float) -> RGBA:
    """White with alpha `level` in [0, 1]; blends to gray over black."""
    level = min(max(level, 0.0), 1.0)
    return (255, 255, 255, int(round(level * 255)))


class Canvas(Protocol):
    """Raster target the renderer draws on."""

    @property
    def size(self) -> Tuple[int, int]: ...

    def fill(self, color: Tuple[int, int, int]): ...

    def stroke_circle(
        self,
        center: Tuple[float, float],
        radius: float,
        color: RGBA,
        width: float,
    ): ...


class PygameCanvas:
    """Canvas over a pygame Surface, alpha-blending strokes in place."""

    def __init__(self, surface: pygame.Surface):
        self.surface = surface

    @property
    def size(self) -> Tuple[int, int]:
        return self.surface.get_size()

    def fill(self, color: Tuple[int, int, int]):
        self.surface.fill(color)

    def stroke_circle(
        self,
        center: Tuple[float, float],
        radius: float,
        color: RGBA,
        width: float,
    ):
        if color[3] == 0:
            return
        cx, cy = int(round(center[0])), int(round(center[1]))
        # gfxdraw blends RGBA but only draws 1px outlines: stack them
        rings = max(1, int(round(width)))
        inner = radius - rings / 2.0
        for k in range(rings):
            r = int(round(inner + k + 0.5))
            if r >= 0:
                pygame.gfxdraw.circle(self.surface, cx, cy, r, color)


def surface_to_array(surface: pygame.Surface) -> np.ndarray:
    """Convert pygame surface to numpy array for video encoding."""
    # pygame uses (width, height) but numpy expects (height, width)
    arr = pygame.surfarray.array3d(surface)
    return np.ascontiguousarray(np.transpose(arr, (1, 0, 2)))


class StripeRenderer:
    """
    Draws a Scene as interleaved stripe halos.

    All curves are built from HaloConfig; the distance curve is rebuilt
    every frame because its bright band follows the scene clock.
    """

    def __init__(self, config: Optional[HaloConfig] = None):
        self.cfg = config or HaloConfig()
        mode = self.cfg.curve_mode
        self._period_to_alpha = build_interpolator([(-1, 0.001), (1, 0.5)], mode)
        # Fade in over the first tenth of a scene, out over the last
        self._scene_fade = build_interpolator(
            [(0, 0), (0.1, 1), (0.9, 1), (1, 0)], LINEAR
        )

    def distance_curve(self, t: float):
        """Alpha over normalised stripe distance, brightest band at `t` ms."""
        cfg = self.cfg
        brightest = cfg.brightest_base + t * cfg.brightest_rate
        return build_interpolator(
            [
                (0, 1),
                (brightest, 1),
                (brightest + 0.2, 0.5),
                (brightest + 0.5, 0.1),
            ],
            cfg.curve_mode,
        )

    def brightness(self, circle: Circle, t: float) -> float:
        """Oscillation term times envelope value (times scene fade if on)."""
        cfg = self.cfg
        if circle.period == 0:
            a = 1.0
        else:
            a = self._period_to_alpha(
                math.sin(circle.phase + circle.period * t * cfg.oscillation_rate)
            )
        a *= circle.envelope.value
        if cfg.scene_fade:
            a *= self._scene_fade(t / cfg.scene_timeout_ms)
        return a

    @staticmethod
    def max_corner_distance(cx: float, cy: float, w: int, h: int) -> float:
        return max(
            math.hypot(cx, cy),
            math.hypot(cx - w, cy),
            math.hypot(cx, cy - h),
            math.hypot(cx - w, cy - h),
        )

    def stripe_geometry(self, index: int) -> Tuple[float, float]:
        """
        Distance of stripe `index` from the centre (fraction of the long
        side) and the stripe count that would fit at its pitch.
        """
        cfg = self.cfg
        width = cfg.stripe_width
        space = width * (1 + index * cfg.spacing_growth)
        return cfg.stripe_offset + (width + space) * index, 1 / (width + space)

    def render(self, canvas: Canvas, scene: Scene) -> Canvas:
        """Clear `canvas` to black and draw every circle of `scene`."""
        cfg = self.cfg
        w, h = canvas.size
        d = max(w, h)
        canvas.fill(BLACK)

        t = scene.t
        dist_to_alpha = self.distance_curve(t)
        line_width = cfg.stripe_width * d

        prepared: List[Tuple[Tuple[float, float], float, float]] = []
        for circle in scene.circles:
            cx, cy = circle.x * w, circle.y * h
            prepared.append(
                ((cx, cy), self.max_corner_distance(cx, cy, w, h), self.brightness(circle, t))
            )

        for stripe_idx in range(cfg.stripe_count):
            dis, stripe_max_cnt = self.stripe_geometry(stripe_idx)
            level = dist_to_alpha((stripe_idx + 1) / stripe_max_cnt)
            radius = dis * d

            for center, max_dist, a in prepared:
                if radius > max_dist:
                    continue
                canvas.stroke_circle(center, radius, gray(a * level), line_width)

        return canvas

    def render_frame(self, scene: Scene, surface: Optional[pygame.Surface] = None) -> pygame.Surface:
        """Render onto `surface` (or a new one sized from the config)."""
        if surface is None:
            surface = pygame.Surface((self.cfg.width, self.cfg.height))
        self.render(PygameCanvas(surface), scene)
        return surface
