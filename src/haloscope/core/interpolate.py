"""
Piecewise interpolation over control-point tables.

Used to shape brightness over stripe distance, oscillation phase and
envelope time. Lookups clamp flat outside the table; there is no
extrapolation.
"""

import bisect
from typing import Callable, Sequence, Tuple

Point = Tuple[float, float]

LINEAR = "linear"
EXPONENTIAL = "exponential"
MODES = (LINEAR, EXPONENTIAL)


class InterpolationError(ValueError):
    """Raised when a control-point table cannot be interpolated."""


def lerp_segment(x: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Slope-intercept interpolation between two points."""
    m = (y2 - y1) / (x2 - x1)
    b = y1 - m * x1
    return m * x + b


def exp_segment(x: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Exponential interpolation between two points with positive y."""
    return y1 * (y2 / y1) ** ((x - x1) / (x2 - x1))


_SEGMENTS = {
    LINEAR: lerp_segment,
    EXPONENTIAL: exp_segment,
}


def build_interpolator(
    points: Sequence[Point],
    mode: str = LINEAR,
) -> Callable[[float], float]:
    """
    Build a function interpolating between sorted control points.

    Args:
        points: (x, y) pairs with strictly increasing x. At least one.
        mode: "linear" or "exponential". Exponential tables need
            strictly positive y values.

    Returns:
        f(x) returning the first y at or below the first x, the last y
        at or above the last x, and the segment value in between.

    Raises:
        InterpolationError: empty or unsorted table, unknown mode, or
            non-positive y values in exponential mode.
    """
    if mode not in _SEGMENTS:
        raise InterpolationError(f"Unknown interpolation mode: {mode!r}")

    table = tuple((float(x), float(y)) for x, y in points)
    if not table:
        raise InterpolationError("Interpolation table is empty")

    xs = tuple(p[0] for p in table)
    for a, b in zip(xs, xs[1:]):
        if not a < b:
            raise InterpolationError(
                f"Interpolation table x values must be strictly increasing: {xs}"
            )

    if mode == EXPONENTIAL and any(y <= 0 for _, y in table):
        raise InterpolationError("Exponential interpolation needs y values > 0")

    segment = _SEGMENTS[mode]
    first_x, first_y = table[0]
    last_x, last_y = table[-1]

    def interpolate(x: float) -> float:
        if x >= last_x:
            return last_y
        if x <= first_x:
            return first_y
        # First point with x >= query; never 0 after the clamps above
        i = bisect.bisect_left(xs, x)
        x1, y1 = table[i - 1]
        x2, y2 = table[i]
        return segment(x, x1, y1, x2, y2)

    return interpolate
