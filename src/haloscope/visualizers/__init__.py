"""Visualization renderers."""

from haloscope.visualizers.stripes import PygameCanvas, StripeRenderer

__all__ = ["PygameCanvas", "StripeRenderer"]
