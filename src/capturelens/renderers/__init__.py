"""
Live preview loop and its display backends.

The renderer composites frames; displays only show them. This separation
allows swapping Matplotlib for a GUI canvas without touching the loop.
"""

from capturelens.renderers.base_renderer import BasePreviewDisplay, RecordingPreviewDisplay
from capturelens.renderers.live_preview import (
    FilterDescription,
    LivePreviewRenderer,
    compose_filter,
)
from capturelens.renderers.matplotlib_renderer import MatplotlibPreviewDisplay

__all__ = [
    "BasePreviewDisplay",
    "FilterDescription",
    "LivePreviewRenderer",
    "MatplotlibPreviewDisplay",
    "RecordingPreviewDisplay",
    "compose_filter",
]
