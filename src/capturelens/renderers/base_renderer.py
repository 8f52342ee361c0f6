"""
Abstract base class for live preview displays.

A display receives the composited preview buffer on every renderer tick
and puts it somewhere visible (a matplotlib window, a GUI canvas, a test
recorder). The base class normalizes incoming buffers so subclasses never
deal with shape or dtype conversion directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import numpy as np

from capturelens.utils.image_arrays import normalize_to_rgb_uint8

if TYPE_CHECKING:
    from capturelens.core.geometry import Roi


class BasePreviewDisplay(ABC):
    """
    Abstract base class for preview output backends.

    Subclasses implement:
    - `show()`: draw one composited buffer, optionally with the ROI overlay
    - `clear()`: blank the preview surface

    The renderer calls `show()` at the preview rate, so implementations
    should update existing artists in place rather than rebuild a figure.
    """

    @abstractmethod
    def show(
        self,
        preview_buffer: np.ndarray,
        roi: Roi | None = None,
        **display_options: Any,
    ) -> None:
        """
        Draw one preview frame.

        Parameters
        ----------
        preview_buffer : np.ndarray
            (H, W, 3) uint8 buffer sized to the viewport.
        roi : Roi, optional
            Current region of interest in viewport coordinates.
        **display_options
            Backend-specific options (title, overlay colors, etc.)
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove any drawn preview so the raw camera view shows through."""
        ...

    def _normalize_for_display(self, raw_image_data: Any) -> np.ndarray:
        """
        Convert any common image layout to display-ready (H, W, 3) uint8.

        Raises
        ------
        ValueError
            If the input format cannot be interpreted.
        """
        return normalize_to_rgb_uint8(raw_image_data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class RecordingPreviewDisplay(BasePreviewDisplay):
    """
    Display that keeps what it was asked to draw instead of drawing it.

    Handy for headless runs and tests: `frames_shown` counts draws,
    `last_buffer` and `last_roi` hold the most recent call, and
    `is_cleared` tells whether the surface is currently blank.
    """

    def __init__(self) -> None:
        self.frames_shown = 0
        self.clear_count = 0
        self.last_buffer: np.ndarray | None = None
        self.last_roi: Roi | None = None

    def show(
        self,
        preview_buffer: np.ndarray,
        roi: Roi | None = None,
        **display_options: Any,
    ) -> None:
        self.last_buffer = self._normalize_for_display(preview_buffer)
        self.last_roi = roi
        self.frames_shown += 1

    def clear(self) -> None:
        self.last_buffer = None
        self.clear_count += 1

    @property
    def is_cleared(self) -> bool:
        return self.last_buffer is None

    def __repr__(self) -> str:
        return f"<RecordingPreviewDisplay shown={self.frames_shown} cleared={self.clear_count}>"
