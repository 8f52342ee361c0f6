"""
Region-of-interest geometry driven by pointer input.

RoiGeometryEngine is a small state machine:

    Idle -> Drawing  -> Idle   (pointer-down outside the ROI and its handles)
    Idle -> Dragging -> Idle   (pointer-down inside the ROI)
    Idle -> Resizing -> Idle   (pointer-down on one of the 8 handles)

Pointer-move updates the rectangle for the current mode; pointer-up
returns to Idle. Invalid geometry is never committed and never raises:
the engine simply keeps the last valid rectangle.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np

from capturelens.config import PipelineConfig

logger = logging.getLogger(__name__)

RoiListener = Callable[["Roi | None"], None]


@dataclass(frozen=True, slots=True)
class Roi:
    """
    Axis-aligned rectangle in on-screen (viewport) pixel coordinates.

    Stored as (x, y, width, height) because that is how pointer input
    builds it. Coordinates may be fractional; cropping rounds them.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"ROI width and height must be positive, got {self.width}x{self.height}. "
                "Did the rectangle invert?"
            )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point_x: float, point_y: float) -> bool:
        """True if the point lies inside the rectangle or on its border."""
        return self.x <= point_x <= self.right and self.y <= point_y <= self.bottom

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class RoiHandle(str, Enum):
    """The 8 resize handles: 4 corners and 4 edge midpoints."""
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    TOP_CENTER = "top-center"
    BOTTOM_CENTER = "bottom-center"
    LEFT_CENTER = "left-center"
    RIGHT_CENTER = "right-center"


class RoiInteractionMode(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    DRAGGING = "dragging"
    RESIZING = "resizing"


def handle_positions(roi: Roi) -> dict[RoiHandle, tuple[float, float]]:
    """Screen position of every resize handle for the given ROI."""
    center_x, center_y = roi.center
    return {
        RoiHandle.TOP_LEFT: (roi.x, roi.y),
        RoiHandle.TOP_RIGHT: (roi.right, roi.y),
        RoiHandle.BOTTOM_LEFT: (roi.x, roi.bottom),
        RoiHandle.BOTTOM_RIGHT: (roi.right, roi.bottom),
        RoiHandle.TOP_CENTER: (center_x, roi.y),
        RoiHandle.BOTTOM_CENTER: (center_x, roi.bottom),
        RoiHandle.LEFT_CENTER: (roi.x, center_y),
        RoiHandle.RIGHT_CENTER: (roi.right, center_y),
    }


class RoiGeometryEngine:
    """
    Pointer-driven editor for a single ROI inside a fixed-size viewport.

    Reads and writes go through a lock so the renderer tick and the capture
    controller always see a whole rectangle, even when pointer events arrive
    from another thread.

    Parameters
    ----------
    viewport_size : tuple[int, int]
        (width, height) of the on-screen container the pointer moves in.
    config : PipelineConfig, optional
        Supplies the minimum ROI size, handle hit radius and reset inset.
    lock : threading.RLock, optional
        Shared guard; the session passes its own so ROI and augmentation
        state are protected by the same lock.

    Example
    -------
    >>> engine = RoiGeometryEngine((640, 480))
    >>> engine.pointer_down(50, 50)
    >>> engine.pointer_move(150, 120)
    >>> engine.pointer_up()
    >>> engine.get_roi()
    Roi(x=50.0, y=50.0, width=100.0, height=70.0)
    """

    def __init__(
        self,
        viewport_size: tuple[int, int],
        config: PipelineConfig | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._lock = lock or threading.RLock()
        self._viewport_width, self._viewport_height = self._checked_viewport(viewport_size)

        self._roi: Roi | None = None
        self._enabled = True
        self._mode = RoiInteractionMode.IDLE
        self._anchor_point: tuple[float, float] | None = None
        self._drag_offset: tuple[float, float] = (0.0, 0.0)
        self._active_handle: RoiHandle | None = None
        self._listeners: list[RoiListener] = []

    @staticmethod
    def _checked_viewport(viewport_size: tuple[int, int]) -> tuple[float, float]:
        viewport_width, viewport_height = viewport_size
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError(
                f"Viewport size must be positive, got {viewport_width}x{viewport_height}."
            )
        return float(viewport_width), float(viewport_height)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    @property
    def viewport_size(self) -> tuple[float, float]:
        with self._lock:
            return (self._viewport_width, self._viewport_height)

    def set_viewport_size(self, viewport_size: tuple[int, int]) -> None:
        """
        Resize the container. An ROI that no longer fits is cleared.
        """
        with self._lock:
            self._viewport_width, self._viewport_height = self._checked_viewport(viewport_size)
            if self._roi is not None and not self._fits_viewport(
                self._roi.x, self._roi.y, self._roi.width, self._roi.height
            ):
                logger.debug("ROI %s no longer fits the resized viewport; clearing", self._roi)
                self._commit(None)

    @property
    def mode(self) -> RoiInteractionMode:
        return self._mode

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, is_enabled: bool) -> None:
        with self._lock:
            self._enabled = bool(is_enabled)
            if not self._enabled:
                self._end_interaction()
                self._commit(None)

    def get_roi(self) -> Roi | None:
        with self._lock:
            return self._roi

    def set_roi(self, candidate: Roi | None) -> None:
        """
        Replace the ROI. Invalid rectangles are ignored without raising.
        """
        with self._lock:
            if candidate is None:
                self._commit(None)
                return
            if not self._is_acceptable(candidate.x, candidate.y, candidate.width, candidate.height):
                logger.debug("Ignoring invalid ROI %s", candidate)
                return
            self._commit(candidate)

    def clear(self) -> None:
        """Remove the ROI entirely."""
        self.set_roi(None)

    def reset(self) -> Roi:
        """Set a centered rectangle inset on each side of the viewport."""
        inset = self._config.roi_reset_inset_fraction
        with self._lock:
            default_roi = Roi(
                x=self._viewport_width * inset,
                y=self._viewport_height * inset,
                width=self._viewport_width * (1 - 2 * inset),
                height=self._viewport_height * (1 - 2 * inset),
            )
            self._end_interaction()
            self._commit(default_roi)
            return default_roi

    def add_listener(self, listener: RoiListener) -> None:
        """Register a callable notified with the new ROI on every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: RoiListener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def hit_test_handle(self, point_x: float, point_y: float) -> RoiHandle | None:
        """Return the handle under the pointer, if any."""
        with self._lock:
            if self._roi is None:
                return None
            hit_radius = self._config.roi_handle_hit_radius
            for handle, (handle_x, handle_y) in handle_positions(self._roi).items():
                if abs(point_x - handle_x) < hit_radius and abs(point_y - handle_y) < hit_radius:
                    return handle
            return None

    def pointer_down(self, point_x: float, point_y: float) -> RoiInteractionMode:
        if not self._enabled:
            return self._mode

        with self._lock:
            # Handles take priority over the interior so corners stay grabbable
            handle = self.hit_test_handle(point_x, point_y)
            if handle is not None:
                self._mode = RoiInteractionMode.RESIZING
                self._active_handle = handle
                self._anchor_point = (point_x, point_y)
                return self._mode

            if self._roi is not None and self._roi.contains(point_x, point_y):
                self._mode = RoiInteractionMode.DRAGGING
                self._drag_offset = (point_x - self._roi.x, point_y - self._roi.y)
                return self._mode

            self._mode = RoiInteractionMode.DRAWING
            self._anchor_point = self._clamp_point(point_x, point_y)
            self._commit(None)
            return self._mode

    def pointer_move(self, point_x: float, point_y: float) -> Roi | None:
        if not self._enabled:
            return self.get_roi()

        with self._lock:
            if self._mode is RoiInteractionMode.DRAWING:
                self._update_drawing(point_x, point_y)
            elif self._mode is RoiInteractionMode.DRAGGING:
                self._update_dragging(point_x, point_y)
            elif self._mode is RoiInteractionMode.RESIZING:
                self._update_resizing(point_x, point_y)
            return self._roi

    def pointer_up(self) -> Roi | None:
        with self._lock:
            self._end_interaction()
            return self._roi

    def pointer_leave(self) -> Roi | None:
        """Leaving the viewport ends the gesture exactly like releasing."""
        return self.pointer_up()

    # ------------------------------------------------------------------
    # Mode updates
    # ------------------------------------------------------------------

    def _update_drawing(self, point_x: float, point_y: float) -> None:
        if self._anchor_point is None:
            return
        anchor_x, anchor_y = self._anchor_point
        current_x, current_y = self._clamp_point(point_x, point_y)

        self._try_commit(
            min(anchor_x, current_x),
            min(anchor_y, current_y),
            abs(current_x - anchor_x),
            abs(current_y - anchor_y),
        )

    def _update_dragging(self, point_x: float, point_y: float) -> None:
        if self._roi is None:
            return
        offset_x, offset_y = self._drag_offset
        max_x = self._viewport_width - self._roi.width
        max_y = self._viewport_height - self._roi.height
        moved_x = max(0.0, min(point_x - offset_x, max_x))
        moved_y = max(0.0, min(point_y - offset_y, max_y))
        self._try_commit(moved_x, moved_y, self._roi.width, self._roi.height)

    def _update_resizing(self, point_x: float, point_y: float) -> None:
        if self._roi is None or self._active_handle is None:
            return

        left, top = self._roi.x, self._roi.y
        right, bottom = self._roi.right, self._roi.bottom
        handle = self._active_handle

        if handle in (RoiHandle.TOP_LEFT, RoiHandle.BOTTOM_LEFT, RoiHandle.LEFT_CENTER):
            left = point_x
        if handle in (RoiHandle.TOP_RIGHT, RoiHandle.BOTTOM_RIGHT, RoiHandle.RIGHT_CENTER):
            right = point_x
        if handle in (RoiHandle.TOP_LEFT, RoiHandle.TOP_RIGHT, RoiHandle.TOP_CENTER):
            top = point_y
        if handle in (RoiHandle.BOTTOM_LEFT, RoiHandle.BOTTOM_RIGHT, RoiHandle.BOTTOM_CENTER):
            bottom = point_y

        self._try_commit(left, top, right - left, bottom - top)

    # ------------------------------------------------------------------
    # Validation and commit
    # ------------------------------------------------------------------

    def _clamp_point(self, point_x: float, point_y: float) -> tuple[float, float]:
        return (
            max(0.0, min(float(point_x), self._viewport_width)),
            max(0.0, min(float(point_y), self._viewport_height)),
        )

    def _fits_viewport(self, x: float, y: float, width: float, height: float) -> bool:
        return (
            x >= 0
            and y >= 0
            and x + width <= self._viewport_width
            and y + height <= self._viewport_height
        )

    def _is_acceptable(self, x: float, y: float, width: float, height: float) -> bool:
        minimum_size = self._config.roi_min_size
        return width >= minimum_size and height >= minimum_size and self._fits_viewport(
            x, y, width, height
        )

    def _try_commit(self, x: float, y: float, width: float, height: float) -> None:
        if not self._is_acceptable(x, y, width, height):
            return
        self._commit(Roi(x=x, y=y, width=width, height=height))

    def _commit(self, new_roi: Roi | None) -> None:
        if new_roi == self._roi:
            return
        self._roi = new_roi
        for listener in list(self._listeners):
            listener(new_roi)

    def _end_interaction(self) -> None:
        self._mode = RoiInteractionMode.IDLE
        self._anchor_point = None
        self._active_handle = None
        self._drag_offset = (0.0, 0.0)

    def __repr__(self) -> str:
        return (
            f"<RoiGeometryEngine viewport={self._viewport_width:g}x{self._viewport_height:g} "
            f"mode={self._mode.value} roi={self._roi}>"
        )


def crop_to_roi(
    pixels: np.ndarray,
    roi: Roi | None,
    viewport_size: tuple[float, float] | None = None,
) -> np.ndarray:
    """
    Crop a pixel array to the ROI, mapping viewport coordinates to pixels.

    The ROI lives in viewport space while the array is at the source's
    native resolution, so coordinates are scaled by
    (array_width / viewport_width, array_height / viewport_height).
    The output has exactly round(width * sx) x round(height * sy) pixels,
    shifted back inside the array if rounding pushed it past an edge.

    Parameters
    ----------
    pixels : np.ndarray
        (H, W, C) image at native resolution.
    roi : Roi or None
        Region to keep. None returns a copy of the whole array.
    viewport_size : tuple[float, float], optional
        (width, height) the ROI was drawn in. Defaults to the array size.
    """
    if roi is None:
        return pixels.copy()

    array_height, array_width = pixels.shape[:2]
    if viewport_size is None:
        viewport_size = (array_width, array_height)
    viewport_width, viewport_height = viewport_size
    scale_x = array_width / viewport_width
    scale_y = array_height / viewport_height

    crop_width = min(array_width, max(1, int(round(roi.width * scale_x))))
    crop_height = min(array_height, max(1, int(round(roi.height * scale_y))))
    left = min(max(0, int(round(roi.x * scale_x))), array_width - crop_width)
    top = min(max(0, int(round(roi.y * scale_y))), array_height - crop_height)

    return pixels[top : top + crop_height, left : left + crop_width].copy()
