"""
Matplotlib-based live preview display.

Shows the composited preview buffer in a single axes and draws the ROI
overlay on top: dashed border, 8 resize handles, a center crosshair and
dimmed surroundings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import matplotlib.patches as patches
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from capturelens.core.geometry import Roi, handle_positions
from capturelens.renderers.base_renderer import BasePreviewDisplay


ROI_COLOR = "#007bff"
HANDLE_EDGE_COLOR = "white"
HANDLE_SIZE = 12.0
CROSSHAIR_HALF_LENGTH = 10.0
DIM_ALPHA = 0.3


class MatplotlibPreviewDisplay(BasePreviewDisplay):
    """
    Render live preview frames into a reusable Matplotlib figure.

    The figure and image artist are created on the first `show()` and
    updated in place afterwards, so a 10 Hz renderer does not pile up
    figures. The ROI overlay is rebuilt on every frame because the ROI
    can change between ticks.

    Example
    -------
    >>> from capturelens.renderers import MatplotlibPreviewDisplay
    >>> display = MatplotlibPreviewDisplay(interactive=True)
    >>> renderer = LivePreviewRenderer(session, source, display=display)
    """

    def __init__(
        self,
        figsize: tuple[float, float] = (8, 6),
        dpi: int = 100,
        interactive: bool = False,
    ) -> None:
        """
        Parameters
        ----------
        figsize : tuple[float, float], default=(8, 6)
            Figure size in inches (width, height).
        dpi : int, default=100
            Dots per inch for the figure and saved snapshots.
        interactive : bool, default=False
            If True, open a non-blocking window and flush GUI events on
            every frame.
        """
        self._figsize = figsize
        self._dpi = dpi
        self._interactive = interactive
        self._figure: Figure | None = None
        self._axes: plt.Axes | None = None
        self._image_artist: Any = None
        self._overlay_artists: list[Any] = []

    @property
    def figure(self) -> Figure | None:
        return self._figure

    @property
    def overlay_artist_count(self) -> int:
        return len(self._overlay_artists)

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
            Composited viewport-sized buffer.
        roi : Roi, optional
            Region to outline. None draws no overlay.
        **display_options
            - title: str shown above the preview
            - dim_alpha: float, default=0.3
        """
        display_buffer = self._normalize_for_display(preview_buffer)
        self._ensure_figure(display_buffer)

        if self._image_artist is None or self._image_artist.get_array().shape != display_buffer.shape:
            if self._image_artist is not None:
                self._image_artist.remove()
            self._image_artist = self._axes.imshow(display_buffer)
        else:
            self._image_artist.set_data(display_buffer)
        self._image_artist.set_visible(True)

        title = display_options.get("title")
        if title:
            self._axes.set_title(title, fontsize=12, fontweight="bold")

        self._remove_overlay()
        if roi is not None:
            buffer_height, buffer_width = display_buffer.shape[:2]
            self._draw_roi_overlay(
                roi,
                buffer_width,
                buffer_height,
                dim_alpha=display_options.get("dim_alpha", DIM_ALPHA),
            )

        self._refresh()

    def clear(self) -> None:
        if self._figure is None:
            return
        self._remove_overlay()
        if self._image_artist is not None:
            self._image_artist.set_visible(False)
        self._refresh()

    def save(self, save_path: str | Path) -> Path:
        """Write the current preview (with overlay) to an image file."""
        if self._figure is None:
            raise RuntimeError("Nothing to save yet: show() has not been called.")
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        self._figure.savefig(save_path, dpi=self._dpi, bbox_inches="tight")
        return save_path

    def close(self) -> None:
        if self._figure is not None:
            plt.close(self._figure)
        self._figure = None
        self._axes = None
        self._image_artist = None
        self._overlay_artists = []

    # ------------------------------------------------------------------
    # Drawing helpers
    # ------------------------------------------------------------------

    def _ensure_figure(self, display_buffer: np.ndarray) -> None:
        if self._figure is not None:
            return
        self._figure, self._axes = plt.subplots(figsize=self._figsize, dpi=self._dpi)
        self._axes.axis("off")
        if self._interactive:
            plt.show(block=False)

    def _draw_roi_overlay(
        self,
        roi: Roi,
        buffer_width: int,
        buffer_height: int,
        dim_alpha: float,
    ) -> None:
        # Dim the four bands around the ROI, leaving the ROI itself clear
        dim_bands = (
            (0, 0, buffer_width, roi.y),
            (0, roi.bottom, buffer_width, buffer_height - roi.bottom),
            (0, roi.y, roi.x, roi.height),
            (roi.right, roi.y, buffer_width - roi.right, roi.height),
        )
        for band_x, band_y, band_width, band_height in dim_bands:
            if band_width <= 0 or band_height <= 0:
                continue
            self._add_overlay(patches.Rectangle(
                (band_x, band_y),
                band_width,
                band_height,
                facecolor="black",
                edgecolor="none",
                alpha=dim_alpha,
            ))

        self._add_overlay(patches.Rectangle(
            (roi.x, roi.y),
            roi.width,
            roi.height,
            linewidth=2.0,
            linestyle="--",
            edgecolor=ROI_COLOR,
            facecolor="none",
        ))

        half_handle = HANDLE_SIZE / 2
        for handle_x, handle_y in handle_positions(roi).values():
            self._add_overlay(patches.Rectangle(
                (handle_x - half_handle, handle_y - half_handle),
                HANDLE_SIZE,
                HANDLE_SIZE,
                linewidth=1.5,
                edgecolor=HANDLE_EDGE_COLOR,
                facecolor=ROI_COLOR,
            ))

        center_x, center_y = roi.center
        self._overlay_artists.extend(self._axes.plot(
            [center_x - CROSSHAIR_HALF_LENGTH, center_x + CROSSHAIR_HALF_LENGTH],
            [center_y, center_y],
            color=ROI_COLOR,
            linewidth=2.0,
        ))
        self._overlay_artists.extend(self._axes.plot(
            [center_x, center_x],
            [center_y - CROSSHAIR_HALF_LENGTH, center_y + CROSSHAIR_HALF_LENGTH],
            color=ROI_COLOR,
            linewidth=2.0,
        ))

        # plot() may autoscale; pin the view to the buffer
        self._axes.set_xlim(-0.5, buffer_width - 0.5)
        self._axes.set_ylim(buffer_height - 0.5, -0.5)

    def _add_overlay(self, patch: patches.Patch) -> None:
        self._axes.add_patch(patch)
        self._overlay_artists.append(patch)

    def _remove_overlay(self) -> None:
        for overlay_artist in self._overlay_artists:
            overlay_artist.remove()
        self._overlay_artists = []

    def _refresh(self) -> None:
        self._figure.canvas.draw_idle()
        if self._interactive:
            self._figure.canvas.flush_events()

    def __repr__(self) -> str:
        return (
            f"<MatplotlibPreviewDisplay figsize={self._figsize} dpi={self._dpi} "
            f"open={self._figure is not None}>"
        )
