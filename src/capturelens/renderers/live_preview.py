"""
Throttled live preview of the active augmentations.

The renderer runs as a self-rescheduling tick on the asyncio event loop,
about 10 Hz by default. Each tick that has something to show:

1. draws the current camera frame into an off-screen buffer sized to the
   viewport,
2. applies the preview's geometric transforms (flip, rotate) the way a
   transformed drawing context would, keeping the canvas size,
3. applies all fast-path effects as one composed filter (a single color
   matrix plus an optional box blur),
4. runs the slow-path effects (noise, then sharpen) as explicit passes.

A tick with nothing active clears the overlay and skips all pixel work.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image

from capturelens.augmentations import kernels

if TYPE_CHECKING:
    from capturelens.core.frame_source import FrameSource
    from capturelens.core.session import AugmentationSnapshot, CaptureSession
    from capturelens.renderers.base_renderer import BasePreviewDisplay

logger = logging.getLogger(__name__)

FAST_PATH_EFFECTS = ("brightness", "contrast", "saturation", "hue", "blur")
SLOW_PATH_EFFECTS = ("noise", "sharpen")


@dataclass(frozen=True, slots=True, eq=False)
class FilterDescription:
    """
    All fast-path effects of one tick folded into a single operation.

    The color matrix is applied once (one clamp instead of one per
    effect), then the box blur. `str()` gives a CSS-like summary such as
    "brightness(1.2) saturate(1.5) blur(2px)".
    """
    color_matrix: np.ndarray = field(default_factory=lambda: kernels.IDENTITY_COLOR_MATRIX.copy())
    blur_radius: int = 0
    terms: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.terms

    def apply(self, pixels: np.ndarray) -> np.ndarray:
        filtered = pixels
        if not np.array_equal(self.color_matrix, kernels.IDENTITY_COLOR_MATRIX):
            filtered = kernels.apply_color_matrix(filtered, self.color_matrix)
        if self.blur_radius > 0:
            filtered = kernels.box_blur(filtered, self.blur_radius)
        return filtered

    def __str__(self) -> str:
        return " ".join(self.terms) if self.terms else "none"


def compose_filter(snapshot: AugmentationSnapshot) -> FilterDescription:
    """Fold the snapshot's enabled fast-path effects into one filter."""
    color_matrices = []
    terms = []
    radius = 0

    for effect_id, value in snapshot.active_effects():
        if effect_id == "brightness":
            color_matrices.append(kernels.brightness_matrix(value))
            terms.append(f"brightness({value:g})")
        elif effect_id == "contrast":
            color_matrices.append(kernels.contrast_matrix(value))
            terms.append(f"contrast({kernels.contrast_factor(value):.3g})")
        elif effect_id == "saturation":
            color_matrices.append(kernels.saturation_matrix(value))
            terms.append(f"saturate({value:g})")
        elif effect_id == "hue":
            color_matrices.append(kernels.hue_matrix(value))
            terms.append(f"hue-rotate({value:g}deg)")
        elif effect_id == "blur":
            radius = kernels.blur_radius(value)
            terms.append(f"blur({radius}px)")

    return FilterDescription(
        color_matrix=kernels.compose_color_matrices(*color_matrices),
        blur_radius=radius,
        terms=tuple(terms),
    )


def slow_path_passes(snapshot: AugmentationSnapshot) -> list[tuple[str, float]]:
    """Enabled slow-path effects, always noise before sharpen."""
    active_values = dict(snapshot.active_effects())
    return [
        (effect_id, active_values[effect_id])
        for effect_id in SLOW_PATH_EFFECTS
        if effect_id in active_values
    ]


def apply_preview_transforms(pixels: np.ndarray, snapshot: AugmentationSnapshot) -> np.ndarray:
    """Flip and rotate inside the same canvas, like a transformed 2D context."""
    transformed = pixels
    if snapshot.flip_horizontal:
        transformed = kernels.flip(transformed, "horizontal")
    if snapshot.flip_vertical:
        transformed = kernels.flip(transformed, "vertical")
    if snapshot.rotation_degrees % 360 != 0:
        transformed = kernels.rotate_in_place(transformed, snapshot.rotation_degrees)
    return transformed


class LivePreviewRenderer:
    """
    Cooperative preview loop bound to one CaptureSession.

    Parameters
    ----------
    session : CaptureSession
        Supplies the ROI, the active augmentation set and the config.
    frame_source : FrameSource
        Camera boundary; read once per tick.
    display : BasePreviewDisplay, optional
        Where composited frames go. Without one the renderer still keeps
        `latest_preview` up to date for the capture controller.
    interval_seconds : float, optional
        Tick period; defaults to config.preview_interval_seconds.
    rng : np.random.Generator, optional
        Random source for the noise pass; defaults to the session's.
    loop : asyncio.AbstractEventLoop, optional
        Loop to schedule ticks on; defaults to the running loop at enable().

    Example
    -------
    >>> renderer = LivePreviewRenderer(session, source, display=MatplotlibPreviewDisplay())
    >>> renderer.enable()
    >>> await asyncio.sleep(1.0)   # ~10 ticks
    >>> renderer.disable()         # no draw happens after this returns
    """

    def __init__(
        self,
        session: CaptureSession,
        frame_source: FrameSource,
        display: BasePreviewDisplay | None = None,
        *,
        interval_seconds: float | None = None,
        rng: np.random.Generator | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._session = session
        self._frame_source = frame_source
        self._display = display
        self._interval_seconds = interval_seconds or session.config.preview_interval_seconds
        self._rng = rng if rng is not None else session.rng
        self._loop = loop

        self._enabled = False
        self._timer: asyncio.TimerHandle | None = None
        self._latest_preview: np.ndarray | None = None
        self._ticks_rendered = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Start ticking. Must be called with a running event loop unless one was given."""
        if self._enabled:
            return
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as no_loop_error:
                raise RuntimeError(
                    "LivePreviewRenderer.enable() needs a running event loop. "
                    "Call it from async code or pass loop= to the constructor."
                ) from no_loop_error
        self._enabled = True
        self._schedule_next_tick()
        logger.info("Live preview enabled (every %.3fs)", self._interval_seconds)

    def disable(self) -> None:
        """Stop ticking. The pending tick is cancelled before this returns."""
        self._enabled = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._clear_overlay()
        logger.info("Live preview disabled after %d rendered ticks", self._ticks_rendered)

    def _schedule_next_tick(self) -> None:
        self._timer = self._loop.call_later(self._interval_seconds, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if not self._enabled:
            return
        try:
            self.render_once()
        except Exception:
            logger.exception("Live preview tick failed; keeping the loop alive")
        if self._enabled:
            self._schedule_next_tick()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def latest_preview(self) -> np.ndarray | None:
        """Last composited buffer (read-only), or None if nothing is shown."""
        with self._session.lock:
            return self._latest_preview

    @property
    def has_active_preview(self) -> bool:
        """True when the renderer is on and currently showing a processed frame."""
        return self._enabled and self.latest_preview is not None

    @property
    def ticks_rendered(self) -> int:
        return self._ticks_rendered

    def render_once(self) -> np.ndarray | None:
        """
        Run one tick's worth of work and return the composited buffer.

        Returns None without drawing when the renderer is disabled, when
        nothing is active, or when the source has no frame.
        """
        if not self._enabled:
            return None

        snapshot = self._session.augmentations.snapshot()
        if snapshot.is_trivial:
            self._clear_overlay()
            return None

        frame = self._frame_source.get_frame() if self._frame_source.is_ready else None
        if frame is None:
            logger.debug("Frame source not ready; dropping the preview")
            self._clear_overlay()
            return None

        preview_buffer = self._draw_to_viewport(frame.pixels)
        preview_buffer = apply_preview_transforms(preview_buffer, snapshot)

        fast_filter = compose_filter(snapshot)
        if not fast_filter.is_empty:
            preview_buffer = fast_filter.apply(preview_buffer)

        for effect_id, value in slow_path_passes(snapshot):
            if effect_id == "noise":
                preview_buffer = kernels.add_uniform_noise(preview_buffer, value, rng=self._rng)
            else:
                preview_buffer = kernels.sharpen(preview_buffer, value)

        logger.debug("Preview tick: filter=%s slow=%s", fast_filter, slow_path_passes(snapshot))

        preview_buffer = np.ascontiguousarray(preview_buffer)
        preview_buffer.flags.writeable = False
        with self._session.lock:
            self._latest_preview = preview_buffer
        self._ticks_rendered += 1

        if self._display is not None:
            self._display.show(preview_buffer, roi=self._session.roi)
        return preview_buffer

    def _draw_to_viewport(self, pixels: np.ndarray) -> np.ndarray:
        viewport_width, viewport_height = self._session.roi_engine.viewport_size
        target_size = (max(1, int(round(viewport_width))), max(1, int(round(viewport_height))))
        if (pixels.shape[1], pixels.shape[0]) == target_size:
            return pixels.copy()
        resized = Image.fromarray(pixels).resize(target_size, resample=Image.Resampling.BILINEAR)
        return np.asarray(resized, dtype=np.uint8).copy()

    def _clear_overlay(self) -> None:
        with self._session.lock:
            had_preview = self._latest_preview is not None
            self._latest_preview = None
        if had_preview and self._display is not None:
            self._display.clear()

    def __repr__(self) -> str:
        return (
            f"<LivePreviewRenderer enabled={self._enabled} "
            f"interval={self._interval_seconds}s ticks={self._ticks_rendered}>"
        )
