"""
Single, burst and augmentation-driven capture.

The controller turns the current frame into finished CapturedImage objects:

    frame (preview buffer or frame source)
        -> crop to ROI (at the frame's native resolution)
        -> encode
        -> caller-supplied effects, then the active preset
           (skipped for preview buffers, which already show it)
        -> CapturedImage -> listeners

Capture operations are coroutines. They never overlap: a request that
arrives while another capture or burst runs is handled by the configured
busy policy (log and ignore by default, or raise ConcurrencyError).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Mapping

import numpy as np

from capturelens.analysis.frame_quality import assess_frame_quality
from capturelens.augmentations.codec import encode_image, media_type_for, probe_dimensions
from capturelens.augmentations.effects import (
    DEFAULT_EFFECT_PARAMETERS,
    EFFECT_FUNCTIONS,
    AugmentationStep,
    apply_effect,
    plan_random_augmentation,
)
from capturelens.augmentations.presets import Preset, plan_preset_passes
from capturelens.core.errors import (
    BurstCaptureError,
    CaptureError,
    CaptureLensError,
    ConcurrencyError,
    ValidationError,
)
from capturelens.core.frame import CapturedImage
from capturelens.core.geometry import crop_to_roi

if TYPE_CHECKING:
    from capturelens.core.frame_source import FrameSource
    from capturelens.core.session import CaptureSession
    from capturelens.renderers.live_preview import LivePreviewRenderer

logger = logging.getLogger(__name__)

CaptureListener = Callable[[CapturedImage], "Awaitable[None] | None"]

RANDOM_EFFECT_ID = "random"


class CaptureController:
    """
    Orchestrates captures for one CaptureSession.

    Parameters
    ----------
    session : CaptureSession
        Supplies ROI, active preset, class label, config and random source.
    frame_source : FrameSource
        Camera boundary used when no live preview is showing.
    preview : LivePreviewRenderer, optional
        If given and currently showing a processed frame, captures are
        taken from its buffer so the user gets exactly what they see.
    listeners : iterable of callables, optional
        Dataset-store consumers. Each receives every CapturedImage; a
        listener may be a plain function or a coroutine function.

    Example
    -------
    >>> controller = CaptureController(session, source, listeners=[dataset.add])
    >>> images = await controller.capture_burst(5, interval_ms=200)
    >>> len(images)
    5
    """

    def __init__(
        self,
        session: CaptureSession,
        frame_source: FrameSource,
        *,
        preview: LivePreviewRenderer | None = None,
        listeners: Iterable[CaptureListener] = (),
    ) -> None:
        self._session = session
        self._frame_source = frame_source
        self._preview = preview
        self._listeners: list[CaptureListener] = list(listeners)

        self._is_capturing = False
        self._is_bursting = False
        self._abort_requested = False

    # ------------------------------------------------------------------
    # Observers and state
    # ------------------------------------------------------------------

    def add_listener(self, listener: CaptureListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CaptureListener) -> None:
        self._listeners.remove(listener)

    @property
    def is_capturing(self) -> bool:
        """True during any capture, including every shot of a burst."""
        return self._is_capturing

    @property
    def is_bursting(self) -> bool:
        return self._is_bursting

    @property
    def is_busy(self) -> bool:
        return self._is_capturing or self._is_bursting

    def abort_burst(self) -> None:
        """
        Ask the running burst to stop.

        Checked between shots only; a capture already in flight completes.
        """
        if self._is_bursting:
            logger.info("Burst abort requested")
            self._abort_requested = True

    # ------------------------------------------------------------------
    # Capture operations
    # ------------------------------------------------------------------

    async def capture_single(self, class_name: str | None = None) -> CapturedImage | None:
        """
        Capture the current frame once.

        Returns
        -------
        CapturedImage or None
            None if the controller was busy and the request was ignored.

        Raises
        ------
        CaptureError
            If no frame is available.
        DecodeError
            If a preset pass fails to decode an intermediate image.
        ConcurrencyError
            If busy and PipelineConfig.raise_when_busy is set.
        """
        if self.is_busy:
            self._handle_busy_request("capture_single")
            return None

        self._is_capturing = True
        try:
            captured_image = await self._capture_one(class_name)
            await self._emit(captured_image)
        finally:
            self._is_capturing = False

        logger.info("Captured %s", captured_image)
        return captured_image

    async def capture_burst(
        self,
        count: int,
        interval_ms: float,
        class_name: str | None = None,
    ) -> list[CapturedImage]:
        """
        Take `count` captures, sleeping `interval_ms` between consecutive ones.

        Parameters are validated before any frame is taken. Each image is
        delivered to the listeners as soon as it exists, so images taken
        before a failure or an abort are never lost.

        Raises
        ------
        ValidationError
            If count or interval_ms is outside the configured range.
        BurstCaptureError
            If a shot fails; carries the images captured so far.
        ConcurrencyError
            If busy and PipelineConfig.raise_when_busy is set.
        """
        self._validate_burst(count, interval_ms)
        if self.is_busy:
            self._handle_busy_request("capture_burst")
            return []

        self._is_bursting = True
        self._is_capturing = True
        self._abort_requested = False
        captured_images: list[CapturedImage] = []
        logger.info("Starting burst: %d shots every %s ms", count, interval_ms)

        try:
            for shot_index in range(count):
                if self._abort_requested:
                    logger.info("Burst aborted after %d of %d shots", shot_index, count)
                    break

                try:
                    captured_image = await self._capture_one(class_name)
                except CaptureLensError as shot_error:
                    raise BurstCaptureError(
                        f"Burst stopped at shot {shot_index + 1} of {count}: {shot_error}",
                        captured_images=captured_images,
                        failed_index=shot_index,
                    ) from shot_error

                captured_images.append(captured_image)
                await self._emit(captured_image)

                if shot_index < count - 1:
                    await asyncio.sleep(interval_ms / 1000.0)
        finally:
            self._is_bursting = False
            self._is_capturing = False
            self._abort_requested = False

        logger.info("Burst finished with %d images", len(captured_images))
        return captured_images

    async def capture_burst_with_augmentation(
        self,
        effect_ids: Iterable[str],
        params: Mapping[str, Any] | None = None,
        class_name: str | None = None,
    ) -> CapturedImage | None:
        """
        Capture once, then apply the given effects in the given order.

        Parameters
        ----------
        effect_ids : iterable of str
            Any library effect id ('brightness', ..., 'flip', 'rotate') or
            'random' for a random 2-4 effect combination.
        params : mapping, optional
            Parameter per effect id; missing ones use the slider defaults.

        The active preset, if any, is applied after the caller's effects.
        """
        params = dict(params or {})
        requested_ids = list(effect_ids)
        unknown_ids = [
            effect_id for effect_id in requested_ids
            if effect_id != RANDOM_EFFECT_ID and effect_id not in EFFECT_FUNCTIONS
        ]
        if unknown_ids:
            raise ValidationError(
                f"Unknown effect ids: {', '.join(unknown_ids)}. "
                f"Known: {', '.join([*EFFECT_FUNCTIONS, RANDOM_EFFECT_ID])}."
            )

        if self.is_busy:
            self._handle_busy_request("capture_burst_with_augmentation")
            return None

        planned_steps: list[AugmentationStep] = []
        for effect_id in requested_ids:
            if effect_id == RANDOM_EFFECT_ID:
                planned_steps.extend(plan_random_augmentation(self._session.rng))
            else:
                planned_steps.append(AugmentationStep(
                    effect_id,
                    params.get(effect_id, DEFAULT_EFFECT_PARAMETERS[effect_id]),
                ))

        self._is_capturing = True
        try:
            captured_image = await self._capture_one(class_name, planned_steps)
            await self._emit(captured_image)
        finally:
            self._is_capturing = False

        logger.info("Captured %s with effects %s", captured_image, captured_image.applied_effects)
        return captured_image

    async def apply_preset_to_image(self, image_bytes: bytes, preset: Preset | str) -> bytes:
        """
        Apply every non-identity setting of a preset in fixed effect order.

        A preset {brightness: 1.2, contrast: 0, saturation: 1.0} runs exactly
        one pass (brightness).
        """
        if isinstance(preset, str):
            preset = self._session.presets.get(preset)
        transformed_bytes, _ = await self._apply_preset_passes(image_bytes, preset)
        return transformed_bytes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_burst(self, count: int, interval_ms: float) -> None:
        min_count, max_count = self._session.config.burst_count_range
        min_interval, max_interval = self._session.config.burst_interval_ms_range

        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError(f"Burst count must be an integer, got {count!r}.")
        if not min_count <= count <= max_count:
            raise ValidationError(
                f"Burst count must be in [{min_count}, {max_count}], got {count}."
            )
        if isinstance(interval_ms, bool) or not isinstance(interval_ms, (int, float)):
            raise ValidationError(f"Burst interval must be a number, got {interval_ms!r}.")
        if not min_interval <= interval_ms <= max_interval:
            raise ValidationError(
                f"Burst interval must be in [{min_interval}, {max_interval}] ms, got {interval_ms}."
            )

    def _handle_busy_request(self, operation_name: str) -> None:
        message = (
            f"{operation_name} requested while busy "
            f"(capturing={self._is_capturing}, bursting={self._is_bursting})"
        )
        if self._session.config.raise_when_busy:
            raise ConcurrencyError(f"{message}. Wait for the running capture to finish.")
        logger.warning("Ignoring %s", message)

    def _acquire_pixels(self) -> tuple[np.ndarray, bool]:
        """Return the pixels to capture and whether they came from the preview."""
        # A stale preview must never stand in for a camera that stopped
        preview_is_live = (
            self._preview is not None
            and self._preview.has_active_preview
            and self._frame_source.is_ready
        )
        if preview_is_live:
            preview_buffer = self._preview.latest_preview
            if preview_buffer is not None:
                logger.debug("Capturing from the live preview buffer")
                return preview_buffer, True

        if not self._frame_source.is_ready:
            raise CaptureError(
                f"No frame available: {self._frame_source!r} is not ready. "
                "Is the camera still starting up?"
            )
        frame = self._frame_source.get_frame()
        if frame is None:
            raise CaptureError(f"No frame available: {self._frame_source!r} returned None.")
        return frame.pixels, False

    async def _capture_one(
        self,
        class_name: str | None,
        extra_steps: Iterable[AugmentationStep] = (),
    ) -> CapturedImage:
        config = self._session.config
        frame_pixels, from_preview = self._acquire_pixels()
        captured_at = datetime.now(timezone.utc)

        cropped_pixels = crop_to_roi(
            frame_pixels,
            self._session.roi,
            self._session.roi_engine.viewport_size,
        )
        quality_report = assess_frame_quality(cropped_pixels) if config.assess_quality else None
        image_bytes = encode_image(cropped_pixels, config.encode_format, config.jpeg_quality)

        applied_effects: list[str] = []
        for step in extra_steps:
            image_bytes = await apply_effect(
                image_bytes, step.effect_id, step.value, rng=self._session.rng
            )
            applied_effects.append(step.effect_id)

        # The preview already shows the preset it was seeded with
        active_preset = None if from_preview else self._session.active_preset
        if active_preset is not None:
            image_bytes, preset_effects = await self._apply_preset_passes(image_bytes, active_preset)
            applied_effects.extend(preset_effects)

        # Rotation can change the output size, so read it back from the bytes
        output_width, output_height = probe_dimensions(image_bytes)
        return CapturedImage(
            image_bytes=image_bytes,
            class_name=class_name or self._session.class_name,
            timestamp_iso=captured_at.isoformat(),
            width=output_width,
            height=output_height,
            media_type=media_type_for(config.encode_format),
            applied_effects=tuple(applied_effects),
            quality=quality_report,
        )

    async def _apply_preset_passes(
        self,
        image_bytes: bytes,
        preset: Preset,
    ) -> tuple[bytes, list[str]]:
        applied_effects = []
        for effect_id, value in plan_preset_passes(preset.settings):
            image_bytes = await apply_effect(image_bytes, effect_id, value, rng=self._session.rng)
            applied_effects.append(effect_id)
        logger.debug("Preset '%s' ran passes: %s", preset.preset_id, applied_effects)
        return image_bytes, applied_effects

    async def _emit(self, captured_image: CapturedImage) -> None:
        for listener in list(self._listeners):
            listener_result = listener(captured_image)
            if inspect.isawaitable(listener_result):
                await listener_result

    def __repr__(self) -> str:
        return (
            f"<CaptureController capturing={self._is_capturing} "
            f"bursting={self._is_bursting} listeners={len(self._listeners)}>"
        )
