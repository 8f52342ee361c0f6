"""
Unit tests for LivePreviewRenderer and filter composition.

Timing tests use short intervals and generous margins so they stay stable
on slow CI machines.
"""

import asyncio

import numpy as np
import pytest

from capturelens.augmentations import kernels
from capturelens.core.frame_source import ArrayFrameSource
from capturelens.core.session import ActiveAugmentationSet, CaptureSession
from capturelens.renderers.base_renderer import RecordingPreviewDisplay
from capturelens.renderers.live_preview import (
    LivePreviewRenderer,
    apply_preview_transforms,
    compose_filter,
    slow_path_passes,
)


class TestComposeFilter:
    """Tests for folding fast-path effects into one filter."""

    def test_empty_when_nothing_enabled(self) -> None:
        description = compose_filter(ActiveAugmentationSet().snapshot())
        assert description.is_empty
        assert str(description) == "none"

    def test_css_like_description(self) -> None:
        augmentations = ActiveAugmentationSet()
        augmentations.enable("brightness", 1.2)
        augmentations.enable("saturation", 1.5)
        augmentations.enable("blur", 2)
        augmentations.enable("noise", 0.1)

        description = compose_filter(augmentations.snapshot())

        assert str(description) == "brightness(1.2) saturate(1.5) blur(2px)"
        assert description.blur_radius == 2

    def test_composed_filter_matches_individual_kernels(self, colorful_frame: np.ndarray) -> None:
        augmentations = ActiveAugmentationSet()
        augmentations.enable("brightness", 1.1)
        augmentations.enable("hue", 15)

        via_filter = compose_filter(augmentations.snapshot()).apply(colorful_frame)
        via_kernels = kernels.hue_rotate(kernels.brightness(colorful_frame, 1.1), 15)

        np.testing.assert_allclose(via_filter.astype(int), via_kernels.astype(int), atol=2)

    def test_slow_path_order_is_noise_then_sharpen(self) -> None:
        augmentations = ActiveAugmentationSet()
        augmentations.enable("sharpen", 0.7)
        augmentations.enable("noise", 0.05)
        augmentations.enable("brightness", 1.4)

        assert slow_path_passes(augmentations.snapshot()) == [("noise", 0.05), ("sharpen", 0.7)]

    def test_preview_transforms_keep_canvas_size(self, colorful_frame: np.ndarray) -> None:
        augmentations = ActiveAugmentationSet()
        augmentations.toggle_flip_horizontal()
        augmentations.rotate_by(90)

        transformed = apply_preview_transforms(colorful_frame, augmentations.snapshot())
        assert transformed.shape == colorful_frame.shape


class TestRenderOnce:
    """Tests for a single tick's work."""

    @pytest.mark.asyncio
    async def test_buffer_is_sized_to_viewport(self, test_config, gradient_frame) -> None:
        session = CaptureSession((320, 240), config=test_config)
        session.augmentations.enable("brightness", 1.3)
        display = RecordingPreviewDisplay()
        renderer = LivePreviewRenderer(
            session, ArrayFrameSource([gradient_frame]), display, interval_seconds=60
        )

        renderer.enable()
        try:
            preview_buffer = renderer.render_once()
        finally:
            renderer.disable()

        assert preview_buffer.shape == (240, 320, 3)
        assert display.frames_shown == 1

    @pytest.mark.asyncio
    async def test_trivial_tick_clears_overlay_and_skips_work(self, capture_session, frame_source) -> None:
        display = RecordingPreviewDisplay()
        renderer = LivePreviewRenderer(capture_session, frame_source, display, interval_seconds=60)
        renderer.enable()
        try:
            capture_session.augmentations.enable("contrast", 40)
            assert renderer.render_once() is not None
            served_before = frame_source.frames_served

            capture_session.augmentations.disable("contrast")
            assert renderer.render_once() is None

            assert display.is_cleared
            assert display.clear_count == 1
            assert frame_source.frames_served == served_before
            assert not renderer.has_active_preview
        finally:
            renderer.disable()

    @pytest.mark.asyncio
    async def test_roi_is_passed_to_display(self, capture_session, frame_source) -> None:
        capture_session.augmentations.enable("sharpen", 0.5)
        capture_session.roi_engine.reset()
        display = RecordingPreviewDisplay()
        renderer = LivePreviewRenderer(capture_session, frame_source, display, interval_seconds=60)

        renderer.enable()
        try:
            renderer.render_once()
        finally:
            renderer.disable()

        assert display.last_roi == capture_session.roi

    @pytest.mark.asyncio
    async def test_latest_preview_is_read_only(self, capture_session, frame_source) -> None:
        capture_session.augmentations.enable("noise", 0.1)
        renderer = LivePreviewRenderer(capture_session, frame_source, interval_seconds=60)
        renderer.enable()
        try:
            renderer.render_once()
            with pytest.raises(ValueError):
                renderer.latest_preview[0, 0, 0] = 1
        finally:
            renderer.disable()

    @pytest.mark.asyncio
    async def test_exhausted_source_drops_stale_preview(self, capture_session, gradient_frame) -> None:
        """No frame means no preview, so nothing stale is left for capture."""
        capture_session.augmentations.enable("brightness", 1.2)
        display = RecordingPreviewDisplay()
        source = ArrayFrameSource([gradient_frame], repeat=False)
        renderer = LivePreviewRenderer(capture_session, source, display, interval_seconds=60)

        renderer.enable()
        try:
            assert renderer.render_once() is not None
            assert renderer.has_active_preview

            assert renderer.render_once() is None
            assert renderer.latest_preview is None
            assert not renderer.has_active_preview
            assert display.is_cleared
        finally:
            renderer.disable()

    def test_disabled_renderer_does_not_render(self, capture_session, frame_source) -> None:
        capture_session.augmentations.enable("brightness", 2.0)
        renderer = LivePreviewRenderer(capture_session, frame_source, interval_seconds=60)
        assert renderer.render_once() is None
        assert frame_source.frames_served == 0


class TestScheduling:
    """Tests for the self-rescheduling tick."""

    @pytest.mark.asyncio
    async def test_ticks_repeat_while_enabled(self, capture_session, frame_source) -> None:
        capture_session.augmentations.enable("saturation", 1.5)
        renderer = LivePreviewRenderer(capture_session, frame_source, interval_seconds=0.02)

        renderer.enable()
        await asyncio.sleep(0.2)
        renderer.disable()

        assert renderer.ticks_rendered >= 3

    @pytest.mark.asyncio
    async def test_no_draw_after_disable(self, capture_session, frame_source) -> None:
        """Disabling cancels the pending tick; nothing is drawn afterwards."""
        capture_session.augmentations.enable("saturation", 1.5)
        display = RecordingPreviewDisplay()
        renderer = LivePreviewRenderer(capture_session, frame_source, display, interval_seconds=0.02)

        renderer.enable()
        await asyncio.sleep(0.1)
        renderer.disable()
        frames_at_disable = display.frames_shown

        await asyncio.sleep(0.15)

        assert display.frames_shown == frames_at_disable
        assert renderer._timer is None

    @pytest.mark.asyncio
    async def test_tick_errors_are_logged_and_loop_continues(
        self, capture_session, caplog: pytest.LogCaptureFixture
    ) -> None:
        class BrokenSource(ArrayFrameSource):
            calls = 0

            def get_frame(self):
                BrokenSource.calls += 1
                raise OSError("camera unplugged")

        capture_session.augmentations.enable("hue", 30)
        source = BrokenSource([np.zeros((8, 8, 3), dtype=np.uint8)])
        renderer = LivePreviewRenderer(capture_session, source, interval_seconds=0.02)

        renderer.enable()
        await asyncio.sleep(0.15)
        renderer.disable()

        assert BrokenSource.calls >= 2
        assert "Live preview tick failed" in caplog.text

    def test_enable_without_loop_raises(self, capture_session, frame_source) -> None:
        renderer = LivePreviewRenderer(capture_session, frame_source)
        with pytest.raises(RuntimeError, match="running event loop"):
            renderer.enable()
