"""
Unit tests for MatplotlibPreviewDisplay.

These tests verify the display reuses its figure across frames and draws
the ROI overlay.
"""

import numpy as np
import pytest
from matplotlib.figure import Figure

from capturelens.core.geometry import Roi
from capturelens.renderers.matplotlib_renderer import MatplotlibPreviewDisplay


# Use non-interactive backend for testing
import matplotlib
matplotlib.use("Agg")


@pytest.fixture
def preview_display():
    display = MatplotlibPreviewDisplay()
    yield display
    display.close()


class TestMatplotlibPreviewDisplayBasic:
    """Basic functionality tests."""

    def test_creates_figure_on_first_show(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        """No figure exists until the first frame arrives."""
        assert preview_display.figure is None

        preview_display.show(synthetic_rgb_frame)

        assert isinstance(preview_display.figure, Figure)
        assert len(preview_display.figure.axes) == 1
        assert not preview_display.figure.axes[0].axison

    def test_reuses_figure_across_frames(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        """A 10 Hz preview must not create a figure per frame."""
        preview_display.show(synthetic_rgb_frame)
        first_figure = preview_display.figure

        preview_display.show(255 - synthetic_rgb_frame)

        assert preview_display.figure is first_figure
        assert len(first_figure.axes[0].images) == 1
        np.testing.assert_array_equal(
            np.asarray(first_figure.axes[0].images[0].get_array()), 255 - synthetic_rgb_frame
        )

    def test_title_option(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        preview_display.show(synthetic_rgb_frame, title="brightness(1.2)")
        assert preview_display.figure.axes[0].get_title() == "brightness(1.2)"


class TestRoiOverlay:
    """Tests for the ROI overlay artists."""

    def test_overlay_artists(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        """4 dim bands + border + 8 handles as patches, 2 crosshair lines."""
        preview_display.show(synthetic_rgb_frame, roi=Roi(x=50, y=60, width=100, height=80))

        axes = preview_display.figure.axes[0]
        assert len(axes.patches) == 13
        assert len(axes.lines) == 2
        assert preview_display.overlay_artist_count == 15

    def test_border_is_dashed_blue(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        roi = Roi(x=50, y=60, width=100, height=80)
        preview_display.show(synthetic_rgb_frame, roi=roi)

        border = [
            patch for patch in preview_display.figure.axes[0].patches
            if patch.get_width() == roi.width and patch.get_height() == roi.height
        ]
        assert len(border) == 1
        assert border[0].get_linestyle() == "--"

    def test_overlay_is_replaced_not_accumulated(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        roi = Roi(x=50, y=60, width=100, height=80)
        preview_display.show(synthetic_rgb_frame, roi=roi)
        preview_display.show(synthetic_rgb_frame, roi=roi)
        assert len(preview_display.figure.axes[0].patches) == 13

    def test_roi_touching_edge_skips_empty_bands(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        """A full-width ROI leaves no left or right band to dim."""
        preview_display.show(synthetic_rgb_frame, roi=Roi(x=0, y=50, width=256, height=100))
        assert len(preview_display.figure.axes[0].patches) == 11

    def test_clear_hides_frame_and_overlay(self, preview_display, synthetic_rgb_frame: np.ndarray) -> None:
        preview_display.show(synthetic_rgb_frame, roi=Roi(x=50, y=60, width=100, height=80))
        preview_display.clear()

        axes = preview_display.figure.axes[0]
        assert len(axes.patches) == 0
        assert not axes.images[0].get_visible()


class TestMatplotlibPreviewDisplaySave:
    """Tests for saving snapshots."""

    def test_save_writes_file(self, preview_display, synthetic_rgb_frame: np.ndarray, tmp_path) -> None:
        preview_display.show(synthetic_rgb_frame)
        saved_path = preview_display.save(tmp_path / "nested" / "preview.png")
        assert saved_path.exists()

    def test_save_before_show_raises(self, preview_display, tmp_path) -> None:
        with pytest.raises(RuntimeError, match="show\\(\\) has not been called"):
            preview_display.save(tmp_path / "preview.png")
