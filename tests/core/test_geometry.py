"""
Unit tests for the ROI geometry engine and ROI cropping.

These tests drive the engine with pointer events exactly the way a UI
would, then check the committed rectangle.
"""

import numpy as np
import pytest

from capturelens.config import PipelineConfig
from capturelens.core.geometry import (
    Roi,
    RoiGeometryEngine,
    RoiHandle,
    RoiInteractionMode,
    crop_to_roi,
    handle_positions,
)


def draw(engine: RoiGeometryEngine, start: tuple, end: tuple) -> Roi | None:
    engine.pointer_down(*start)
    engine.pointer_move(*end)
    return engine.pointer_up()


class TestRoi:
    """Tests for the Roi dataclass."""

    def test_edges_and_center(self) -> None:
        """Derived properties follow from (x, y, width, height)."""
        roi = Roi(x=10, y=20, width=100, height=50)
        assert roi.right == 110
        assert roi.bottom == 70
        assert roi.center == (60, 45)

    def test_non_positive_size_raises(self) -> None:
        """An inverted or empty rectangle cannot be constructed."""
        with pytest.raises(ValueError, match="must be positive"):
            Roi(x=0, y=0, width=0, height=10)

    def test_handle_positions_cover_corners_and_midpoints(self) -> None:
        """There are 8 handles: 4 corners and 4 edge midpoints."""
        positions = handle_positions(Roi(x=0, y=0, width=100, height=40))
        assert len(positions) == 8
        assert positions[RoiHandle.BOTTOM_RIGHT] == (100, 40)
        assert positions[RoiHandle.LEFT_CENTER] == (0, 20)


class TestDrawing:
    """Tests for drawing a fresh rectangle."""

    def test_draw_scenario_commits_expected_rectangle(self) -> None:
        """Drawing from (50,50) to (150,120) commits a 100x70 ROI."""
        engine = RoiGeometryEngine((640, 480))
        committed = draw(engine, (50, 50), (150, 120))
        assert committed == Roi(x=50, y=50, width=100, height=70)
        assert engine.mode is RoiInteractionMode.IDLE

    def test_drawing_backwards_normalizes_rectangle(self) -> None:
        """Dragging up-left still yields a positive-size rectangle."""
        engine = RoiGeometryEngine((640, 480))
        committed = draw(engine, (150, 120), (50, 50))
        assert committed == Roi(x=50, y=50, width=100, height=70)

    def test_small_rectangle_is_not_committed(self) -> None:
        """Anything under 20x20 is ignored."""
        engine = RoiGeometryEngine((640, 480))
        assert draw(engine, (50, 50), (65, 100)) is None

    def test_minimum_size_is_inclusive(self) -> None:
        """Exactly 20x20 is accepted."""
        engine = RoiGeometryEngine((640, 480))
        assert draw(engine, (50, 50), (70, 70)) == Roi(x=50, y=50, width=20, height=20)

    def test_last_valid_rectangle_is_kept(self) -> None:
        """Shrinking below the minimum mid-gesture keeps the previous valid size."""
        engine = RoiGeometryEngine((640, 480))
        engine.pointer_down(50, 50)
        engine.pointer_move(150, 150)
        engine.pointer_move(55, 55)
        assert engine.pointer_up() == Roi(x=50, y=50, width=100, height=100)

    def test_new_draw_clears_previous_roi(self) -> None:
        """Pointer-down outside the ROI starts from scratch."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (50, 50), (150, 150))
        engine.pointer_down(400, 300)
        assert engine.mode is RoiInteractionMode.DRAWING
        assert engine.get_roi() is None

    def test_pointer_is_clamped_to_viewport(self) -> None:
        """Drawing past the edge stops at the viewport boundary."""
        engine = RoiGeometryEngine((640, 480))
        committed = draw(engine, (600, 400), (900, 900))
        assert committed == Roi(x=600, y=400, width=40, height=80)


class TestDraggingAndResizing:
    """Tests for moving and resizing an existing ROI."""

    def test_drag_moves_without_resizing(self) -> None:
        """Dragging from inside translates the rectangle."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        assert engine.pointer_down(150, 150) is RoiInteractionMode.DRAGGING
        engine.pointer_move(250, 180)
        assert engine.pointer_up() == Roi(x=200, y=130, width=100, height=100)

    def test_drag_is_clamped_inside_viewport(self) -> None:
        """The rectangle stops at the viewport edge."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        engine.pointer_down(150, 150)
        engine.pointer_move(1000, -500)
        assert engine.pointer_up() == Roi(x=540, y=0, width=100, height=100)

    def test_corner_handle_resizes(self) -> None:
        """Dragging the bottom-right handle moves only that corner."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        assert engine.hit_test_handle(205, 195) is RoiHandle.BOTTOM_RIGHT
        assert engine.pointer_down(200, 200) is RoiInteractionMode.RESIZING
        engine.pointer_move(300, 250)
        assert engine.pointer_up() == Roi(x=100, y=100, width=200, height=150)

    def test_edge_handle_changes_one_dimension(self) -> None:
        """The top-center handle only moves the top edge."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        engine.pointer_down(150, 100)
        engine.pointer_move(400, 50)
        assert engine.pointer_up() == Roi(x=100, y=50, width=100, height=150)

    def test_resize_that_would_invert_is_ignored(self) -> None:
        """Pulling the left edge past the right edge keeps the last valid ROI."""
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        engine.pointer_down(100, 150)
        engine.pointer_move(300, 150)
        assert engine.pointer_up() == Roi(x=100, y=100, width=100, height=100)

    def test_resize_outside_viewport_is_ignored(self) -> None:
        engine = RoiGeometryEngine((640, 480))
        draw(engine, (100, 100), (200, 200))

        engine.pointer_down(200, 200)
        engine.pointer_move(700, 300)
        assert engine.get_roi() == Roi(x=100, y=100, width=100, height=100)

    def test_pointer_leave_ends_gesture(self) -> None:
        engine = RoiGeometryEngine((640, 480))
        engine.pointer_down(50, 50)
        engine.pointer_move(150, 150)
        engine.pointer_leave()
        assert engine.mode is RoiInteractionMode.IDLE
        engine.pointer_move(300, 300)
        assert engine.get_roi() == Roi(x=50, y=50, width=100, height=100)

    def test_drawing_move_without_anchor_is_ignored(self) -> None:
        """A move that races an ended gesture leaves the ROI untouched."""
        engine = RoiGeometryEngine((640, 480))
        engine.pointer_down(50, 50)
        engine._anchor_point = None

        assert engine.pointer_move(150, 150) is None
        assert engine.mode is RoiInteractionMode.DRAWING


class TestEngineContract:
    """Tests for set/get/reset/enable and listeners."""

    def test_reset_is_centered_eighty_percent(self) -> None:
        """reset() insets 10% on each side."""
        engine = RoiGeometryEngine((640, 480))
        assert engine.reset() == Roi(x=64, y=48, width=512, height=384)

    def test_set_roi_ignores_invalid_rectangles(self) -> None:
        """Too small or out of bounds rectangles are dropped without raising."""
        engine = RoiGeometryEngine((640, 480))
        valid_roi = Roi(x=10, y=10, width=50, height=50)
        engine.set_roi(valid_roi)

        engine.set_roi(Roi(x=10, y=10, width=5, height=50))
        engine.set_roi(Roi(x=600, y=10, width=100, height=50))

        assert engine.get_roi() == valid_roi

    def test_clear_sets_none(self) -> None:
        engine = RoiGeometryEngine((640, 480))
        engine.reset()
        engine.clear()
        assert engine.get_roi() is None

    def test_disabling_clears_and_ignores_input(self) -> None:
        """A disabled engine has no ROI and does not react to the pointer."""
        engine = RoiGeometryEngine((640, 480))
        engine.reset()
        engine.enabled = False

        assert engine.get_roi() is None
        draw(engine, (50, 50), (150, 150))
        assert engine.get_roi() is None

    def test_listeners_receive_every_committed_change(self) -> None:
        """Observers see each new ROI, and None when cleared."""
        engine = RoiGeometryEngine((640, 480))
        seen = []
        engine.add_listener(seen.append)

        engine.reset()
        engine.clear()

        assert seen == [Roi(x=64, y=48, width=512, height=384), None]

    def test_custom_minimum_size_from_config(self) -> None:
        engine = RoiGeometryEngine((640, 480), config=PipelineConfig(roi_min_size=50))
        assert draw(engine, (50, 50), (90, 90)) is None

    def test_shrinking_viewport_clears_roi_that_no_longer_fits(self) -> None:
        engine = RoiGeometryEngine((640, 480))
        engine.reset()
        engine.set_viewport_size((320, 240))
        assert engine.get_roi() is None


class TestCropToRoi:
    """Tests for mapping the viewport ROI onto native-resolution pixels."""

    def test_crop_scenario_yields_exact_size(self, gradient_frame: np.ndarray) -> None:
        """A 100x70 ROI on a 640x480 frame gives a 100x70 crop."""
        cropped = crop_to_roi(gradient_frame, Roi(x=50, y=50, width=100, height=70))
        assert cropped.shape == (70, 100, 3)
        np.testing.assert_array_equal(cropped, gradient_frame[50:120, 50:150])

    def test_crop_scales_viewport_to_native_resolution(self) -> None:
        """An ROI drawn on a 320x240 view maps to twice the pixels on 640x480."""
        native_frame = np.zeros((480, 640, 3), dtype=np.uint8)
        cropped = crop_to_roi(native_frame, Roi(x=10, y=10, width=50, height=35), (320, 240))
        assert cropped.shape == (70, 100, 3)

    def test_fractional_roi_rounds(self, gradient_frame: np.ndarray) -> None:
        cropped = crop_to_roi(gradient_frame, Roi(x=10.4, y=10.6, width=30.6, height=20.2))
        assert cropped.shape == (20, 31, 3)

    def test_no_roi_returns_whole_frame_copy(self, gradient_frame: np.ndarray) -> None:
        cropped = crop_to_roi(gradient_frame, None)
        assert cropped.shape == gradient_frame.shape
        assert cropped is not gradient_frame
