"""
Unit tests for Frame, CapturedImage and ArrayFrameSource.
"""

from datetime import timezone

import numpy as np
import pytest

from capturelens.core.frame import CapturedImage, Frame, FrameValidationError
from capturelens.core.frame_source import ArrayFrameSource, FrameSource


class TestFrameValidation:
    """Frames only hold (H, W, 3) uint8 pixels."""

    def test_valid_frame(self, colorful_frame: np.ndarray) -> None:
        frame = Frame(pixels=colorful_frame)

        assert (frame.width, frame.height) == (64, 48)
        assert frame.captured_at_utc.tzinfo is timezone.utc
        assert len(frame.frame_id) == 12

    def test_rejects_lists(self) -> None:
        with pytest.raises(FrameValidationError, match="numpy ndarray"):
            Frame(pixels=[[0, 0, 0]])

    def test_rejects_empty_array(self) -> None:
        with pytest.raises(FrameValidationError, match="empty"):
            Frame(pixels=np.zeros((0, 0, 3), dtype=np.uint8))

    def test_rejects_grayscale(self) -> None:
        with pytest.raises(FrameValidationError, match="from_array"):
            Frame(pixels=np.zeros((10, 10), dtype=np.uint8))

    def test_rejects_float_pixels(self) -> None:
        with pytest.raises(FrameValidationError, match="uint8"):
            Frame(pixels=np.zeros((10, 10, 3), dtype=np.float32))


class TestFrameFromArray:
    """Tests for conversion of common camera layouts."""

    def test_grayscale_is_expanded(self) -> None:
        frame = Frame.from_array(np.full((20, 30), 7, dtype=np.uint8))
        assert frame.pixels.shape == (20, 30, 3)
        assert np.all(frame.pixels == 7)

    def test_float_unit_range_is_scaled(self) -> None:
        frame = Frame.from_array(np.ones((20, 30, 3), dtype=np.float32))
        assert frame.pixels.dtype == np.uint8
        assert np.all(frame.pixels == 255)

    def test_channels_first_is_transposed(self) -> None:
        frame = Frame.from_array(np.zeros((3, 20, 30), dtype=np.uint8))
        assert (frame.width, frame.height) == (30, 20)

    def test_unconvertible_input_raises_frame_error(self) -> None:
        with pytest.raises(FrameValidationError):
            Frame.from_array(np.zeros((2, 3, 20, 30), dtype=np.uint8))


class TestCapturedImage:
    """Tests for the dataset-store payload."""

    def test_metadata_keys(self) -> None:
        captured = CapturedImage(
            image_bytes=b"\x89PNG",
            class_name="cat",
            timestamp_iso="2024-05-01T12:00:00+00:00",
            width=100,
            height=70,
        )

        assert captured.metadata() == {
            "className": "cat",
            "timestamp": "2024-05-01T12:00:00+00:00",
            "width": 100,
            "height": 70,
        }
        assert captured.captured_at_utc.year == 2024
        assert "100x70" in repr(captured)


class TestArrayFrameSource:
    """Tests for the in-memory frame source."""

    def test_repeating_source_loops(self, colorful_frame: np.ndarray) -> None:
        source = ArrayFrameSource([colorful_frame, 255 - colorful_frame], repeat=True)

        served = [source.get_frame() for _ in range(3)]

        np.testing.assert_array_equal(served[0].pixels, served[2].pixels)
        assert source.frames_served == 3
        assert source.is_ready

    def test_non_repeating_source_exhausts(self, colorful_frame: np.ndarray) -> None:
        source = ArrayFrameSource([colorful_frame], repeat=False)

        assert source.get_frame() is not None
        assert not source.is_ready
        assert source.get_frame() is None
        assert source.frames_served == 1

    def test_each_snapshot_is_a_new_frame(self, colorful_frame: np.ndarray) -> None:
        source = ArrayFrameSource([colorful_frame])
        assert source.get_frame().frame_id != source.get_frame().frame_id

    def test_empty_source_is_not_ready(self) -> None:
        source = ArrayFrameSource()
        assert not source.is_ready
        assert source.get_frame() is None

    def test_push_frame(self, colorful_frame: np.ndarray) -> None:
        source = ArrayFrameSource(repeat=False)
        source.push_frame(colorful_frame)
        assert source.is_ready

    def test_frame_source_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            FrameSource()
