"""
Pytest fixtures for CaptureLens test suite.

These fixtures generate synthetic frames and encoded images so tests need
no camera and run reproducibly.
"""

import io

# Non-interactive backend before anything imports pyplot
import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from PIL import Image

from capturelens.config import PipelineConfig
from capturelens.core.frame_source import ArrayFrameSource
from capturelens.core.session import CaptureSession


def encode_png(pixels: np.ndarray) -> bytes:
    """Lossless encoding so pixel assertions are exact."""
    output_buffer = io.BytesIO()
    Image.fromarray(pixels).save(output_buffer, format="PNG")
    return output_buffer.getvalue()


@pytest.fixture
def synthetic_rgb_frame() -> np.ndarray:
    """
    Generate a 256x256 RGB test image with a centered white square.

    A simple geometric pattern rather than random noise makes visual
    debugging of failed tests trivial: you can immediately see if a
    transform broke the expected structure.
    """
    canvas_height, canvas_width = 256, 256
    frame_buffer = np.zeros((canvas_height, canvas_width, 3), dtype=np.uint8)

    square_size = 100
    top_left_y = (canvas_height - square_size) // 2
    top_left_x = (canvas_width - square_size) // 2
    frame_buffer[
        top_left_y : top_left_y + square_size,
        top_left_x : top_left_x + square_size,
    ] = 255

    return frame_buffer


@pytest.fixture
def colorful_frame() -> np.ndarray:
    """
    64x48 frame of saturated mid-tone colors in four quadrants.

    Mid-tones keep every channel away from 0 and 255 so color effects can
    be checked without clamping getting in the way.
    """
    frame_buffer = np.zeros((48, 64, 3), dtype=np.uint8)
    frame_buffer[:24, :32] = (180, 60, 60)
    frame_buffer[:24, 32:] = (60, 170, 80)
    frame_buffer[24:, :32] = (70, 90, 190)
    frame_buffer[24:, 32:] = (150, 140, 60)
    return frame_buffer


@pytest.fixture
def gradient_frame() -> np.ndarray:
    """640x480 horizontal gradient, the size of a typical webcam frame."""
    ramp = np.linspace(0, 255, 640, dtype=np.float64)
    gray = np.tile(ramp, (480, 1))
    return np.stack([gray, gray[:, ::-1], np.full_like(gray, 128.0)], axis=2).astype(np.uint8)


@pytest.fixture
def colorful_png(colorful_frame: np.ndarray) -> bytes:
    return encode_png(colorful_frame)


@pytest.fixture
def frame_source(gradient_frame: np.ndarray) -> ArrayFrameSource:
    return ArrayFrameSource([gradient_frame], repeat=True)


@pytest.fixture
def test_config() -> PipelineConfig:
    """Lossless PNG output and a fixed seed keep capture tests deterministic."""
    return PipelineConfig(encode_format="PNG", random_seed=1234)


@pytest.fixture
def capture_session(test_config: PipelineConfig) -> CaptureSession:
    return CaptureSession(viewport_size=(640, 480), config=test_config, class_name="cat")
