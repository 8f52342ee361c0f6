"""
Core capture pipeline: frames, ROI geometry, session state and capture.

errors is imported first because capturelens.config depends on it and
geometry depends on config.
"""

from capturelens.core.errors import (
    BurstCaptureError,
    CaptureError,
    CaptureLensError,
    ConcurrencyError,
    ConfigurationError,
    DecodeError,
    ValidationError,
)
from capturelens.core.frame import CapturedImage, Frame, FrameValidationError
from capturelens.core.frame_source import ArrayFrameSource, FrameSource
from capturelens.core.geometry import (
    Roi,
    RoiGeometryEngine,
    RoiHandle,
    RoiInteractionMode,
    crop_to_roi,
    handle_positions,
)
from capturelens.core.session import ActiveAugmentationSet, AugmentationSnapshot, CaptureSession
from capturelens.core.capture_controller import CaptureController

__all__ = [
    "ActiveAugmentationSet",
    "ArrayFrameSource",
    "AugmentationSnapshot",
    "BurstCaptureError",
    "CaptureController",
    "CaptureError",
    "CaptureLensError",
    "CaptureSession",
    "CapturedImage",
    "ConcurrencyError",
    "ConfigurationError",
    "DecodeError",
    "Frame",
    "FrameSource",
    "FrameValidationError",
    "Roi",
    "RoiGeometryEngine",
    "RoiHandle",
    "RoiInteractionMode",
    "ValidationError",
    "crop_to_roi",
    "handle_positions",
]
