"""
CaptureLens: real-time augmentation and capture pipeline for dataset building.

Select a region of interest on a live camera feed, preview pixel-level
augmentations as you tweak them, and capture single or burst shots that
are cropped and augmented before being handed to your dataset store.

Example
-------
>>> import asyncio
>>> from capturelens import ArrayFrameSource, CaptureController, CaptureSession
>>>
>>> session = CaptureSession(viewport_size=(640, 480), class_name="cat")
>>> session.roi_engine.reset()
>>> session.activate_preset("low_light")
>>>
>>> controller = CaptureController(session, ArrayFrameSource([frame]), listeners=[store.add])
>>> images = asyncio.run(controller.capture_burst(5, interval_ms=200))
"""

__version__ = "0.1.0"

# Core classes - the main user-facing API. Imported before config so the
# error module is loaded first.
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
from capturelens.core.geometry import Roi, RoiGeometryEngine, RoiHandle, crop_to_roi
from capturelens.core.session import ActiveAugmentationSet, AugmentationSnapshot, CaptureSession
from capturelens.core.capture_controller import CaptureController
from capturelens.config import PipelineConfig

# Augmentations
from capturelens.augmentations.presets import BUILT_IN_PRESETS, Preset, PresetStore
from capturelens.augmentations.effects import apply_effect, random_augmentation

# Analysis
from capturelens.analysis.frame_quality import (
    LightingMonitor,
    LightingStatus,
    QualityReport,
    assess_frame_quality,
)

# Live preview and visualization
from capturelens.renderers.live_preview import LivePreviewRenderer
from capturelens.renderers.base_renderer import BasePreviewDisplay
from capturelens.renderers.matplotlib_renderer import MatplotlibPreviewDisplay

# Explicit public API - prevents namespace pollution from 'import *'
__all__ = [
    # Version
    "__version__",
    # Core
    "ActiveAugmentationSet",
    "ArrayFrameSource",
    "AugmentationSnapshot",
    "CaptureController",
    "CaptureSession",
    "CapturedImage",
    "Frame",
    "FrameSource",
    "FrameValidationError",
    "PipelineConfig",
    "Roi",
    "RoiGeometryEngine",
    "RoiHandle",
    "crop_to_roi",
    # Errors
    "BurstCaptureError",
    "CaptureError",
    "CaptureLensError",
    "ConcurrencyError",
    "ConfigurationError",
    "DecodeError",
    "ValidationError",
    # Augmentations
    "BUILT_IN_PRESETS",
    "Preset",
    "PresetStore",
    "apply_effect",
    "random_augmentation",
    # Analysis
    "LightingMonitor",
    "LightingStatus",
    "QualityReport",
    "assess_frame_quality",
    # Renderers
    "BasePreviewDisplay",
    "LivePreviewRenderer",
    "MatplotlibPreviewDisplay",
]
