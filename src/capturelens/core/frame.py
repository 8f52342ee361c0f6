"""
Immutable containers for camera frames and finished captures.

Frame is what a frame source hands to the pipeline; CapturedImage is what
the capture controller hands to the dataset store. Neither is mutated after
creation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import numpy as np

from capturelens.utils.image_arrays import normalize_to_rgb_uint8

if TYPE_CHECKING:
    from capturelens.analysis.frame_quality import QualityReport


class FrameValidationError(ValueError):
    """
    Raised when a Frame receives pixel data it cannot hold.

    A custom exception lets frame sources catch bad frames specifically
    without swallowing unrelated ValueErrors from numpy.
    """
    pass


def _validate_pixel_array(pixels_to_check: Any) -> None:
    if not isinstance(pixels_to_check, np.ndarray):
        raise FrameValidationError(
            f"Frame pixels must be a numpy ndarray, got {type(pixels_to_check).__name__}. "
            "Use Frame.from_array() to convert other inputs."
        )

    if pixels_to_check.size == 0:
        raise FrameValidationError(
            f"Frame pixels are empty (shape={pixels_to_check.shape}). "
            "The frame source probably returned a frame before the camera was ready."
        )

    if pixels_to_check.ndim != 3 or pixels_to_check.shape[2] != 3:
        raise FrameValidationError(
            f"Frame pixels must have shape (H, W, 3), got {pixels_to_check.shape}. "
            "Use Frame.from_array() to convert grayscale, RGBA or CHW data."
        )

    if pixels_to_check.dtype != np.uint8:
        raise FrameValidationError(
            f"Frame pixels must be uint8, got dtype={pixels_to_check.dtype}."
        )


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Snapshot of the camera source at one moment.

    Pixels are always (H, W, 3) uint8 RGB. Frames are produced on demand by
    a FrameSource and are not owned by the pipeline.
    """

    pixels: np.ndarray
    captured_at_utc: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    frame_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        _validate_pixel_array(self.pixels)

    @classmethod
    def from_array(cls, raw_pixels: Any, **frame_fields: Any) -> Frame:
        """Build a Frame from any common image array layout or dtype."""
        try:
            normalized_pixels = normalize_to_rgb_uint8(raw_pixels)
        except ValueError as conversion_error:
            raise FrameValidationError(str(conversion_error)) from conversion_error
        return cls(pixels=normalized_pixels, **frame_fields)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def __repr__(self) -> str:
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"size={self.width}x{self.height}, "
            f"captured_at={self.captured_at_utc.isoformat()})"
        )


@dataclass(frozen=True, slots=True)
class CapturedImage:
    """
    Finished, encoded capture ready for the dataset store.

    Ownership passes to the listener that receives it; the controller keeps
    no reference after emission.
    """

    image_bytes: bytes
    class_name: str
    timestamp_iso: str
    width: int
    height: int
    media_type: str = "image/jpeg"
    applied_effects: tuple[str, ...] = ()
    quality: QualityReport | None = None

    def metadata(self) -> dict[str, Any]:
        """Metadata mapping in the shape the dataset store expects."""
        return {
            "className": self.class_name,
            "timestamp": self.timestamp_iso,
            "width": self.width,
            "height": self.height,
        }

    @property
    def captured_at_utc(self) -> datetime:
        return datetime.fromisoformat(self.timestamp_iso)

    def __repr__(self) -> str:
        return (
            f"CapturedImage(class_name={self.class_name!r}, "
            f"size={self.width}x{self.height}, "
            f"bytes={len(self.image_bytes)}, "
            f"timestamp={self.timestamp_iso})"
        )
