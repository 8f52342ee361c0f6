"""
Exception taxonomy shared by the capture pipeline.

Every error subclasses both CaptureLensError and the closest builtin, so
callers can catch our errors specifically or treat them like the builtin
they resemble.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from capturelens.core.frame import CapturedImage


class CaptureLensError(Exception):
    """Base class for every error raised by capturelens."""
    pass


class DecodeError(CaptureLensError, ValueError):
    """
    Raised when encoded image bytes cannot be decoded for pixel processing.

    The original decoder exception is always chained as __cause__.
    """
    pass


class CaptureError(CaptureLensError, RuntimeError):
    """Raised when no frame is available from the frame source."""
    pass


class ValidationError(CaptureLensError, ValueError):
    """
    Raised when capture parameters are out of bounds.

    Always raised before any frame is taken, so a rejected request never
    produces a partial result.
    """
    pass


class ConcurrencyError(CaptureLensError, RuntimeError):
    """
    Raised when a capture is requested while another capture or burst runs.

    Only raised when PipelineConfig.raise_when_busy is set; by default a
    busy controller ignores the request.
    """
    pass


class ConfigurationError(CaptureLensError, ValueError):
    """Raised when PipelineConfig receives invalid or unknown settings."""
    pass


class BurstCaptureError(CaptureError):
    """
    Raised when a burst stops early because one of its captures failed.

    Images captured before the failure were already delivered to the
    listeners; they are kept here too so the caller can inspect them.
    """

    def __init__(
        self,
        message: str,
        captured_images: list[CapturedImage],
        failed_index: int,
    ) -> None:
        super().__init__(message)
        self.captured_images = captured_images
        self.failed_index = failed_index
