"""
Cheap per-frame quality gates.

Both checks downsample the frame first and only look at BT.601 luma, so
they are fast enough to run on every capture or once a second against the
live source.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image

from capturelens.augmentations.kernels import LUMA_WEIGHTS

logger = logging.getLogger(__name__)

QUALITY_SAMPLE_SIZE = (160, 120)
LIGHTING_SAMPLE_SIZE = (120, 90)

BLUR_VARIANCE_THRESHOLD = 400.0
UNDEREXPOSED_MEAN = 35.0
OVEREXPOSED_MEAN = 220.0

LOW_LIGHT_MEAN = 60.0
HIGH_LIGHT_MEAN = 195.0
CLIPPED_LUMA_LOW = 2.0
CLIPPED_LUMA_HIGH = 253.0
CLIPPED_FRACTION_THRESHOLD = 0.30

DEFAULT_LIGHTING_WINDOW = 5


def _sampled_luma(pixels: np.ndarray, sample_size: tuple[int, int]) -> np.ndarray:
    downsampled = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).resize(
        sample_size, resample=Image.Resampling.BILINEAR
    )
    return np.asarray(downsampled, dtype=np.float64) @ LUMA_WEIGHTS


@dataclass(frozen=True, slots=True)
class QualityReport:
    """
    Luma statistics of one frame and the warnings derived from them.

    Variance is used as a focus proxy: a sharp scene has strong local
    contrast and therefore a wide luma spread.
    """
    luma_mean: float
    luma_variance: float
    is_blurry: bool
    is_badly_exposed: bool

    @property
    def passed(self) -> bool:
        return not (self.is_blurry or self.is_badly_exposed)

    def __repr__(self) -> str:
        return (
            f"QualityReport(mean={self.luma_mean:.1f}, variance={self.luma_variance:.1f}, "
            f"blurry={self.is_blurry}, badly_exposed={self.is_badly_exposed})"
        )


def assess_frame_quality(pixels: np.ndarray) -> QualityReport:
    """
    Flag blurry or badly exposed frames.

    Parameters
    ----------
    pixels : np.ndarray
        (H, W, 3) uint8 RGB frame at any resolution.

    Returns
    -------
    QualityReport
        is_blurry when luma variance < 400; is_badly_exposed when the luma
        mean is below 35 or above 220.
    """
    luma = _sampled_luma(pixels, QUALITY_SAMPLE_SIZE)
    luma_mean = float(luma.mean())
    luma_variance = float(luma.var())
    return QualityReport(
        luma_mean=luma_mean,
        luma_variance=luma_variance,
        is_blurry=luma_variance < BLUR_VARIANCE_THRESHOLD,
        is_badly_exposed=luma_mean < UNDEREXPOSED_MEAN or luma_mean > OVEREXPOSED_MEAN,
    )


class LightingStatus(str, Enum):
    OK = "ok"
    LOW = "low"
    HIGH = "high"
    CLIPPED = "clipped"


@dataclass(frozen=True, slots=True)
class LightingReading:
    status: LightingStatus
    luma_mean: float
    clipped_fraction: float
    luma_stdev: float


def classify_lighting(pixels: np.ndarray) -> LightingReading:
    """
    Classify scene lighting from one frame.

    Clipping wins over low/high: a frame with more than 30% of its luma
    below 2 or above 253 is CLIPPED whatever its mean.
    """
    luma = _sampled_luma(pixels, LIGHTING_SAMPLE_SIZE)
    luma_mean = float(luma.mean())
    clipped_fraction = float(
        np.count_nonzero((luma < CLIPPED_LUMA_LOW) | (luma > CLIPPED_LUMA_HIGH)) / luma.size
    )

    status = LightingStatus.OK
    if luma_mean < LOW_LIGHT_MEAN:
        status = LightingStatus.LOW
    elif luma_mean > HIGH_LIGHT_MEAN:
        status = LightingStatus.HIGH
    if clipped_fraction > CLIPPED_FRACTION_THRESHOLD:
        status = LightingStatus.CLIPPED

    return LightingReading(
        status=status,
        luma_mean=luma_mean,
        clipped_fraction=clipped_fraction,
        luma_stdev=float(luma.std()),
    )


class LightingMonitor:
    """
    Smooths lighting readings over a short rolling window.

    The reported status is the most frequent one in the window; ties go to
    whichever of the tied statuses was seen most recently, so a single
    flicker frame does not flip the indicator.
    """

    def __init__(self, window_size: int = DEFAULT_LIGHTING_WINDOW) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be at least 1, got {window_size}.")
        self._samples: deque[LightingStatus] = deque(maxlen=window_size)
        self._last_reading: LightingReading | None = None

    def update(self, pixels: np.ndarray) -> LightingStatus:
        """Classify a new frame and return the smoothed status."""
        reading = classify_lighting(pixels)
        self._last_reading = reading
        return self.add_status(reading.status)

    def add_status(self, status: LightingStatus) -> LightingStatus:
        self._samples.append(LightingStatus(status))
        smoothed = self.status
        logger.debug("Lighting sample %s -> consensus %s", status, smoothed)
        return smoothed

    @property
    def status(self) -> LightingStatus:
        if not self._samples:
            return LightingStatus.OK
        status_counts = Counter(self._samples)
        top_count = max(status_counts.values())
        for recent_status in reversed(self._samples):
            if status_counts[recent_status] == top_count:
                return recent_status
        return LightingStatus.OK

    @property
    def last_reading(self) -> LightingReading | None:
        return self._last_reading

    def reset(self) -> None:
        self._samples.clear()
        self._last_reading = None

    def __repr__(self) -> str:
        return f"<LightingMonitor status={self.status.value} samples={len(self._samples)}>"
