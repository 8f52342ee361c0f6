"""
Tunable settings for the capture pipeline.

All knobs live in one frozen dataclass that is handed to the session at
construction time. Nothing here is read from the environment or from disk;
the surrounding application decides where settings come from.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

from capturelens.core.errors import ConfigurationError


SUPPORTED_ENCODE_FORMATS = ("JPEG", "PNG", "WEBP")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """
    Immutable settings shared by the ROI engine, renderer and controller.

    Parameters
    ----------
    preview_interval_seconds : float, default=0.1
        Delay between live preview ticks (about 10 Hz).
    roi_min_size : float, default=20.0
        Smallest width and height a committed ROI may have, in screen pixels.
    roi_handle_hit_radius : float, default=12.0
        Half-size of the square hit-box around each resize handle.
    roi_reset_inset_fraction : float, default=0.1
        Inset on each side used by RoiGeometryEngine.reset().
    burst_count_range : tuple[int, int], default=(1, 50)
        Inclusive bounds for the number of shots in a burst.
    burst_interval_ms_range : tuple[int, int], default=(50, 2000)
        Inclusive bounds for the delay between burst shots.
    encode_format : str, default="JPEG"
        Format used when the controller encodes a captured frame.
    jpeg_quality : int, default=92
        Encoder quality for JPEG and WEBP output.
    raise_when_busy : bool, default=False
        Raise ConcurrencyError instead of ignoring re-entrant captures.
    assess_quality : bool, default=False
        Attach a QualityReport to every CapturedImage.
    default_class_name : str, default="unlabeled"
        Label used when neither the call nor the session names a class.
    random_seed : int, optional
        Seed for the session's random source. None means unseeded.
    """

    preview_interval_seconds: float = 0.1
    roi_min_size: float = 20.0
    roi_handle_hit_radius: float = 12.0
    roi_reset_inset_fraction: float = 0.1
    burst_count_range: tuple[int, int] = (1, 50)
    burst_interval_ms_range: tuple[int, int] = (50, 2000)
    encode_format: str = "JPEG"
    jpeg_quality: int = 92
    raise_when_busy: bool = False
    assess_quality: bool = False
    default_class_name: str = "unlabeled"
    random_seed: int | None = None

    def __post_init__(self) -> None:
        if self.preview_interval_seconds <= 0:
            raise ConfigurationError(
                f"preview_interval_seconds must be positive, got {self.preview_interval_seconds}."
            )
        if self.roi_min_size <= 0:
            raise ConfigurationError(
                f"roi_min_size must be positive, got {self.roi_min_size}."
            )
        if self.roi_handle_hit_radius < 0:
            raise ConfigurationError(
                f"roi_handle_hit_radius cannot be negative, got {self.roi_handle_hit_radius}."
            )
        if not 0 <= self.roi_reset_inset_fraction < 0.5:
            raise ConfigurationError(
                "roi_reset_inset_fraction must be in [0, 0.5), "
                f"got {self.roi_reset_inset_fraction}."
            )
        _validate_range("burst_count_range", self.burst_count_range, minimum=1)
        _validate_range("burst_interval_ms_range", self.burst_interval_ms_range, minimum=0)
        if self.encode_format.upper() not in SUPPORTED_ENCODE_FORMATS:
            raise ConfigurationError(
                f"encode_format '{self.encode_format}' is not supported. "
                f"Choose one of: {', '.join(SUPPORTED_ENCODE_FORMATS)}."
            )
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigurationError(
                f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}."
            )
        if not self.default_class_name.strip():
            raise ConfigurationError("default_class_name cannot be blank.")

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any]) -> PipelineConfig:
        """
        Build a config from a plain mapping, e.g. a parsed settings file.

        Unknown keys are rejected rather than ignored so that a typo in a
        settings file surfaces immediately.
        """
        known_names = {config_field.name for config_field in fields(cls)}
        unknown_names = sorted(set(settings) - known_names)
        if unknown_names:
            raise ConfigurationError(
                f"Unknown config keys: {', '.join(unknown_names)}. "
                f"Valid keys: {', '.join(sorted(known_names))}."
            )

        normalized = dict(settings)
        for range_name in ("burst_count_range", "burst_interval_ms_range"):
            if range_name in normalized:
                normalized[range_name] = tuple(normalized[range_name])
        return cls(**normalized)


def _validate_range(name: str, bounds: tuple[int, int], minimum: int) -> None:
    if len(bounds) != 2:
        raise ConfigurationError(f"{name} must be a (low, high) pair, got {bounds!r}.")
    low, high = bounds
    if low < minimum or low > high:
        raise ConfigurationError(
            f"{name} must satisfy {minimum} <= low <= high, got {bounds!r}."
        )
