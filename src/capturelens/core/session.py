"""
Session context shared by the ROI engine, live preview and capture controller.

The ROI and the active augmentation set are written by UI input handlers
and read by both the preview tick and the capture controller. All of that
state hangs off one CaptureSession and is guarded by a single re-entrant
lock, so every reader sees a consistent snapshot even when input arrives
from another thread.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import numpy as np

from capturelens.augmentations.effects import DEFAULT_EFFECT_PARAMETERS
from capturelens.augmentations.kernels import EFFECT_IDS, clamp_parameter, is_identity_value
from capturelens.augmentations.presets import Preset, PresetStore
from capturelens.config import PipelineConfig
from capturelens.core.geometry import Roi, RoiGeometryEngine

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS: dict[str, float] = {
    effect_id: float(DEFAULT_EFFECT_PARAMETERS[effect_id]) for effect_id in EFFECT_IDS
}


@dataclass(frozen=True, slots=True)
class AugmentationSnapshot:
    """
    Read-only copy of the active augmentation set at one moment.

    The renderer takes one per tick and the controller one per capture,
    so neither observes a half-applied preset.
    """
    enabled_effects: tuple[str, ...] = ()
    parameters: Mapping[str, float] = field(default_factory=dict)
    flip_horizontal: bool = False
    flip_vertical: bool = False
    rotation_degrees: float = 0.0

    def active_effects(self) -> list[tuple[str, float]]:
        """Enabled, non-identity effects in fixed effect order."""
        return [
            (effect_id, self.parameters[effect_id])
            for effect_id in EFFECT_IDS
            if effect_id in self.enabled_effects
            and not is_identity_value(effect_id, self.parameters[effect_id])
        ]

    @property
    def has_pixel_effects(self) -> bool:
        return bool(self.active_effects())

    @property
    def has_geometric_transforms(self) -> bool:
        return self.flip_horizontal or self.flip_vertical or self.rotation_degrees % 360 != 0

    @property
    def is_trivial(self) -> bool:
        """True if rendering would show the raw camera frame unchanged."""
        return not (self.has_pixel_effects or self.has_geometric_transforms)


class ActiveAugmentationSet:
    """
    Mutable set of enabled effects, their parameters and preview transforms.

    Parameters keep their value while an effect is disabled, so toggling an
    effect back on restores the last slider position.
    """

    def __init__(self, lock: threading.RLock | None = None) -> None:
        self._lock = lock or threading.RLock()
        self._enabled: list[str] = []
        self._parameters: dict[str, float] = dict(DEFAULT_PARAMETERS)
        self._flip_horizontal = False
        self._flip_vertical = False
        self._rotation_degrees = 0.0

    @staticmethod
    def _check_effect(effect_id: str) -> None:
        if effect_id not in EFFECT_IDS:
            raise KeyError(
                f"Unknown effect '{effect_id}'. Known effects: {', '.join(EFFECT_IDS)}."
            )

    def enable(self, effect_id: str, value: float | None = None) -> None:
        self._check_effect(effect_id)
        with self._lock:
            if value is not None:
                self._parameters[effect_id] = clamp_parameter(effect_id, value)
            if effect_id not in self._enabled:
                self._enabled.append(effect_id)

    def disable(self, effect_id: str) -> None:
        self._check_effect(effect_id)
        with self._lock:
            if effect_id in self._enabled:
                self._enabled.remove(effect_id)

    def toggle(self, effect_id: str) -> bool:
        """Flip an effect on or off; returns the new enabled state."""
        with self._lock:
            if self.is_enabled(effect_id):
                self.disable(effect_id)
                return False
            self.enable(effect_id)
            return True

    def is_enabled(self, effect_id: str) -> bool:
        with self._lock:
            return effect_id in self._enabled

    def set_parameter(self, effect_id: str, value: float) -> float:
        """Store a clamped parameter value without changing enablement."""
        self._check_effect(effect_id)
        clamped_value = clamp_parameter(effect_id, value)
        with self._lock:
            self._parameters[effect_id] = clamped_value
        return clamped_value

    def parameter(self, effect_id: str) -> float:
        self._check_effect(effect_id)
        with self._lock:
            return self._parameters[effect_id]

    def apply_settings(self, settings: Mapping[str, float]) -> list[str]:
        """
        Enable every non-identity setting with its value.

        Returns the effect ids that were enabled. Unknown keys are skipped.
        """
        seeded_effects = []
        with self._lock:
            for effect_id in EFFECT_IDS:
                if effect_id not in settings:
                    continue
                if is_identity_value(effect_id, settings[effect_id]):
                    continue
                self.enable(effect_id, settings[effect_id])
                seeded_effects.append(effect_id)
        return seeded_effects

    def clear(self) -> None:
        """Disable every effect and reset preview transforms."""
        with self._lock:
            self._enabled.clear()
            self.reset_transforms()

    # Preview-only geometric transforms

    def toggle_flip_horizontal(self) -> bool:
        with self._lock:
            self._flip_horizontal = not self._flip_horizontal
            return self._flip_horizontal

    def toggle_flip_vertical(self) -> bool:
        with self._lock:
            self._flip_vertical = not self._flip_vertical
            return self._flip_vertical

    def rotate_by(self, step_degrees: float = 90.0) -> float:
        with self._lock:
            self._rotation_degrees = (self._rotation_degrees + step_degrees) % 360
            return self._rotation_degrees

    def reset_transforms(self) -> None:
        with self._lock:
            self._flip_horizontal = False
            self._flip_vertical = False
            self._rotation_degrees = 0.0

    def snapshot(self) -> AugmentationSnapshot:
        with self._lock:
            return AugmentationSnapshot(
                enabled_effects=tuple(self._enabled),
                parameters=MappingProxyType(dict(self._parameters)),
                flip_horizontal=self._flip_horizontal,
                flip_vertical=self._flip_vertical,
                rotation_degrees=self._rotation_degrees,
            )

    def __repr__(self) -> str:
        return f"<ActiveAugmentationSet enabled={self._enabled}>"


class CaptureSession:
    """
    Explicit context object for one capture view.

    Owns the ROI engine, the active augmentation set, the preset store,
    the active preset, the current class label and the random source.
    Create one per view and pass it to LivePreviewRenderer and
    CaptureController; nothing here is process-global.

    Parameters
    ----------
    viewport_size : tuple[int, int]
        (width, height) of the on-screen camera view.
    config : PipelineConfig, optional
        Shared settings; defaults are used if omitted.
    preset_store : PresetStore, optional
        Presets to choose from; defaults to built-ins only.
    class_name : str, optional
        Label attached to captures; defaults to config.default_class_name.
    """

    def __init__(
        self,
        viewport_size: tuple[int, int],
        config: PipelineConfig | None = None,
        preset_store: PresetStore | None = None,
        class_name: str | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.lock = threading.RLock()
        self.roi_engine = RoiGeometryEngine(viewport_size, config=self.config, lock=self.lock)
        self.augmentations = ActiveAugmentationSet(lock=self.lock)
        self.presets = preset_store or PresetStore()
        self.rng = np.random.default_rng(self.config.random_seed)
        self._active_preset: Preset | None = None
        self._class_name = class_name or self.config.default_class_name

    @property
    def roi(self) -> Roi | None:
        return self.roi_engine.get_roi()

    @property
    def class_name(self) -> str:
        with self.lock:
            return self._class_name

    @class_name.setter
    def class_name(self, new_class_name: str) -> None:
        if not new_class_name or not new_class_name.strip():
            raise ValueError("Class name cannot be blank.")
        with self.lock:
            self._class_name = new_class_name

    @property
    def active_preset(self) -> Preset | None:
        with self.lock:
            return self._active_preset

    def activate_preset(self, preset: Preset | str) -> Preset:
        """
        Make a preset active and seed the preview with its settings.

        Coupling is one-way: the preset pushes its non-identity values into
        the active augmentation set; the set never writes back.
        """
        if isinstance(preset, str):
            preset = self.presets.get(preset)
        with self.lock:
            self._active_preset = preset
            seeded_effects = self.augmentations.apply_settings(preset.settings)
        logger.info("Activated preset '%s' (seeded %s)", preset.preset_id, seeded_effects or "nothing")
        return preset

    def clear_active_preset(self) -> None:
        with self.lock:
            self._active_preset = None

    def __repr__(self) -> str:
        preset_id = self._active_preset.preset_id if self._active_preset else None
        return (
            f"<CaptureSession class_name={self._class_name!r} "
            f"preset={preset_id} roi={self.roi}>"
        )
