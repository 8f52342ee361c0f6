"""
Named bundles of augmentation parameters.

Built-in presets are fixed values shipped with the package. User presets
are created, persisted and deleted by the surrounding application and are
only handed in here by value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from capturelens.augmentations.kernels import EFFECT_IDS, is_identity_value

logger = logging.getLogger(__name__)


class PresetNotFoundError(KeyError):
    """Raised when a preset id is not known to the PresetStore."""
    pass


@dataclass(frozen=True, slots=True)
class Preset:
    """
    Immutable named set of effect parameters.

    Settings are frozen into a read-only mapping so a preset shared between
    the renderer and the controller can never change underneath either.
    """

    preset_id: str
    name: str
    settings: Mapping[str, float] = field(default_factory=dict)
    description: str = ""
    built_in: bool = False

    def __post_init__(self) -> None:
        if not str(self.preset_id).strip():
            raise ValueError("Preset id cannot be blank.")
        frozen_settings = MappingProxyType({
            str(effect_id): float(value) for effect_id, value in dict(self.settings).items()
        })
        # Frozen dataclass: bypass __setattr__ once during construction
        object.__setattr__(self, "settings", frozen_settings)

    @classmethod
    def from_dict(cls, preset_data: Mapping[str, Any]) -> Preset:
        """
        Build a preset from an externally stored dict.

        Expects keys 'id', 'name' and 'settings'; 'description' is optional.
        Extra keys (timestamps, UI state) are ignored.
        """
        missing_keys = [key for key in ("id", "name", "settings") if key not in preset_data]
        if missing_keys:
            raise ValueError(
                f"Preset data is missing required keys: {', '.join(missing_keys)}. "
                f"Got keys: {', '.join(map(str, preset_data))}."
            )
        return cls(
            preset_id=str(preset_data["id"]),
            name=str(preset_data["name"]),
            settings=preset_data["settings"],
            description=str(preset_data.get("description", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.preset_id,
            "name": self.name,
            "description": self.description,
            "settings": dict(self.settings),
        }

    def active_settings(self) -> list[tuple[str, float]]:
        """Non-identity settings in fixed effect order."""
        return plan_preset_passes(self.settings)


def plan_preset_passes(settings: Mapping[str, float]) -> list[tuple[str, float]]:
    """
    Return the transform passes a preset triggers, in fixed key order.

    Identity values (brightness 1.0, contrast 0, ...) are skipped, so a
    preset {brightness: 1.2, contrast: 0, saturation: 1.0} yields exactly
    one pass. Unknown keys are logged and ignored.
    """
    unknown_keys = sorted(set(settings) - set(EFFECT_IDS))
    if unknown_keys:
        logger.warning("Ignoring unknown preset settings: %s", ", ".join(unknown_keys))

    return [
        (effect_id, float(settings[effect_id]))
        for effect_id in EFFECT_IDS
        if effect_id in settings and not is_identity_value(effect_id, settings[effect_id])
    ]


BUILT_IN_PRESETS: tuple[Preset, ...] = (
    Preset(
        "data_augmentation",
        "Data Augmentation",
        {"brightness": 1.1, "contrast": 15, "saturation": 1.2, "noise": 0.05, "blur": 0.5},
        "Standard ML data augmentation for training",
        built_in=True,
    ),
    Preset(
        "robustness",
        "Robustness Training",
        {"brightness": 0.8, "contrast": 25, "saturation": 0.9, "noise": 0.1, "blur": 1.0},
        "Enhance model robustness to lighting variations",
        built_in=True,
    ),
    Preset(
        "low_light",
        "Low Light Adaptation",
        {"brightness": 0.6, "contrast": 30, "saturation": 0.8, "noise": 0.15, "blur": 1.5},
        "Simulate low light conditions",
        built_in=True,
    ),
    Preset(
        "bright_light",
        "Bright Light Adaptation",
        {"brightness": 1.4, "contrast": 20, "saturation": 1.3, "noise": 0.08, "blur": 0.8},
        "Simulate bright/overexposed conditions",
        built_in=True,
    ),
    Preset(
        "noise_tolerance",
        "Noise Tolerance",
        {"brightness": 1.0, "contrast": 10, "saturation": 1.0, "noise": 0.2, "blur": 0.3},
        "Train model to handle noisy images",
        built_in=True,
    ),
    Preset(
        "blur_tolerance",
        "Blur Tolerance",
        {"brightness": 1.0, "contrast": 5, "saturation": 1.0, "noise": 0.05, "blur": 2.5},
        "Train model to handle motion blur",
        built_in=True,
    ),
    Preset(
        "color_variation",
        "Color Variation",
        {"brightness": 1.1, "contrast": 15, "saturation": 1.4, "hue": 15, "noise": 0.05},
        "Handle color temperature variations",
        built_in=True,
    ),
    Preset(
        "contrast_variation",
        "Contrast Variation",
        {"brightness": 1.0, "contrast": 40, "saturation": 0.9, "noise": 0.1, "blur": 0.5},
        "Handle extreme contrast conditions",
        built_in=True,
    ),
    Preset(
        "saturation_variation",
        "Saturation Variation",
        {"brightness": 1.0, "contrast": 10, "saturation": 1.5, "noise": 0.05, "blur": 0.3},
        "Handle different color saturation levels",
        built_in=True,
    ),
    Preset(
        "mixed_augmentation",
        "Mixed Augmentation",
        {"brightness": 1.2, "contrast": 20, "saturation": 1.1, "noise": 0.1, "blur": 1.0, "hue": 10},
        "Combination of multiple augmentations",
        built_in=True,
    ),
)


class PresetStore:
    """
    Lookup table of built-in and user presets.

    Built-ins cannot be replaced or removed. User presets are registered by
    whoever owns their persistence; removing one here only forgets it.
    """

    def __init__(self, user_presets: Iterable[Preset] = ()) -> None:
        self._built_in = {preset.preset_id: preset for preset in BUILT_IN_PRESETS}
        self._user: dict[str, Preset] = {}
        for preset in user_presets:
            self.add_user_preset(preset)

    def add_user_preset(self, preset: Preset | Mapping[str, Any]) -> Preset:
        if not isinstance(preset, Preset):
            preset = Preset.from_dict(preset)
        if preset.preset_id in self._built_in:
            raise ValueError(
                f"Preset id '{preset.preset_id}' collides with a built-in preset. "
                "Choose a different id for user presets."
            )
        self._user[preset.preset_id] = preset
        return preset

    def remove_user_preset(self, preset_id: str) -> Preset:
        try:
            return self._user.pop(preset_id)
        except KeyError:
            raise PresetNotFoundError(
                f"No user preset with id '{preset_id}'. Built-in presets cannot be removed."
            ) from None

    def get(self, preset_id: str) -> Preset:
        if preset_id in self._user:
            return self._user[preset_id]
        if preset_id in self._built_in:
            return self._built_in[preset_id]
        raise PresetNotFoundError(
            f"Unknown preset '{preset_id}'. Available: {', '.join(self.preset_ids())}."
        )

    def preset_ids(self) -> list[str]:
        return list(self._built_in) + list(self._user)

    def list_presets(self) -> list[Preset]:
        return list(self._built_in.values()) + list(self._user.values())

    def __contains__(self, preset_id: object) -> bool:
        return preset_id in self._built_in or preset_id in self._user

    def __len__(self) -> int:
        return len(self._built_in) + len(self._user)

    def __repr__(self) -> str:
        return f"<PresetStore built_in={len(self._built_in)} user={len(self._user)}>"
