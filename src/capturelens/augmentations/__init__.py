"""
Deterministic pixel transforms on encoded images, plus presets.

kernels holds the pure numpy pixel math, codec the Pillow encode/decode
boundary, effects the async per-effect API and presets the named
parameter bundles.
"""

from capturelens.augmentations.codec import decode_image, encode_image
from capturelens.augmentations.effects import (
    EFFECT_FUNCTIONS,
    AugmentationStep,
    add_noise,
    adjust_brightness,
    adjust_contrast,
    adjust_hue,
    adjust_saturation,
    apply_blur,
    apply_effect,
    apply_sharpen,
    apply_steps,
    flip_image,
    plan_random_augmentation,
    random_augmentation,
    rotate_image,
)
from capturelens.augmentations.kernels import EFFECT_IDS
from capturelens.augmentations.presets import (
    BUILT_IN_PRESETS,
    Preset,
    PresetNotFoundError,
    PresetStore,
    plan_preset_passes,
)

__all__ = [
    "BUILT_IN_PRESETS",
    "EFFECT_FUNCTIONS",
    "EFFECT_IDS",
    "AugmentationStep",
    "Preset",
    "PresetNotFoundError",
    "PresetStore",
    "add_noise",
    "adjust_brightness",
    "adjust_contrast",
    "adjust_hue",
    "adjust_saturation",
    "apply_blur",
    "apply_effect",
    "apply_sharpen",
    "apply_steps",
    "decode_image",
    "encode_image",
    "flip_image",
    "plan_preset_passes",
    "plan_random_augmentation",
    "random_augmentation",
    "rotate_image",
]
