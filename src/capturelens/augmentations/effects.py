"""
Asynchronous augmentations on encoded images.

Every function here takes encoded image bytes and one parameter, decodes,
runs the matching pixel kernel, and re-encodes in the input's format.
They are coroutines so a burst or preset chain yields to the event loop
between passes; the pixel work itself runs inline and blocks for its
duration.

Same input and parameter always give the same output, except for noise
and random_augmentation when no seeded generator is supplied.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

import numpy as np

from capturelens.augmentations import kernels
from capturelens.augmentations.codec import decode_image, encode_image

logger = logging.getLogger(__name__)

EffectValue = float | str


async def _transform_encoded(
    image_bytes: bytes,
    kernel: Callable[..., np.ndarray],
    *kernel_args: Any,
    **kernel_kwargs: Any,
) -> bytes:
    pixels, source_format = decode_image(image_bytes)
    # Let other tasks (e.g. the preview tick) run before the pixel pass
    await asyncio.sleep(0)
    transformed_pixels = kernel(pixels, *kernel_args, **kernel_kwargs)
    return encode_image(transformed_pixels, source_format)


async def adjust_brightness(image_bytes: bytes, factor: float) -> bytes:
    """Scale R, G, B by factor in [0.2, 3.0]; 1.0 is identity."""
    return await _transform_encoded(image_bytes, kernels.brightness, factor)


async def adjust_contrast(image_bytes: bytes, value: float) -> bytes:
    """Contrast in [-255, 255]; 0 is identity. Values near 259 are clamped."""
    return await _transform_encoded(image_bytes, kernels.contrast, value)


async def adjust_saturation(image_bytes: bytes, factor: float) -> bytes:
    """Saturation factor in [0, 3]; 0 gives luma gray, 1.0 is identity."""
    return await _transform_encoded(image_bytes, kernels.saturation, factor)


async def add_noise(
    image_bytes: bytes,
    intensity: float,
    rng: np.random.Generator | None = None,
) -> bytes:
    """Uniform per-channel noise; intensity in [0, 1]."""
    return await _transform_encoded(image_bytes, kernels.add_uniform_noise, intensity, rng=rng)


async def apply_blur(image_bytes: bytes, radius: float) -> bytes:
    """Two-pass box blur; radius rounds half up to an integer."""
    return await _transform_encoded(image_bytes, kernels.box_blur, radius)


async def adjust_hue(image_bytes: bytes, shift_degrees: float) -> bytes:
    """Rotate hue by shift_degrees in [-180, 180]."""
    return await _transform_encoded(image_bytes, kernels.hue_rotate, shift_degrees)


async def apply_sharpen(image_bytes: bytes, intensity: float) -> bytes:
    """3x3 sharpen with intensity in [0, 1]; borders are left untouched."""
    return await _transform_encoded(image_bytes, kernels.sharpen, intensity)


async def flip_image(image_bytes: bytes, direction: str = "horizontal") -> bytes:
    return await _transform_encoded(image_bytes, kernels.flip, direction)


async def rotate_image(image_bytes: bytes, angle_degrees: float) -> bytes:
    """Rotate clockwise; width and height swap when angle mod 180 != 0."""
    return await _transform_encoded(image_bytes, kernels.rotate, angle_degrees)


EFFECT_FUNCTIONS: dict[str, Callable[..., Awaitable[bytes]]] = {
    "brightness": adjust_brightness,
    "contrast": adjust_contrast,
    "saturation": adjust_saturation,
    "noise": add_noise,
    "blur": apply_blur,
    "hue": adjust_hue,
    "sharpen": apply_sharpen,
    "flip": flip_image,
    "rotate": rotate_image,
}

# Slider defaults used when a caller enables an effect without a value
DEFAULT_EFFECT_PARAMETERS: dict[str, EffectValue] = {
    "brightness": 1.0,
    "contrast": 0.0,
    "saturation": 1.0,
    "noise": 0.1,
    "blur": 2.0,
    "hue": 0.0,
    "sharpen": 0.5,
    "flip": "horizontal",
    "rotate": 90.0,
}


async def apply_effect(
    image_bytes: bytes,
    effect_id: str,
    value: EffectValue,
    rng: np.random.Generator | None = None,
) -> bytes:
    """
    Apply one effect by id.

    Raises
    ------
    KeyError
        If effect_id is not a known effect.
    """
    try:
        effect_function = EFFECT_FUNCTIONS[effect_id]
    except KeyError:
        raise KeyError(
            f"Unknown effect '{effect_id}'. Known effects: {', '.join(EFFECT_FUNCTIONS)}."
        ) from None

    logger.debug("Applying %s(%s)", effect_id, value)
    if effect_id == "noise":
        return await effect_function(image_bytes, value, rng=rng)
    return await effect_function(image_bytes, value)


# ----------------------------------------------------------------------
# Random augmentation
# ----------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AugmentationStep:
    """One effect and the parameter it was applied with."""
    effect_id: str
    value: EffectValue


RANDOM_PARAMETER_SAMPLERS: dict[str, Callable[[np.random.Generator], EffectValue]] = {
    "flip": lambda rng: "horizontal" if rng.random() > 0.5 else "vertical",
    "rotate": lambda rng: rng.random() * 360.0,
    "brightness": lambda rng: 0.8 + rng.random() * 0.4,
    "contrast": lambda rng: (rng.random() - 0.5) * 100.0,
    "saturation": lambda rng: 0.5 + rng.random() * 1.0,
    "noise": lambda rng: rng.random() * 0.2,
    "blur": lambda rng: rng.random() * 3.0,
    "hue": lambda rng: (rng.random() - 0.5) * 60.0,
    "sharpen": lambda rng: rng.random() * 0.5,
}


def plan_random_augmentation(rng: np.random.Generator | None = None) -> list[AugmentationStep]:
    """
    Choose 2-4 effects uniformly at random with in-range parameters.

    Each draw is independent, so the same effect can appear more than once
    with different parameters.

    Pass a seeded generator (np.random.default_rng(seed)) for reproducible
    dataset runs.
    """
    rng = rng if rng is not None else np.random.default_rng()
    candidate_ids = list(RANDOM_PARAMETER_SAMPLERS)
    step_count = int(rng.integers(2, 5))
    chosen_indices = rng.integers(0, len(candidate_ids), size=step_count)

    planned_steps = []
    for chosen_index in chosen_indices:
        effect_id = candidate_ids[int(chosen_index)]
        planned_steps.append(
            AugmentationStep(effect_id, RANDOM_PARAMETER_SAMPLERS[effect_id](rng))
        )
    return planned_steps


async def apply_steps(
    image_bytes: bytes,
    steps: Iterable[AugmentationStep],
    rng: np.random.Generator | None = None,
) -> bytes:
    """Apply effects sequentially, each on the previous one's output."""
    for step in steps:
        image_bytes = await apply_effect(image_bytes, step.effect_id, step.value, rng=rng)
    return image_bytes


async def random_augmentation(
    image_bytes: bytes,
    rng: np.random.Generator | None = None,
) -> bytes:
    """Apply a random combination of 2-4 effects."""
    rng = rng if rng is not None else np.random.default_rng()
    planned_steps = plan_random_augmentation(rng)
    logger.debug(
        "Random augmentation: %s",
        ", ".join(f"{step.effect_id}({step.value})" for step in planned_steps),
    )
    return await apply_steps(image_bytes, planned_steps, rng=rng)
