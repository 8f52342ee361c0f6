"""
Pure pixel kernels behind every augmentation.

Each kernel takes an (H, W, 3) uint8 RGB array plus one parameter and
returns a new array; inputs are never modified. Channel effects
(brightness, contrast, saturation, hue) are 3x4 affine color matrices so
the live preview can compose several of them into a single pass.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


# Fixed effect order. Presets and the preview apply effects in this order.
EFFECT_IDS = ("brightness", "contrast", "saturation", "noise", "blur", "hue", "sharpen")

# Safe parameter ranges (inclusive). Contrast stops short of the formula's
# singularity at 259.
CONTRAST_LIMIT = 255.0
PARAMETER_RANGES: dict[str, tuple[float, float]] = {
    "brightness": (0.2, 3.0),
    "contrast": (-CONTRAST_LIMIT, CONTRAST_LIMIT),
    "saturation": (0.0, 3.0),
    "noise": (0.0, 1.0),
    "blur": (0.0, math.inf),
    "hue": (-180.0, 180.0),
    "sharpen": (0.0, 1.0),
}

IDENTITY_VALUES: dict[str, float] = {
    "brightness": 1.0,
    "contrast": 0.0,
    "saturation": 1.0,
    "noise": 0.0,
    "blur": 0.0,
    "hue": 0.0,
    "sharpen": 0.0,
}

# BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

# BT.601 analog YUV; the inverse is computed exactly so that hue(0) is identity
RGB_TO_YUV = np.array([
    [0.299, 0.587, 0.114],
    [-0.147, -0.289, 0.436],
    [0.615, -0.515, -0.100],
])
YUV_TO_RGB = np.linalg.inv(RGB_TO_YUV)

IDENTITY_COLOR_MATRIX = np.hstack([np.eye(3), np.zeros((3, 1))])


def clamp_parameter(effect_id: str, value: float) -> float:
    """Clamp a parameter into its effect's documented range."""
    if effect_id not in PARAMETER_RANGES:
        raise KeyError(
            f"Unknown effect '{effect_id}'. Known effects: {', '.join(EFFECT_IDS)}."
        )
    low, high = PARAMETER_RANGES[effect_id]
    numeric_value = float(value)
    clamped_value = min(max(numeric_value, low), high)
    if clamped_value != numeric_value:
        logger.debug("Clamped %s parameter %s to %s", effect_id, numeric_value, clamped_value)
    return clamped_value


def is_identity_value(effect_id: str, value: float) -> bool:
    """True if applying the effect with this value would not change pixels."""
    if effect_id == "blur":
        return blur_radius(value) == 0
    return clamp_parameter(effect_id, value) == IDENTITY_VALUES[effect_id]


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


# ----------------------------------------------------------------------
# Color matrices
# ----------------------------------------------------------------------

def _affine(linear_part: np.ndarray, offset: float | np.ndarray = 0.0) -> np.ndarray:
    offsets = np.broadcast_to(np.asarray(offset, dtype=np.float64), (3,))
    return np.hstack([linear_part, offsets.reshape(3, 1)])


def brightness_matrix(factor: float) -> np.ndarray:
    factor = clamp_parameter("brightness", factor)
    return _affine(np.eye(3) * factor)


def contrast_factor(value: float) -> float:
    """f = 259(v + 255) / (255(259 - v)), with v clamped away from 259."""
    value = clamp_parameter("contrast", value)
    return (259.0 * (value + 255.0)) / (255.0 * (259.0 - value))


def contrast_matrix(value: float) -> np.ndarray:
    factor = contrast_factor(value)
    # c' = f(c - 128) + 128
    return _affine(np.eye(3) * factor, 128.0 * (1.0 - factor))


def saturation_matrix(factor: float) -> np.ndarray:
    factor = clamp_parameter("saturation", factor)
    # c' = L + s(c - L) = s*c + (1 - s)*L
    gray_rows = np.tile(LUMA_WEIGHTS, (3, 1))
    return _affine(factor * np.eye(3) + (1.0 - factor) * gray_rows)


def hue_matrix(shift_degrees: float) -> np.ndarray:
    shift_degrees = clamp_parameter("hue", shift_degrees)
    shift_radians = math.radians(shift_degrees)
    cos_shift, sin_shift = math.cos(shift_radians), math.sin(shift_radians)
    uv_rotation = np.array([
        [1.0, 0.0, 0.0],
        [0.0, cos_shift, -sin_shift],
        [0.0, sin_shift, cos_shift],
    ])
    return _affine(YUV_TO_RGB @ uv_rotation @ RGB_TO_YUV)


def compose_color_matrices(*matrices: np.ndarray) -> np.ndarray:
    """
    Compose affine color matrices, applied left to right.

    compose(a, b) maps a pixel through a first and then b, without the
    intermediate clamp a separate pass would apply.
    """
    composed = IDENTITY_COLOR_MATRIX.copy()
    for matrix in matrices:
        linear = matrix[:, :3] @ composed[:, :3]
        offset = matrix[:, :3] @ composed[:, 3] + matrix[:, 3]
        composed = _affine(linear, offset)
    return composed


def apply_color_matrix(pixels: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    transformed = pixels.astype(np.float64) @ matrix[:, :3].T + matrix[:, 3]
    return _to_uint8(transformed)


# ----------------------------------------------------------------------
# Channel effects
# ----------------------------------------------------------------------

def brightness(pixels: np.ndarray, factor: float) -> np.ndarray:
    """Scale R, G, B by factor."""
    return apply_color_matrix(pixels, brightness_matrix(factor))


def contrast(pixels: np.ndarray, value: float) -> np.ndarray:
    """Stretch channels around mid-gray 128."""
    return apply_color_matrix(pixels, contrast_matrix(value))


def saturation(pixels: np.ndarray, factor: float) -> np.ndarray:
    """Move each pixel toward (factor < 1) or away from its luma gray."""
    return apply_color_matrix(pixels, saturation_matrix(factor))


def hue_rotate(pixels: np.ndarray, shift_degrees: float) -> np.ndarray:
    """Rotate chroma (U, V) by shift_degrees in BT.601 YUV space."""
    return apply_color_matrix(pixels, hue_matrix(shift_degrees))


def add_uniform_noise(
    pixels: np.ndarray,
    intensity: float,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """
    Add uniform noise in [-intensity*255, +intensity*255].

    Every channel of every pixel gets an independent draw.
    """
    intensity = clamp_parameter("noise", intensity)
    if intensity == 0:
        return pixels.copy()
    rng = rng if rng is not None else np.random.default_rng()
    amplitude = intensity * 255.0
    noise = rng.uniform(-amplitude, amplitude, size=pixels.shape)
    return _to_uint8(pixels.astype(np.float64) + noise)


# ----------------------------------------------------------------------
# Convolutions
# ----------------------------------------------------------------------

def blur_radius(radius: float) -> int:
    """Integer kernel radius; fractional radii round half up."""
    radius = clamp_parameter("blur", radius)
    return int(math.floor(radius + 0.5))


def _box_pass(values: np.ndarray, radius: int, axis: int) -> np.ndarray:
    kernel_size = 2 * radius + 1
    length = values.shape[axis]

    pad_width = [(0, 0)] * values.ndim
    pad_width[axis] = (radius, radius)
    padded = np.pad(values, pad_width, mode="edge")

    cumulative = np.cumsum(padded, axis=axis, dtype=np.float64)
    zero_shape = list(cumulative.shape)
    zero_shape[axis] = 1
    cumulative = np.concatenate([np.zeros(zero_shape), cumulative], axis=axis)

    upper = np.take(cumulative, np.arange(kernel_size, length + kernel_size), axis=axis)
    lower = np.take(cumulative, np.arange(0, length), axis=axis)
    return (upper - lower) / kernel_size


def box_blur(pixels: np.ndarray, radius: float) -> np.ndarray:
    """
    Two-pass box blur with a (2r + 1) uniform kernel.

    Horizontal pass then vertical pass; edge pixels are replicated, so the
    image keeps its size.
    """
    integer_radius = blur_radius(radius)
    if integer_radius == 0:
        return pixels.copy()
    horizontal = _box_pass(pixels.astype(np.float64), integer_radius, axis=1)
    return _to_uint8(_box_pass(horizontal, integer_radius, axis=0))


def sharpen(pixels: np.ndarray, intensity: float) -> np.ndarray:
    """
    3x3 sharpen: center 1 + 4i, 4-neighbours -i, corners 0.

    Border pixels are copied unmodified.
    """
    intensity = clamp_parameter("sharpen", intensity)
    sharpened = pixels.copy()
    height, width = pixels.shape[:2]
    if intensity == 0 or height < 3 or width < 3:
        return sharpened

    source = pixels.astype(np.float64)
    center = source[1:-1, 1:-1]
    neighbour_sum = (
        source[:-2, 1:-1] + source[2:, 1:-1] + source[1:-1, :-2] + source[1:-1, 2:]
    )
    sharpened[1:-1, 1:-1] = _to_uint8((1.0 + 4.0 * intensity) * center - intensity * neighbour_sum)
    return sharpened


# ----------------------------------------------------------------------
# Geometric transforms
# ----------------------------------------------------------------------

FLIP_DIRECTIONS = ("horizontal", "vertical")


def flip(pixels: np.ndarray, direction: str = "horizontal") -> np.ndarray:
    """Mirror left-right ("horizontal") or top-bottom ("vertical")."""
    if direction == "horizontal":
        return pixels[:, ::-1].copy()
    if direction == "vertical":
        return pixels[::-1].copy()
    raise ValueError(
        f"Unknown flip direction '{direction}'. Use 'horizontal' or 'vertical'."
    )


def rotated_canvas_size(width: int, height: int, angle_degrees: float) -> tuple[int, int]:
    """Canvas (width, height) after rotation: swapped unless angle mod 180 == 0."""
    if angle_degrees % 180 == 0:
        return width, height
    return height, width


def rotate(pixels: np.ndarray, angle_degrees: float) -> np.ndarray:
    """
    Rotate clockwise about the center onto a (possibly swapped) canvas.

    Right angles are exact. Other angles are resampled bilinearly and the
    rotated image is centered on a black canvas whose width and height are
    swapped whenever angle mod 180 != 0; corners that fall outside it are
    cut off.
    """
    height, width = pixels.shape[:2]
    normalized_angle = angle_degrees % 360

    if normalized_angle % 90 == 0:
        quarter_turns = int(normalized_angle // 90)
        # np.rot90 turns counter-clockwise for positive k
        return np.ascontiguousarray(np.rot90(pixels, k=-quarter_turns))

    canvas_width, canvas_height = rotated_canvas_size(width, height, angle_degrees)
    # PIL rotates counter-clockwise for positive angles
    rotated_image = Image.fromarray(pixels).rotate(
        -normalized_angle,
        resample=Image.Resampling.BILINEAR,
        expand=True,
    )
    canvas = Image.new("RGB", (canvas_width, canvas_height))
    paste_left = (canvas_width - rotated_image.width) // 2
    paste_top = (canvas_height - rotated_image.height) // 2
    canvas.paste(rotated_image, (paste_left, paste_top))
    return np.asarray(canvas, dtype=np.uint8).copy()


def rotate_in_place(pixels: np.ndarray, angle_degrees: float) -> np.ndarray:
    """
    Rotate clockwise about the center while keeping the canvas size.

    This matches rotating a drawing context before drawing: whatever
    leaves the canvas is cut off and uncovered areas stay black.
    """
    normalized_angle = angle_degrees % 360
    if normalized_angle == 0:
        return pixels.copy()
    height, width = pixels.shape[:2]
    if normalized_angle == 180:
        return np.ascontiguousarray(pixels[::-1, ::-1])
    if normalized_angle % 90 == 0 and width == height:
        return np.ascontiguousarray(np.rot90(pixels, k=-int(normalized_angle // 90)))
    rotated_image = Image.fromarray(pixels).rotate(
        -normalized_angle,
        resample=Image.Resampling.BILINEAR,
        expand=False,
    )
    return np.asarray(rotated_image, dtype=np.uint8).copy()
