"""
Normalization helpers for the many shapes a camera frame can arrive in.

Frame sources hand us grayscale, RGBA, channels-first or float arrays.
Everything downstream assumes (H, W, 3) uint8 RGB, so conversion happens
here once.
"""

from __future__ import annotations

from typing import Any

import numpy as np


def normalize_to_rgb_uint8(raw_image_data: Any) -> np.ndarray:
    """
    Convert any common image array to (H, W, 3) uint8 RGB.

    Handles:
    - array-likes → numpy arrays
    - CHW layout → HWC layout
    - grayscale → 3 identical channels
    - RGBA → RGB (alpha dropped)
    - float [0, 1] → uint8 [0, 255]

    Raises
    ------
    ValueError
        If the input cannot be interpreted as an image.
    """
    image_array = _to_numpy(raw_image_data)
    image_array = _fix_channel_order(image_array)
    image_array = _normalize_dtype(image_array)
    return _to_three_channels(image_array)


def _to_numpy(data: Any) -> np.ndarray:
    if isinstance(data, np.ndarray):
        return data
    try:
        return np.asarray(data)
    except Exception as conversion_error:
        raise ValueError(
            f"Cannot convert {type(data).__name__} to numpy array. "
            f"Error: {conversion_error}"
        ) from conversion_error


def _fix_channel_order(image: np.ndarray) -> np.ndarray:
    """
    Transpose CHW to HWC if needed.

    Detection heuristic: if shape is (C, H, W) where C in {1, 3, 4}
    and H, W are larger, assume channels-first and transpose.
    """
    if image.ndim == 2:
        return image[:, :, np.newaxis]

    if image.ndim != 3:
        raise ValueError(
            f"Expected 2D or 3D image array, got shape {image.shape}. "
            "Cannot determine channel layout."
        )

    dim0, dim1, dim2 = image.shape
    likely_channels_first = dim0 in (1, 3, 4) and dim1 > 4 and dim2 > 4
    likely_channels_last = dim2 in (1, 3, 4) and dim0 > 4 and dim1 > 4

    if likely_channels_first and not likely_channels_last:
        return np.transpose(image, (1, 2, 0))
    return image


def _normalize_dtype(image: np.ndarray) -> np.ndarray:
    """
    Convert to uint8 [0, 255].

    If max value <= 1.0 and dtype is float, assume [0, 1] range and scale.
    Otherwise, clip to [0, 255] and cast.
    """
    if image.dtype == np.uint8:
        return image

    is_float = np.issubdtype(image.dtype, np.floating)
    if is_float and image.size and image.max() <= 1.0:
        image = image * 255.0

    return np.clip(np.rint(image), 0, 255).astype(np.uint8)


def _to_three_channels(image: np.ndarray) -> np.ndarray:
    channel_count = image.shape[2]
    if channel_count == 3:
        return image
    if channel_count == 1:
        return np.repeat(image, 3, axis=2)
    if channel_count == 4:
        return image[:, :, :3]
    raise ValueError(
        f"Expected 1, 3 or 4 channels, got {channel_count} (shape {image.shape})."
    )
