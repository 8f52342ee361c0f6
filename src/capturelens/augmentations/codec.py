"""
Encoded-image boundary for the augmentation library.

Captured images travel as encoded bytes (JPEG by default). Every transform
decodes to an RGB array, runs a kernel, and re-encodes in the same format
the input arrived in.
"""

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from capturelens.core.errors import DecodeError

DEFAULT_IMAGE_FORMAT = "JPEG"
DEFAULT_JPEG_QUALITY = 92

MEDIA_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


def decode_image(image_bytes: bytes) -> tuple[np.ndarray, str]:
    """
    Decode bytes into an (H, W, 3) uint8 RGB array.

    Returns
    -------
    tuple[np.ndarray, str]
        The pixels and the format the bytes were encoded in (e.g. 'PNG').

    Raises
    ------
    DecodeError
        If the bytes are empty, truncated or not an image.
    """
    if not image_bytes:
        raise DecodeError("Cannot decode an empty image buffer.")

    try:
        with Image.open(io.BytesIO(image_bytes)) as decoded_image:
            decoded_image.load()
            source_format = decoded_image.format or DEFAULT_IMAGE_FORMAT
            rgb_pixels = np.asarray(decoded_image.convert("RGB"), dtype=np.uint8).copy()
    except (UnidentifiedImageError, OSError, ValueError) as decode_exception:
        raise DecodeError(
            f"Failed to decode image ({len(image_bytes)} bytes): {decode_exception}"
        ) from decode_exception

    return rgb_pixels, source_format


def encode_image(
    pixels: np.ndarray,
    image_format: str = DEFAULT_IMAGE_FORMAT,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """Encode an (H, W, 3) uint8 array. Quality applies to lossy formats only."""
    image_format = image_format.upper()
    save_options: dict[str, int] = {}
    if image_format in ("JPEG", "WEBP"):
        save_options["quality"] = quality

    output_buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(
        output_buffer,
        format=image_format,
        **save_options,
    )
    return output_buffer.getvalue()


def probe_dimensions(image_bytes: bytes) -> tuple[int, int]:
    """Return (width, height) by reading only the image header."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as probed_image:
            return probed_image.size
    except (UnidentifiedImageError, OSError, ValueError) as probe_exception:
        raise DecodeError(
            f"Failed to read image header ({len(image_bytes)} bytes): {probe_exception}"
        ) from probe_exception


def media_type_for(image_format: str) -> str:
    return MEDIA_TYPES.get(image_format.upper(), "application/octet-stream")
