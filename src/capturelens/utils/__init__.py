"""
Shared utility functions.
"""

from capturelens.utils.image_arrays import normalize_to_rgb_uint8

__all__ = [
    "normalize_to_rgb_uint8",
]
