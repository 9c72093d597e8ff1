"""Color quantization module using median-cut palette reduction."""

import logging
import math
from typing import List, Tuple

import numpy as np

from .types import ALPHA_THRESHOLD, ImageArray, InvalidInputError

logger = logging.getLogger(__name__)

# Centroid used when there is nothing to quantize
PLACEHOLDER_COLOR = (128, 128, 128)

# Written into transparent pixels so they join no layer
TRANSPARENT_PIXEL = (255, 255, 255, 0)

# Colors compared against the palette per batch
_CHUNK = 16384


def target_color_count(color_simplification: float) -> int:
    """Palette size for a color simplification level in [0, 1]."""
    return max(4, math.floor(256 - color_simplification * 240))


def median_cut(pixels: np.ndarray, n_colors: int) -> np.ndarray:
    """Reduce a set of RGB pixels to at most ``n_colors`` representative colors.

    Boxes are split one at a time: the box with the widest channel range is
    sorted along that channel and cut at its midpoint. Splitting stops when
    ``n_colors`` boxes exist or no box has any range left. Each box is
    represented by the rounded mean of its members.

    Args:
        pixels: Array of RGB values (N, 3)
        n_colors: Maximum number of palette entries (must be >= 1)

    Returns:
        Palette array (K, 3) uint8 with 1 <= K <= n_colors, in box order
    """
    if n_colors < 1:
        raise ValueError(f"n_colors must be >= 1, got {n_colors}")

    if len(pixels) == 0:
        return np.array([PLACEHOLDER_COLOR], dtype=np.uint8)

    boxes: List[np.ndarray] = [np.asarray(pixels, dtype=np.int32).reshape(-1, 3)]
    ranges: List[np.ndarray] = [np.ptp(boxes[0], axis=0)]

    while len(boxes) < n_colors:
        widest = [int(r.max()) for r in ranges]
        idx = int(np.argmax(widest))
        if widest[idx] == 0:
            break

        box = boxes[idx]
        channel = int(np.argmax(ranges[idx]))
        order = np.argsort(box[:, channel], kind="stable")
        ordered = box[order]
        mid = len(ordered) // 2
        left, right = ordered[:mid], ordered[mid:]

        boxes[idx:idx + 1] = [left, right]
        ranges[idx:idx + 1] = [np.ptp(left, axis=0), np.ptp(right, axis=0)]

    palette = np.array([np.rint(box.mean(axis=0)) for box in boxes])
    return np.clip(palette, 0, 255).astype(np.uint8)


def nearest_palette_indices(colors: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Index of the nearest palette entry for each color.

    Uses squared Euclidean RGB distance; ties go to the earliest entry.
    """
    colors = np.asarray(colors, dtype=np.int32).reshape(-1, 3)
    palette = np.asarray(palette, dtype=np.int32).reshape(-1, 3)

    indices = np.empty(len(colors), dtype=np.intp)
    for start in range(0, len(colors), _CHUNK):
        chunk = colors[start:start + _CHUNK]
        diff = chunk[:, None, :] - palette[None, :, :]
        distances = np.einsum("ijk,ijk->ij", diff, diff)
        indices[start:start + _CHUNK] = np.argmin(distances, axis=1)
    return indices


def pack_rgb(rgb: np.ndarray) -> np.ndarray:
    """Pack (..., 3) RGB values into single uint32 keys."""
    rgb = rgb.astype(np.uint32)
    return (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]


def unpack_rgb(keys: np.ndarray) -> np.ndarray:
    keys = keys.astype(np.uint32)
    return np.stack([(keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF], axis=-1)


def quantize_pixels(image: ImageArray, n_colors: int) -> Tuple[ImageArray, np.ndarray]:
    """Quantize an RGBA image to a median-cut palette.

    Every opaque pixel is replaced by its nearest palette color with alpha
    forced to 255. Transparent pixels (alpha < 10) become white with
    alpha 0.

    Args:
        image: RGBA image (H, W, 4) uint8
        n_colors: Target palette size

    Returns:
        Tuple of (quantized_image, palette)
        - quantized_image: (H, W, 4) uint8, same shape as the input
        - palette: (K, 3) uint8

    Raises:
        InvalidInputError: If the image is not an RGBA array
    """
    if image.ndim != 3 or image.shape[2] != 4:
        raise InvalidInputError(f"Expected an (H, W, 4) RGBA image, got shape {image.shape}")

    opaque = image[:, :, 3] >= ALPHA_THRESHOLD
    opaque_rgb = image[:, :, :3][opaque]

    palette = median_cut(opaque_rgb, n_colors)

    quantized = np.empty_like(image)
    quantized[:, :] = TRANSPARENT_PIXEL

    if len(opaque_rgb):
        # Remap each distinct color once
        keys, inverse = np.unique(pack_rgb(opaque_rgb), return_inverse=True)
        nearest = nearest_palette_indices(unpack_rgb(keys), palette)
        mapped = palette[nearest][inverse.reshape(-1)]
        quantized[opaque, :3] = mapped
        quantized[opaque, 3] = 255
    else:
        logger.warning("Image has no opaque pixels; nothing to quantize")

    return quantized, palette
