"""Layer extraction module for separating color regions."""

import logging
from typing import List, Tuple

import numpy as np

from .quantize import pack_rgb, unpack_rgb
from .types import ALPHA_THRESHOLD, ColorLayer, ImageArray

logger = logging.getLogger(__name__)


def build_color_counts(image: ImageArray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Count the distinct opaque RGB values of an RGBA image.

    Args:
        image: RGBA image (H, W, 4)

    Returns:
        Tuple of (keys, counts, first_index)
        - keys: packed RGB value of each distinct color
        - counts: number of opaque pixels with that color
        - first_index: flat index of the first pixel with that color
    """
    flat = image.reshape(-1, 4)
    opaque = flat[:, 3] >= ALPHA_THRESHOLD
    positions = np.flatnonzero(opaque)
    if len(positions) == 0:
        empty = np.array([], dtype=np.int64)
        return empty.astype(np.uint32), empty, empty

    keys, first, counts = np.unique(
        pack_rgb(flat[positions, :3]), return_index=True, return_counts=True
    )
    return keys, counts, positions[first]


def create_color_mask(image: ImageArray, color: Tuple[int, int, int]) -> np.ndarray:
    """Create a binary mask of the opaque pixels matching ``color``.

    Args:
        image: RGBA image (H, W, 4)
        color: RGB color to match

    Returns:
        Binary mask (H, W) with True for matching pixels
    """
    mask = np.all(image[:, :, :3] == np.asarray(color[:3], dtype=image.dtype), axis=2)
    return mask & (image[:, :, 3] >= ALPHA_THRESHOLD)


def extract_color_layers(image: ImageArray) -> List[ColorLayer]:
    """Split an image into one layer per distinct opaque color.

    Layers are ordered by descending area; equal areas keep the raster order
    in which the colors first appear. This order is the paint order of the
    final SVG, so large background-like regions are drawn first.

    Args:
        image: Quantized RGBA image (H, W, 4)

    Returns:
        List of ColorLayer, pairwise disjoint
    """
    keys, counts, first_index = build_color_counts(image)
    if len(keys) == 0:
        return []

    order = np.lexsort((first_index, -counts))
    colors = unpack_rgb(keys[order])

    layers = []
    for color, count in zip(colors, counts[order]):
        rgb = (int(color[0]), int(color[1]), int(color[2]))
        layers.append(ColorLayer(
            color=rgb,
            mask=create_color_mask(image, rgb),
            area=int(count),
        ))
        logger.debug(f"Layer rgb{layers[-1].color}: {count} pixels")

    return layers
