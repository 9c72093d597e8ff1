"""Contour detection module for boundary tracing."""

import logging
import math
from collections import deque
from typing import List, Optional, Tuple

import cv2
import numpy as np
from scipy import ndimage
from scipy.spatial import cKDTree

from .simplify import DEFAULT_TOLERANCE, simplify_ring
from .types import BOUNDARY_ORDERS, ColorLayer, Contour, ContourMap

logger = logging.getLogger(__name__)

# 8-connectivity for regions and edge tests
EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)

# Flood fill neighbour order
_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (-1, -1), (1, -1), (-1, 1))


def detail_threshold(complexity: float) -> int:
    """Minimum number of simplified boundary points a contour needs to be kept."""
    return max(2, math.floor(50 - complexity * 45))


def label_regions(mask: np.ndarray) -> Tuple[np.ndarray, int]:
    """Label the 8-connected regions of a mask.

    Labels are assigned in raster order of each region's first pixel.
    """
    return ndimage.label(mask, structure=EIGHT_CONNECTED)


def edge_pixels(mask: np.ndarray) -> np.ndarray:
    """Mask pixels that touch the image border or a False 8-neighbour."""
    mask = mask.astype(bool)
    interior = ndimage.binary_erosion(mask, structure=EIGHT_CONNECTED, border_value=0)
    return mask & ~interior


def order_nearest(points: np.ndarray) -> np.ndarray:
    """Chain points greedily, always stepping to the nearest unvisited one.

    Starts at ``points[0]``; among equally near candidates the one with the
    lowest index wins.

    Args:
        points: Array of (x, y) points (N, 2)

    Returns:
        The same points, reordered
    """
    n = len(points)
    if n < 3:
        return points

    tree = cKDTree(points)
    visited = np.zeros(n, dtype=bool)
    visited[0] = True
    order = [0]
    current = 0

    for _ in range(n - 1):
        k = 8
        while True:
            k = min(k, n)
            distances, indices = tree.query(points[current], k=k)
            free = ~visited[indices]
            if free.any():
                best = distances[free].min()
                # every candidate at ``best`` is in the result unless the
                # farthest returned neighbour is also at ``best``
                if k == n or distances[-1] > best:
                    tied = indices[free & (distances == best)]
                    current = int(tied.min())
                    break
            k *= 4
        visited[current] = True
        order.append(current)

    return points[order]


def order_discovery(region: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Edge pixels of a region in flood-fill discovery order.

    Breadth-first from the region's first pixel in raster order.

    Returns:
        Array of (x, y) points (N, 2)
    """
    ys, xs = np.nonzero(region)
    if len(ys) == 0:
        return np.empty((0, 2), dtype=np.float64)

    height, width = region.shape
    inside = region.tolist()
    on_edge = edges.tolist()
    visited = [[False] * width for _ in range(height)]

    found = []
    queue = deque([(int(xs[0]), int(ys[0]))])
    while queue:
        x, y = queue.popleft()
        if x < 0 or x >= width or y < 0 or y >= height:
            continue
        if visited[y][x] or not inside[y][x]:
            continue
        visited[y][x] = True
        if on_edge[y][x]:
            found.append((x, y))
        for dx, dy in _DIRECTIONS:
            queue.append((x + dx, y + dy))

    return np.array(found, dtype=np.float64).reshape(-1, 2)


def trace_outer_border(region: np.ndarray) -> np.ndarray:
    """Ordered outer border of a single region using OpenCV border following.

    Returns:
        Array of (x, y) points (N, 2)
    """
    padded = np.pad(region.astype(np.uint8), 1)
    found, _ = cv2.findContours(padded, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE)
    if not found:
        return np.empty((0, 2), dtype=np.float64)
    border = max(found, key=len).reshape(-1, 2)
    return border.astype(np.float64) - 1.0


def region_boundary(region: np.ndarray, edges: np.ndarray, boundary_order: str = "nearest") -> np.ndarray:
    """Ordered boundary points of one region, in the region's local coordinates.

    Args:
        region: Binary mask of a single connected region
        edges: Edge pixel mask (only pixels inside ``region`` are used)
        boundary_order: "nearest", "traced" or "discovery"

    Returns:
        Array of (x, y) points (N, 2)
    """
    if boundary_order not in BOUNDARY_ORDERS:
        raise ValueError(f"boundary_order must be one of {BOUNDARY_ORDERS}, got {boundary_order!r}")

    if boundary_order == "traced":
        return trace_outer_border(region)

    discovered = order_discovery(region, edges & region)
    if boundary_order == "discovery":
        return discovered

    # Distance ties resolve to the earliest discovered pixel
    return order_nearest(discovered)


def find_contours(
    mask: np.ndarray,
    min_points: int,
    boundary_order: str = "nearest",
    tolerance: float = DEFAULT_TOLERANCE,
) -> List[Contour]:
    """Find simplified contours for every connected region of a mask.

    Each region's boundary is ordered, simplified with Douglas-Peucker and
    kept when it has at least ``min_points`` points. Contours with fewer
    than 3 points are never returned. When every region of the mask falls
    below ``min_points``, the largest-area region is kept anyway so that a
    non-empty layer does not vanish.

    Args:
        mask: Binary mask (H, W) with True for layer pixels
        min_points: Detail threshold in points
        boundary_order: How boundary pixels are ordered before simplification
        tolerance: Douglas-Peucker tolerance in pixels

    Returns:
        List of contours, each an array of (x, y) points (N, 2), in raster
        order of the regions
    """
    labels, n_regions = label_regions(mask)
    if n_regions == 0:
        return []

    edges = edge_pixels(mask)
    areas = np.bincount(labels.ravel(), minlength=n_regions + 1)
    slices = ndimage.find_objects(labels)

    contours: List[Contour] = []
    fallback: Optional[Tuple[int, Contour]] = None

    for label_id, bbox in enumerate(slices, start=1):
        if bbox is None:
            continue
        region = labels[bbox] == label_id
        points = region_boundary(region, edges[bbox], boundary_order)
        if len(points) < 3:
            continue

        offset = np.array([bbox[1].start, bbox[0].start], dtype=np.float64)
        simplified = simplify_ring(points + offset, tolerance)
        if len(simplified) < 3:
            continue

        if len(simplified) >= min_points:
            contours.append(simplified)
        elif fallback is None or areas[label_id] > fallback[0]:
            fallback = (int(areas[label_id]), simplified)

    if not contours and fallback is not None:
        contours.append(fallback[1])

    return contours


def trace_contours(
    layers: List[ColorLayer],
    complexity: float,
    boundary_order: str = "nearest",
    tolerance: float = DEFAULT_TOLERANCE,
) -> ContourMap:
    """Trace every color layer.

    Args:
        layers: Color layers in paint order
        complexity: Detail level in [0, 1]
        boundary_order: How boundary pixels are ordered before simplification
        tolerance: Douglas-Peucker tolerance in pixels

    Returns:
        Dict mapping each layer color to its contours, in layer order
    """
    min_points = detail_threshold(complexity)
    traced: ContourMap = {}

    for layer in layers:
        if layer.area == 0:
            traced[layer.color] = []
            continue
        traced[layer.color] = find_contours(layer.mask, min_points, boundary_order, tolerance)
        logger.debug(f"Layer rgb{layer.color}: {len(traced[layer.color])} contours")

    return traced
