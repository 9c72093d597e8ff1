"""Curve smoothing module using Catmull-Rom splines."""

import math
from typing import Tuple

import numpy as np

from .types import Contour

# Smoothing levels at or below this leave contours untouched
SMOOTHING_CUTOFF = 0.3

# Upper bound on how far samples are pulled toward the spline
MAX_BLEND = 0.6

DEFAULT_DEDUPE_DISTANCE = 0.5


def samples_per_segment(smoothing: float) -> int:
    """Number of samples taken between consecutive contour points."""
    return max(3, math.floor(10 * smoothing))


def catmull_rom_points(
    p0: np.ndarray, p1: np.ndarray, p2: np.ndarray, p3: np.ndarray, t: np.ndarray
) -> np.ndarray:
    """Evaluate Catmull-Rom segments between ``p1`` and ``p2``.

    All point arguments are (N, 2) arrays, one segment per row; ``t`` holds
    the M parameters to evaluate.

    Returns:
        Array of shape (N, M, 2)
    """
    t = np.asarray(t, dtype=np.float64)[None, :, None]
    t2 = t ** 2
    t3 = t ** 3
    p0, p1, p2, p3 = (p[:, None, :] for p in (p0, p1, p2, p3))

    return 0.5 * (
        (2 * p1) +
        (-p0 + p2) * t +
        (2*p0 - 5*p1 + 4*p2 - p3) * t2 +
        (-p0 + 3*p1 - 3*p2 + p3) * t3
    )


def remove_close_points(points: Contour, min_distance: float = DEFAULT_DEDUPE_DISTANCE) -> Contour:
    """Drop points closer than ``min_distance`` to the previously kept point."""
    if len(points) == 0:
        return points

    kept = [points[0]]
    for point in points[1:]:
        prev = kept[-1]
        if math.hypot(point[0] - prev[0], point[1] - prev[1]) >= min_distance:
            kept.append(point)
    return np.array(kept)


def smooth_contour_catmull_rom(
    contour: Contour,
    smoothing: float,
    min_distance: float = DEFAULT_DEDUPE_DISTANCE,
) -> Tuple[Contour, int]:
    """Resample a closed contour along a Catmull-Rom spline.

    For every point the segment toward the next point is sampled
    ``samples_per_segment(smoothing)`` times. Each sample is blended from
    the segment's start point toward the spline by
    ``min(0.6, smoothing)``, so low values stay close to the polyline.

    Args:
        contour: Array of (x, y) points (N, 2), implicitly closed
        smoothing: Smoothing level in [0, 1]
        min_distance: Spacing below which consecutive samples are merged

    Returns:
        Tuple of (smoothed_contour, sampled_count) where sampled_count is
        the number of samples before close points were removed. Contours
        with fewer than 4 points are returned unchanged.
    """
    contour = np.asarray(contour, dtype=np.float64)
    if len(contour) < 4:
        return contour, len(contour)

    segments = samples_per_segment(smoothing)
    alpha = min(MAX_BLEND, smoothing)

    p0 = np.roll(contour, 1, axis=0)
    p1 = contour
    p2 = np.roll(contour, -1, axis=0)
    p3 = np.roll(contour, -2, axis=0)
    t = np.arange(segments) / segments

    spline = catmull_rom_points(p0, p1, p2, p3, t)
    blended = p1[:, None, :] * (1 - alpha) + spline * alpha
    samples = blended.reshape(-1, 2)

    return remove_close_points(samples, min_distance), len(samples)


def smooth_contour(
    contour: Contour,
    smoothing: float,
    min_distance: float = DEFAULT_DEDUPE_DISTANCE,
) -> Tuple[Contour, int]:
    """Smooth a contour according to the smoothing level.

    Levels at or below 0.3 pass the contour through unchanged.
    """
    if smoothing <= SMOOTHING_CUTOFF:
        return contour, len(contour)
    return smooth_contour_catmull_rom(contour, smoothing, min_distance)
