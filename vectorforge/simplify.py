"""Curve simplification module using the Douglas-Peucker algorithm."""

import numpy as np

from .types import Contour

# Default tolerance in pixels
DEFAULT_TOLERANCE = 1.5


def perpendicular_distances(points: np.ndarray, start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """Distance from each point to the segment ``start``-``end``.

    The projection is clamped to the segment, so points beyond either end
    measure to the nearest endpoint. A zero-length segment measures to
    ``start``.

    Args:
        points: Array of (x, y) points (N, 2)
        start: Segment start (2,)
        end: Segment end (2,)

    Returns:
        Array of N distances
    """
    points = np.asarray(points, dtype=np.float64)
    start = np.asarray(start, dtype=np.float64)
    end = np.asarray(end, dtype=np.float64)

    chord = end - start
    length_sq = float(chord @ chord)
    if length_sq == 0.0:
        return np.linalg.norm(points - start, axis=1)

    t = np.clip(((points - start) @ chord) / length_sq, 0.0, 1.0)
    projected = start + t[:, None] * chord
    return np.linalg.norm(points - projected, axis=1)


def douglas_peucker(points: Contour, tolerance: float = DEFAULT_TOLERANCE) -> Contour:
    """Simplify an open polyline with Douglas-Peucker.

    The point farthest from the chord between the endpoints is kept when its
    distance exceeds ``tolerance`` and both halves are processed in turn;
    otherwise the span collapses to its endpoints. Implemented with an
    explicit stack so long boundaries do not hit the recursion limit.

    Args:
        points: Array of (x, y) points (N, 2)
        tolerance: Maximum allowed deviation in pixels

    Returns:
        Simplified points, always including the first and last point
    """
    points = np.asarray(points, dtype=np.float64)
    n = len(points)
    if n < 3:
        return points.copy()

    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True

    stack = [(0, n - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        distances = perpendicular_distances(points[first + 1:last], points[first], points[last])
        offset = int(np.argmax(distances))
        if distances[offset] > tolerance:
            split = first + 1 + offset
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))

    return points[keep]


def simplify_ring(points: Contour, tolerance: float = DEFAULT_TOLERANCE) -> Contour:
    """Simplify a closed ring without degenerating it.

    If simplification would leave fewer than 3 points, the ring is
    returned unsimplified.
    """
    points = np.asarray(points, dtype=np.float64)
    simplified = douglas_peucker(points, tolerance)
    if len(simplified) < 3 and len(points) >= 3:
        return points.copy()
    return simplified
