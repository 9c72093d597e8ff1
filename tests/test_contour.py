"""Tests for contour detection module."""

import math
from collections import deque

import numpy as np
import pytest

from vectorforge.contour import (
    detail_threshold,
    edge_pixels,
    find_contours,
    label_regions,
    order_discovery,
    order_nearest,
    region_boundary,
    trace_contours,
    trace_outer_border,
)
from vectorforge.extract import extract_color_layers
from vectorforge.types import ColorLayer


def square_mask(size=20, start=5, side=10):
    mask = np.zeros((size, size), dtype=bool)
    mask[start:start + side, start:start + side] = True
    return mask


def disk_mask(size, radius, center=None):
    cx, cy = center if center is not None else (size // 2, size // 2)
    ys, xs = np.mgrid[:size, :size]
    return (xs - cx) ** 2 + (ys - cy) ** 2 <= radius ** 2


def reference_contours(mask, min_size, tolerance=1.5):
    """Pixel-by-pixel flood fill, nearest chaining and Douglas-Peucker."""
    height, width = mask.shape
    pixels = mask.tolist()
    visited = [[False] * width for _ in range(height)]
    directions = [(1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (-1, -1), (1, -1), (-1, 1)]

    def is_edge(x, y):
        if x == 0 or x == width - 1 or y == 0 or y == height - 1:
            return True
        return any(not pixels[y + dy][x + dx] for dx, dy in directions)

    def distance(a, b):
        return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)

    def segment_distance(p, start, end):
        dx, dy = end[0] - start[0], end[1] - start[1]
        if dx == 0 and dy == 0:
            return distance(p, start)
        t = max(0, min(1, ((p[0] - start[0]) * dx + (p[1] - start[1]) * dy) / (dx * dx + dy * dy)))
        return distance(p, (start[0] + t * dx, start[1] + t * dy))

    def simplify(pts):
        if len(pts) < 3:
            return pts
        max_dist, max_index = 0, 0
        for i in range(1, len(pts) - 1):
            d = segment_distance(pts[i], pts[0], pts[-1])
            if d > max_dist:
                max_dist, max_index = d, i
        if max_dist > tolerance:
            return simplify(pts[:max_index + 1])[:-1] + simplify(pts[max_index:])
        return [pts[0], pts[-1]]

    def chain(points):
        ordered, remaining = [points[0]], list(points[1:])
        while remaining:
            last = ordered[-1]
            best = min(range(len(remaining)), key=lambda i: (distance(last, remaining[i]), i))
            ordered.append(remaining.pop(best))
        return ordered

    contours = []
    for y in range(height):
        for x in range(width):
            if not pixels[y][x] or visited[y][x]:
                continue
            found = []
            queue = deque([(x, y)])
            while queue:
                px, py = queue.popleft()
                if px < 0 or px >= width or py < 0 or py >= height:
                    continue
                if visited[py][px] or not pixels[py][px]:
                    continue
                visited[py][px] = True
                if is_edge(px, py):
                    found.append((px, py))
                for dx, dy in directions:
                    queue.append((px + dx, py + dy))
            points = simplify(chain(found)) if len(found) >= 2 else found
            if len(points) >= min_size:
                contours.append(points)
    return contours


class TestDetailThreshold:
    """Test cases for detail_threshold function."""

    def test_values(self):
        """Test the threshold across the complexity range."""
        assert detail_threshold(0.0) == 50
        assert detail_threshold(0.5) == 27
        assert detail_threshold(1.0) == 5

    def test_lower_bound(self):
        """Test the threshold never drops below 2."""
        assert detail_threshold(5.0) == 2


class TestEdgePixels:
    """Test cases for edge_pixels and label_regions functions."""

    def test_full_mask(self):
        """Test a full mask has only its outer ring as edge."""
        edges = edge_pixels(np.ones((5, 5), dtype=bool))

        assert edges.sum() == 16
        assert not edges[1:4, 1:4].any()

    def test_edges_inside_mask(self):
        """Test edge pixels are a subset of the mask."""
        mask = square_mask()
        edges = edge_pixels(mask)

        assert not np.any(edges & ~mask)
        assert edges.sum() == 36

    def test_diagonal_pixels_connected(self):
        """Test that diagonal neighbours form one region."""
        mask = np.eye(4, dtype=bool)

        _, n_regions = label_regions(mask)

        assert n_regions == 1


class TestOrderNearest:
    """Test cases for order_nearest function."""

    def test_square_ring_steps(self):
        """Test every step around a square ring moves one pixel."""
        edges = edge_pixels(np.ones((6, 6), dtype=bool))
        ys, xs = np.nonzero(edges)
        points = np.column_stack([xs, ys]).astype(float)

        ordered = order_nearest(points)

        steps = np.linalg.norm(np.diff(ordered, axis=0), axis=1)
        np.testing.assert_allclose(steps, 1.0)
        np.testing.assert_array_equal(ordered[0], [0, 0])
        np.testing.assert_array_equal(ordered[1], [1, 0])

    def test_same_points(self):
        """Test ordering is a permutation of the input."""
        rng = np.random.default_rng(3)
        points = rng.integers(0, 50, (60, 2)).astype(float)

        ordered = order_nearest(points)

        assert sorted(map(tuple, ordered)) == sorted(map(tuple, points))


class TestOrderDiscovery:
    """Test cases for order_discovery function."""

    def test_edge_set(self):
        """Test discovery returns exactly the edge pixels, starting at the first pixel."""
        region = np.ones((3, 3), dtype=bool)
        edges = edge_pixels(region)

        points = order_discovery(region, edges)

        assert len(points) == 8
        np.testing.assert_array_equal(points[0], [0, 0])
        assert {tuple(p) for p in points} == {
            (x, y) for y in range(3) for x in range(3) if (x, y) != (1, 1)
        }

    def test_empty_region(self):
        """Test an empty region has no points."""
        region = np.zeros((3, 3), dtype=bool)

        assert order_discovery(region, region).shape == (0, 2)


class TestTraceOuterBorder:
    """Test cases for trace_outer_border function."""

    def test_square(self):
        """Test the traced border of a square is its ring of edge pixels."""
        region = np.ones((10, 10), dtype=bool)

        border = trace_outer_border(region)

        assert len(border) == 36
        expected = {(x, y) for y, x in zip(*np.nonzero(edge_pixels(region)))}
        assert {tuple(int(v) for v in p) for p in border} == expected


class TestRegionBoundary:
    """Test cases for region_boundary function."""

    def test_unknown_order(self):
        """Test an unknown ordering mode raises ValueError."""
        region = np.ones((3, 3), dtype=bool)

        with pytest.raises(ValueError, match="boundary_order"):
            region_boundary(region, edge_pixels(region), "spiral")

    @pytest.mark.parametrize("boundary_order", ["nearest", "traced", "discovery"])
    def test_all_orders_cover_edges(self, boundary_order):
        """Test every mode visits each edge pixel of a square once."""
        region = np.ones((6, 6), dtype=bool)
        edges = edge_pixels(region)

        points = region_boundary(region, edges, boundary_order)

        assert len(points) == 20
        assert len({tuple(p) for p in points}) == 20


class TestFindContours:
    """Test cases for find_contours function."""

    def test_single_square(self):
        """Test a square yields one simplified contour inside its bounds."""
        contours = find_contours(square_mask(), min_points=3)

        assert len(contours) == 1
        contour = contours[0]
        assert contour.shape == (5, 2)
        assert contour.min() >= 5
        assert contour.max() <= 14

    def test_square_corners(self):
        """Test the simplified square keeps its corners."""
        contour = find_contours(square_mask(), min_points=3)[0]

        corners = {(5, 5), (14, 5), (14, 14), (5, 14)}
        assert corners <= {tuple(int(v) for v in p) for p in contour}

    @pytest.mark.parametrize("boundary_order", ["nearest", "traced", "discovery"])
    def test_orders(self, boundary_order):
        """Test every ordering mode produces a valid contour."""
        contours = find_contours(square_mask(), min_points=3, boundary_order=boundary_order)

        assert len(contours) == 1
        assert len(contours[0]) >= 3

    def test_fallback_keeps_largest(self):
        """Test the largest region survives when nothing meets the threshold."""
        mask = square_mask(size=30)
        mask[25:27, 25:27] = True

        contours = find_contours(mask, min_points=50)

        assert len(contours) == 1
        assert contours[0].min() >= 5
        assert contours[0].max() <= 14

    def test_threshold_filters_small_regions(self):
        """Test regions below the threshold are dropped when another passes."""
        mask = square_mask(size=30)
        mask[25:27, 25:27] = True

        assert len(find_contours(mask, min_points=3)) == 2
        assert len(find_contours(mask, min_points=5)) == 1

    def test_degenerate_regions(self):
        """Test regions too small to form a ring produce nothing."""
        mask = np.zeros((10, 10), dtype=bool)
        mask[1, 1] = True
        mask[6, 6:8] = True

        assert find_contours(mask, min_points=2) == []

    def test_empty_mask(self):
        """Test an empty mask has no contours."""
        assert find_contours(np.zeros((5, 5), dtype=bool), min_points=2) == []


class TestTraceContours:
    """Test cases for trace_contours function."""

    def test_layer_order_kept(self, scene):
        """Test the contour map follows layer order."""
        layers = extract_color_layers(scene.data)

        traced = trace_contours(layers, complexity=0.5)

        assert list(traced) == [layer.color for layer in layers]
        assert all(len(contours) >= 1 for contours in traced.values())

    def test_zero_area_layer(self):
        """Test an empty layer maps to no contours."""
        layer = ColorLayer(color=(1, 2, 3), mask=np.zeros((4, 4), dtype=bool), area=0)

        assert trace_contours([layer], complexity=0.5) == {(1, 2, 3): []}

    def test_contours_within_image(self, scene):
        """Test contour coordinates stay within the image."""
        traced = trace_contours(extract_color_layers(scene.data), complexity=1.0)

        for contours in traced.values():
            for contour in contours:
                assert contour[:, 0].min() >= 0 and contour[:, 0].max() <= scene.width - 1
                assert contour[:, 1].min() >= 0 and contour[:, 1].max() <= scene.height - 1


class TestNearestOrderMatchesFloodFill:
    """Compare the default tracing with a pixel-by-pixel flood fill tracer."""

    @pytest.mark.parametrize(
        "mask",
        [
            disk_mask(30, 11),
            disk_mask(30, 8, center=(3, 15)),
            disk_mask(40, 12) | square_mask(size=40, start=18, side=15),
        ],
        ids=["disk", "border-disk", "disk-and-square"],
    )
    def test_same_contours(self, mask):
        """Test walk direction and simplified points agree with the flood fill tracer."""
        contours = find_contours(mask, min_points=2)

        ours = [[(int(x), int(y)) for x, y in contour] for contour in contours]
        assert ours == reference_contours(mask, 2)

    def test_disk_walks_clockwise(self):
        """Test the disk boundary leaves the top point toward increasing x."""
        contour = find_contours(disk_mask(30, 11), min_points=2)[0]

        np.testing.assert_array_equal(contour[0], [15, 4])
        assert contour[1][0] > 15
