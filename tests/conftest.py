"""Pytest configuration and fixtures."""

import numpy as np
import pytest

from vectorforge.types import PixelBuffer


def make_rgba(height: int, width: int, color=(255, 255, 255, 255)) -> np.ndarray:
    """Solid RGBA image."""
    image = np.zeros((height, width, 4), dtype=np.uint8)
    image[:, :] = color
    return image


@pytest.fixture
def solid_red():
    """2x2 fully opaque red buffer."""
    return PixelBuffer.from_array(make_rgba(2, 2, (255, 0, 0, 255)))


@pytest.fixture
def transparent():
    """8x8 buffer with alpha 0 everywhere."""
    return PixelBuffer.from_array(make_rgba(8, 8, (40, 80, 120, 0)))


@pytest.fixture
def checkerboard():
    """4x4 black/white checkerboard, black at the origin."""
    image = make_rgba(4, 4, (255, 255, 255, 255))
    for y in range(4):
        for x in range(4):
            if (x + y) % 2 == 0:
                image[y, x, :3] = 0
    return image


@pytest.fixture
def scene():
    """40x40 white canvas with a 20x20 red square and a 6x8 blue block."""
    image = make_rgba(40, 40, (255, 255, 255, 255))
    image[10:30, 10:30, :3] = (255, 0, 0)
    image[2:8, 30:38, :3] = (0, 0, 255)
    return PixelBuffer.from_array(image)


@pytest.fixture
def noisy_image():
    """Reproducible random RGBA image with some transparent pixels."""
    rng = np.random.default_rng(7)
    image = rng.integers(0, 256, (24, 24, 4), dtype=np.uint8)
    image[:, :, 3] = 255
    image[:4, :4, 3] = 0
    return PixelBuffer.from_array(image)
