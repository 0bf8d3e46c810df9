import os

# pygame must not try to open a real display during tests.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import numpy as np
import pytest

from shapes import ShapeRasterizer


class BlockRasterizer(ShapeRasterizer):
    """Solid rectangle in the middle of the buffer, whatever the token."""

    def __init__(self):
        self.calls = []

    def rasterize(self, token, width, height):
        self.calls.append((token, width, height))
        mask = np.zeros((height, width), dtype=bool)
        mask[height // 4: 3 * height // 4, width // 4: 3 * width // 4] = True
        return mask


class EmptyRasterizer(ShapeRasterizer):
    def rasterize(self, token, width, height):
        return np.zeros((height, width), dtype=bool)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def block_rasterizer():
    return BlockRasterizer()


@pytest.fixture
def sim_params():
    return {
        "seed": 7,
        "particle_count": 150,
        "cycle_duration_ms": 30000,
        "roam_duration_ms": 10000,
        "transition_duration_ms": 5000,
    }
