from __future__ import annotations

import numpy as np
import pytest

from utils.logger import Logger

Logger.configure(level="WARNING", to_file=False)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def grid_plane() -> np.ndarray:
    """11x11 grid on z = 0 with unit spacing."""
    xs, ys = np.meshgrid(np.arange(11.0), np.arange(11.0))
    return np.stack([xs.ravel(), ys.ravel(), np.zeros(xs.size)], axis=1)


@pytest.fixture
def random_cloud(rng) -> np.ndarray:
    return rng.uniform(-5.0, 5.0, size=(400, 3))


@pytest.fixture
def two_planes() -> np.ndarray:
    """A horizontal patch (z=0) and a vertical patch (x=20), far apart."""
    a, b = np.meshgrid(np.arange(6.0), np.arange(6.0))
    a, b = a.ravel(), b.ravel()
    floor = np.stack([a, b, np.zeros_like(a)], axis=1)
    wall = np.stack([np.full_like(a, 20.0), a, b], axis=1)
    return np.vstack([floor, wall])
