"""Shared fixtures for idm-meta tests."""

from __future__ import annotations

import numpy as np
import pytest


@pytest.fixture
def cube_mask():
    """A fully selected 3x3x3 mask."""
    return np.ones((3, 3, 3), dtype=np.uint8)


@pytest.fixture
def labelled_mask():
    """A 6x5x4 mask with two ROIs (labels 3 and 7) and some empty voxels."""
    mask = np.zeros((6, 5, 4), dtype=np.int32)
    mask[0:3, 0:3, 0:2] = 3
    mask[3:6, 2:5, 1:4] = 7
    mask[5, 0, 0] = 3
    return mask


@pytest.fixture
def random_mask():
    """A sparse random binary mask with a fixed seed."""
    rng = np.random.default_rng(42)
    return (rng.random((9, 8, 7)) < 0.35).astype(np.uint8)
