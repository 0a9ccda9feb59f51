"""
Pytest configuration and shared fixtures for modeseek tests.

This file provides:
- Kernel factories (uniform, Gaussian, call-counting)
- Sample sets (2-D blobs, 3-D blobs inside grid cells)
- Common test utilities
"""

from typing import Callable

import pytest
import numpy as np


# ==============================================================================
# Kernels
# ==============================================================================

def make_uniform_kernel(bandwidth: float) -> Callable:
    """Kernel that weighs every sample within ``bandwidth`` equally."""
    radius_sq = bandwidth ** 2

    def kernel(a, b):
        return 1.0 if float(np.sum((a - b) ** 2)) <= radius_sq else 0.0

    return kernel


def make_gaussian_kernel(bandwidth: float) -> Callable:
    """Gaussian kernel with standard deviation ``bandwidth``."""

    def kernel(a, b):
        return float(np.exp(-np.sum((a - b) ** 2) / (2.0 * bandwidth ** 2)))

    return kernel


class CountingKernel:
    """Wraps a kernel and counts how many times it is evaluated."""

    def __init__(self, kernel: Callable):
        self.kernel = kernel
        self.calls = 0

    def __call__(self, a, b):
        self.calls += 1
        return self.kernel(a, b)


@pytest.fixture
def uniform_kernel():
    """Uniform kernel with bandwidth 2."""
    return make_uniform_kernel(2.0)


@pytest.fixture
def gaussian_kernel():
    """Gaussian kernel with bandwidth 1."""
    return make_gaussian_kernel(1.0)


# ==============================================================================
# Sample Sets
# ==============================================================================

@pytest.fixture
def two_blobs() -> np.ndarray:
    """Two tight 2-D clusters of 50 points around (0, 0) and (10, 10)."""
    rng = np.random.default_rng(0)
    blob_a = rng.normal(loc=0.0, scale=0.25, size=(50, 2))
    blob_b = rng.normal(loc=10.0, scale=0.25, size=(50, 2))
    return np.vstack([blob_a, blob_b])


@pytest.fixture
def cell_blobs() -> np.ndarray:
    """
    Two 3-D clusters of 30 points that each sit well inside one grid cell.

    Blobs are centred on (1, 1, 1) and (5, 5, 5) with offsets clipped to
    +/-0.3. With the two corner points (0, 0, 0) and (8, 8, 8) appended, a
    2-bit grid has cells of edge 2 and each blob fills a single cell.
    """
    rng = np.random.default_rng(1)
    offsets = np.clip(rng.normal(scale=0.1, size=(60, 3)), -0.3, 0.3)
    blob_a = 1.0 + offsets[:30]
    blob_b = 5.0 + offsets[30:]
    corners = np.array([[0.0, 0.0, 0.0], [8.0, 8.0, 8.0]])
    return np.vstack([blob_a, blob_b, corners])


@pytest.fixture
def scattered_points() -> np.ndarray:
    """Points spread over [0, 8]^3 with the box corners fixed at rows 0 and 1."""
    rng = np.random.default_rng(2)
    inner = rng.uniform(0.0, 8.0, size=(40, 3))
    corners = np.array([[0.0, 0.0, 0.0], [8.0, 8.0, 8.0]])
    return np.vstack([corners, inner])


# ==============================================================================
# Utilities
# ==============================================================================

def assert_location_consistent(index):
    """Assert every point's back-pointer matches its bucket slot."""
    buckets = index.buckets
    for k in range(len(index)):
        loc = index.locate(k)
        assert buckets[loc.cell_id][loc.slot] == k
    assert sum(len(bucket) for bucket in buckets) == len(index)
