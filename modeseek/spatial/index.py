"""
Neighbor index abstraction for mean-shift queries.

An index answers "which points might be close to this query?" with a set of
candidate row indices. Callers still weight every candidate through their own
kernel, so an index may return a superset of the truly close points. The
exhaustive index returns every point and is the reference implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional

import numpy as np


def as_points(points, dim: Optional[int] = None) -> np.ndarray:
    """Return ``points`` as a 2-D float array, optionally checking its width."""

    arr = np.asarray(points, dtype=float)
    if arr.ndim == 1 and arr.size == 0:
        arr = arr.reshape(0, dim or 0)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D array of points, got shape {arr.shape}")
    if dim is not None and arr.shape[1] != dim:
        raise ValueError(
            f"Expected points of dimension {dim}, got dimension {arr.shape[1]}"
        )
    return arr


class NeighborIndex(ABC):
    """Candidate-neighbor lookup over an ordered point set."""

    @classmethod
    @abstractmethod
    def construct(cls, points, **options) -> "NeighborIndex":
        """Build a fresh index over ``points``."""

    @abstractmethod
    def neighbors(self, query) -> Iterator[int]:
        """Return a one-shot iterator of candidate indices near ``query``."""

    @abstractmethod
    def refresh(self, points) -> None:
        """Re-index the same population after its points have moved."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def reindex(self, points) -> "NeighborIndex":
        """Build an index of the same kind and settings over ``points``."""
        return type(self).construct(points)


class ExhaustiveIndex(NeighborIndex):
    """Index that reports every point as a candidate neighbor."""

    def __init__(self, size: int):
        self._size = int(size)

    @classmethod
    def construct(cls, points, **options) -> "ExhaustiveIndex":
        return cls(len(points))

    def neighbors(self, query) -> Iterator[int]:
        return iter(range(self._size))

    def refresh(self, points) -> None:
        if len(points) != self._size:
            raise ValueError(
                f"Cannot refresh an index of {self._size} points with {len(points)} points"
            )

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"ExhaustiveIndex(size={self._size})"
