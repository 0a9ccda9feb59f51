"""
modeseek.spatial: Candidate-neighbor indexes for mode seeking.

This module provides an exhaustive reference index and a uniform 3-D grid
index with in-place refresh.
"""

from .index import (
    NeighborIndex,
    ExhaustiveIndex,
    as_points,
)
from .grid import (
    GridIndex,
    CellSlot,
    DEFAULT_BITS,
    MAX_BITS,
)

__all__ = [
    "NeighborIndex",
    "ExhaustiveIndex",
    "as_points",
    "GridIndex",
    "CellSlot",
    "DEFAULT_BITS",
    "MAX_BITS",
]
