"""
Uniform 3-D grid index with point-location tracking.

Space is split into ``2^(3*bits)`` cube cells spanning the bounding box of the
indexed points. Each cell keeps a bucket of point indices, and every point
keeps a back-pointer to its bucket slot so that ``refresh`` can move a point
between cells in O(1):

1. The old slot is filled with the last element of its bucket (swap-remove)
2. The moved element's back-pointer is updated
3. The point is appended to the bucket of its new cell

A query only returns the bucket of the query's own cell. Points just across a
cell boundary are not reported, which is acceptable for kernels that decay
quickly relative to the cell size.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, List, Tuple

import numpy as np

from .index import NeighborIndex, as_points


logger = logging.getLogger(__name__)

DEFAULT_BITS = 4
"""Bits per axis; 4 bits gives 16 bins per axis and 4096 cells."""

MAX_BITS = 7
"""Upper bound on bits per axis. The bucket table holds one list per cell, so
7 bits already allocates 2^21 lists (roughly 120 MB) before any point is added."""

GRID_DIM = 3


@dataclass(frozen=True)
class CellSlot:
    """Position of an indexed point inside the bucket table."""

    cell_id: int
    slot: int


class GridIndex(NeighborIndex):
    """
    Uniform grid over 3-D points.

    Attributes:
        bits: Bits per axis; the grid has ``2^bits`` bins along each axis
        origin: Per-axis minimum of the points the grid was built from
        cell_size: Edge length shared by all cells. Infinite when the points
            have zero extent, which collapses the grid to a single cell
    """

    def __init__(self, points, bits: int = DEFAULT_BITS):
        if isinstance(bits, bool) or not isinstance(bits, (int, np.integer)):
            raise ValueError(f"bits must be an integer, got {bits!r}")
        if not 0 <= bits <= MAX_BITS:
            raise ValueError(f"bits must be in [0, {MAX_BITS}], got {bits}")

        pts = as_points(points, dim=GRID_DIM)
        if not np.all(np.isfinite(pts)):
            raise ValueError("Grid index points must have finite coordinates")

        self._bits = int(bits)
        self._max_bin = (1 << self._bits) - 1
        self._shifts = np.array([axis * self._bits for axis in range(GRID_DIM)], dtype=np.int64)
        self._origin, self._cell_size = self._bounding_grid(pts, self._bits)

        self._buckets: List[List[int]] = [[] for _ in range(1 << (GRID_DIM * self._bits))]
        self._location: List[CellSlot] = []
        for k, cell in enumerate(self._cells(pts)):
            bucket = self._buckets[cell]
            bucket.append(k)
            self._location.append(CellSlot(cell_id=int(cell), slot=len(bucket) - 1))

        if logger.isEnabledFor(logging.DEBUG):
            occupied = sum(1 for bucket in self._buckets if bucket)
            logger.debug(
                f"Built grid index: {len(pts)} points, {occupied}/{self.num_cells} cells "
                f"occupied, cell_size={self._cell_size}"
            )

    @classmethod
    def construct(cls, points, bits: int = DEFAULT_BITS, **options) -> "GridIndex":
        return cls(points, bits=bits)

    def reindex(self, points) -> "GridIndex":
        return type(self).construct(points, bits=self._bits)

    @staticmethod
    def _bounding_grid(pts: np.ndarray, bits: int) -> Tuple[np.ndarray, float]:
        """Return ``(origin, cell_size)`` for the bounding cube of ``pts``."""

        if len(pts) == 0:
            return np.zeros(GRID_DIM), math.inf

        origin = pts.min(axis=0)
        extent = float((pts.max(axis=0) - origin).max())
        if extent <= 0.0:
            logger.debug("Grid points have zero extent; using a single cell")
            return origin, math.inf
        return origin, extent / float(1 << bits)

    # -----------------------------
    # Cell mapping
    # -----------------------------

    def _bins(self, pts: np.ndarray) -> np.ndarray:
        if math.isinf(self._cell_size):
            return np.zeros(pts.shape, dtype=np.int64)
        # Rounding can land a boundary point on bin 2^bits, and queries may
        # lie outside the original bounding box.
        scaled = np.floor((pts - self._origin) / self._cell_size)
        return np.clip(scaled, 0, self._max_bin).astype(np.int64)

    def _cells(self, pts: np.ndarray) -> np.ndarray:
        return (self._bins(pts) << self._shifts).sum(axis=1)

    def cell_id(self, point) -> int:
        """Return the id of the cell containing ``point``."""

        x = np.asarray(point, dtype=float)
        if x.shape != (GRID_DIM,):
            raise ValueError(f"Expected a point of dimension {GRID_DIM}, got shape {x.shape}")
        if np.isnan(x).any():
            raise ValueError(f"Cannot locate a point with NaN coordinates: {x}")
        return int(self._cells(x.reshape(1, GRID_DIM))[0])

    # -----------------------------
    # Index capability
    # -----------------------------

    def neighbors(self, query) -> Iterator[int]:
        return iter(list(self._buckets[self.cell_id(query)]))

    def refresh(self, points) -> None:
        """
        Move every point whose cell changed to its new bucket.

        The grid geometry (origin and cell size) is kept; points that moved
        outside the original box are clamped into the border cells.

        Raises:
            ValueError: If the number of points differs from the indexed count
        """
        pts = as_points(points, dim=GRID_DIM)
        if len(pts) != len(self._location):
            raise ValueError(
                f"Cannot refresh a grid of {len(self._location)} points with {len(pts)} points"
            )
        if np.isnan(pts).any():
            raise ValueError("Cannot refresh a grid with NaN coordinates")

        moved = 0
        for k, cell in enumerate(self._cells(pts)):
            cell = int(cell)
            old = self._location[k]
            if cell == old.cell_id:
                continue

            bucket = self._buckets[old.cell_id]
            assert bucket[old.slot] == k, f"location of point {k} is stale"
            last = bucket.pop()
            if old.slot < len(bucket):
                bucket[old.slot] = last
                self._location[last] = old

            target = self._buckets[cell]
            target.append(k)
            self._location[k] = CellSlot(cell_id=cell, slot=len(target) - 1)
            moved += 1

        logger.debug(f"Refreshed grid index: {moved}/{len(pts)} points changed cell")

    def __len__(self) -> int:
        return len(self._location)

    # -----------------------------
    # Accessors
    # -----------------------------

    @property
    def bits(self) -> int:
        return self._bits

    @property
    def origin(self) -> np.ndarray:
        return self._origin.copy()

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def num_cells(self) -> int:
        return len(self._buckets)

    @property
    def buckets(self) -> Tuple[Tuple[int, ...], ...]:
        """Snapshot of the bucket table, indexed by cell id."""
        return tuple(tuple(bucket) for bucket in self._buckets)

    def locate(self, point_index: int) -> CellSlot:
        """Return the bucket slot holding ``point_index``."""
        return self._location[point_index]

    def __repr__(self) -> str:
        return (
            f"GridIndex(points={len(self)}, bits={self._bits}, "
            f"cell_size={self._cell_size})"
        )
