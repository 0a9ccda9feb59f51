"""
Mean-shift mode seeking and mode-merging clustering.

The engine works with any caller-supplied kernel ``f(query, sample) -> weight``
and any :class:`~modeseek.spatial.NeighborIndex` built over the samples:

1. ``mode`` climbs from a start point to a local density maximum by repeated
   kernel-weighted averaging of the candidate neighbors
2. ``clustering`` runs ``mode`` from every seed, then walks the converged
   modes from densest to lightest, letting each surviving mode claim the
   lighter modes that are similar enough to it
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..spatial.index import ExhaustiveIndex, NeighborIndex, as_points
from .config import DEFAULT_CONFIG, MeanShiftConfig


logger = logging.getLogger(__name__)

Kernel = Callable[[np.ndarray, np.ndarray], float]

WEIGHT_FLOOR = np.finfo(float).tiny
"""Initial accumulated weight; keeps the running mean finite with no neighbors."""


@dataclass
class ModeResult:
    """Outcome of a single mode search."""

    mode: np.ndarray
    """Final mode estimate."""

    weight: float
    """Accumulated kernel weight at the final estimate (density proxy)."""

    iterations: int
    """Number of mean-shift steps taken."""

    converged: bool
    """Whether the tolerance test passed before ``max_iterations`` ran out."""


class MeanShift:
    """
    Mean-shift engine.

    Args:
        config: Iteration bound, tolerances and merge threshold. Uses the
            defaults if None
    """

    def __init__(self, config: Optional[MeanShiftConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def __repr__(self) -> str:
        return f"MeanShift({self.config!r})"

    # -----------------------------
    # Mode seeking
    # -----------------------------

    def within_tolerance(self, previous, current) -> bool:
        """Return True if ``current`` is within tolerance of ``previous`` on every axis."""

        previous = np.asarray(previous, dtype=float)
        current = np.asarray(current, dtype=float)
        atol, rtol = self.config.tolerances(len(previous))
        bound = atol + rtol * np.maximum(np.abs(previous), np.abs(current))
        return bool(np.all(np.abs(previous - current) < bound))

    def seek(
        self,
        f: Kernel,
        samples,
        init,
        index: Optional[NeighborIndex] = None,
    ) -> ModeResult:
        """
        Climb from ``init`` to the nearest density mode.

        Args:
            f: Kernel ``f(query, sample)`` returning a non-negative weight
            samples: Array of shape (n, dim)
            init: Start point of length dim
            index: Index over ``samples``. An exhaustive index is built if None

        Returns:
            ModeResult with the final estimate and its accumulated weight

        Raises:
            ValueError: If ``init`` or ``index`` does not match ``samples``
        """
        samples = as_points(samples)
        if index is None:
            index = ExhaustiveIndex.construct(samples)
        self._check_index(index, samples)

        dim = samples.shape[1]
        current = np.asarray(init, dtype=float)
        if current.shape != (dim,):
            raise ValueError(
                f"Start point has shape {current.shape}, expected ({dim},)"
            )
        atol, rtol = self.config.tolerances(dim)

        mean = current.copy()
        weight = 0.0
        for iteration in range(1, self.config.max_iterations + 1):
            mean = np.zeros(dim)
            weight = WEIGHT_FLOOR
            for k in index.neighbors(current):
                row = samples[k]
                w = f(current, row)
                weight += w
                mean += (row - mean) * (w / weight)

            # A NaN estimate cannot be located in an index; merge reports it.
            if math.isnan(weight) or np.isnan(mean).any():
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"Mode search from {np.asarray(init).tolist()} produced NaN at step {iteration}")
                return ModeResult(mode=mean, weight=float(weight), iterations=iteration, converged=False)

            bound = atol + rtol * np.maximum(np.abs(current), np.abs(mean))
            if np.all(np.abs(current - mean) < bound):
                return ModeResult(mode=mean, weight=float(weight), iterations=iteration, converged=True)
            current = mean

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Mode search from {np.asarray(init).tolist()} stopped after "
                f"{self.config.max_iterations} iterations without converging"
            )
        return ModeResult(
            mode=mean,
            weight=float(weight),
            iterations=self.config.max_iterations,
            converged=False,
        )

    def mode(
        self,
        f: Kernel,
        samples,
        init,
        index: Optional[NeighborIndex] = None,
    ) -> Tuple[np.ndarray, float]:
        """
        Return ``(mode, weight)`` reached from ``init``.

        Non-convergence is silent: the last estimate is returned. Use
        :meth:`seek` or :meth:`within_tolerance` to tell the two apart.
        """
        result = self.seek(f, samples, init, index=index)
        return result.mode, result.weight

    # -----------------------------
    # Clustering
    # -----------------------------

    def seek_all(
        self,
        f: Kernel,
        samples,
        seeds,
        index: Optional[NeighborIndex] = None,
    ) -> List[ModeResult]:
        """Run :meth:`seek` from every seed. Seeds are independent of each other."""

        samples = as_points(samples)
        seeds = as_points(seeds, dim=samples.shape[1])
        if index is None:
            index = ExhaustiveIndex.construct(samples)
        return [self.seek(f, samples, seed, index=index) for seed in seeds]

    def merge(
        self,
        f: Kernel,
        centers,
        weights: Sequence[float],
        index: Optional[NeighborIndex] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Deduplicate converged modes, densest first.

        Args:
            f: Kernel used to compare modes
            centers: Converged modes, one row per seed
            weights: Accumulated weight of each mode
            index: Any index; a fresh index of the same kind is built over
                ``centers``. Exhaustive if None

        Returns:
            (labels, unique_centers) where ``labels[k]`` is the row of
            ``unique_centers`` that absorbed ``centers[k]``

        Raises:
            ValueError: If a weight or mode is NaN, or the lengths disagree
        """
        centers = as_points(centers)
        if len(weights) != len(centers):
            raise ValueError(
                f"Got {len(weights)} weights for {len(centers)} centers"
            )
        for k, w in enumerate(weights):
            if math.isnan(w):
                raise ValueError(f"Seed {k} converged to a NaN weight; check the kernel")
        bad = np.flatnonzero(np.isnan(centers).any(axis=1))
        if len(bad):
            raise ValueError(f"Seed {bad[0]} converged to a NaN mode; check the kernel")

        # Stable sort: equal weights keep seed order.
        order = sorted(range(len(centers)), key=lambda k: weights[k], reverse=True)
        if index is None:
            center_index = ExhaustiveIndex.construct(centers)
        else:
            center_index = index.reindex(centers)

        threshold = self.config.merge_threshold
        labels = np.zeros(len(centers), dtype=np.intp)
        candidate = [True] * len(centers)
        unique_centers: List[np.ndarray] = []

        for i in order:
            if not candidate[i]:
                continue
            label = len(unique_centers)
            center = centers[i]
            labels[i] = label
            candidate[i] = False

            cutoff = threshold * f(center, center)
            for k in center_index.neighbors(center):
                if candidate[k] and f(center, centers[k]) > cutoff:
                    labels[k] = label
                    candidate[k] = False
            unique_centers.append(center.copy())

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Merged {len(centers)} modes into {len(unique_centers)} clusters")

        if unique_centers:
            return labels, np.vstack(unique_centers)
        return labels, np.empty((0, centers.shape[1]))

    def clustering(
        self,
        f: Kernel,
        samples,
        seeds,
        index: Optional[NeighborIndex] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Cluster ``seeds`` by the density mode each one climbs to.

        Args:
            f: Kernel ``f(query, sample)`` returning a non-negative weight
            samples: Array of shape (n, dim)
            seeds: Start points, shape (m, dim)
            index: Index over ``samples``. An exhaustive index is built if None

        Returns:
            (labels, centers): ``labels[j]`` is the cluster of ``seeds[j]`` and
            ``centers`` holds one representative mode per cluster
        """
        samples = as_points(samples)
        if index is None:
            index = ExhaustiveIndex.construct(samples)
        results = self.seek_all(f, samples, seeds, index=index)

        dim = samples.shape[1]
        if results:
            centers = np.vstack([r.mode for r in results])
        else:
            centers = np.empty((0, dim))
        return self.merge(f, centers, [r.weight for r in results], index=index)

    @staticmethod
    def _check_index(index: NeighborIndex, samples: np.ndarray) -> None:
        if len(index) != len(samples):
            raise ValueError(
                f"Index covers {len(index)} points but {len(samples)} samples were given"
            )
