"""
Mean-shift clustering with diagnostics.

This module provides:
1. Per-cluster summaries (center, density weight, member seeds)
2. Convergence accounting (how many seeds ran out of iterations)
3. Quality metrics (silhouette score over the seeds)
4. Actionable suggestions for tuning the configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import silhouette_score

from ..spatial.index import NeighborIndex, as_points
from .config import MeanShiftConfig
from .meanshift import Kernel, MeanShift


@dataclass
class ClusterInfo:
    """Information about a single cluster."""

    cluster_id: int
    """Index of the cluster in the returned centers."""

    center: np.ndarray
    """Representative mode of the cluster."""

    weight: float
    """Accumulated kernel weight of the representative mode."""

    seed_indices: List[int]
    """Seeds assigned to this cluster."""

    size: int = 0
    """Number of seeds in the cluster."""


@dataclass
class ClusteringDiagnostics:
    """Diagnostics for assessing a clustering run."""

    num_seeds: int
    """Total number of seeds provided."""

    num_clusters: int
    """Number of unique centers found."""

    cluster_sizes: List[int] = field(default_factory=list)
    """Number of seeds in each cluster."""

    num_unconverged: int = 0
    """Seeds whose mode search hit ``max_iterations``."""

    max_iterations_used: int = 0
    """Largest number of mean-shift steps taken by any seed."""

    silhouette_score: Optional[float] = None
    """Silhouette score of the seed labels (range [-1, 1]), if computable."""

    suggestions: List[str] = field(default_factory=list)
    """Actionable suggestions for improving the clustering."""

    config_used: Optional[MeanShiftConfig] = None
    """Configuration the engine ran with."""


def _compute_cluster_quality(
    X: np.ndarray,
    labels: np.ndarray,
    num_clusters: int
) -> Optional[float]:
    """
    Compute silhouette score for cluster quality assessment.

    Returns None if quality cannot be computed (fewer than 2 clusters, or
    every seed in its own cluster).
    """
    if num_clusters < 2 or num_clusters >= len(X):
        return None
    return float(silhouette_score(X, labels))


def _suggest(
    diagnostics: ClusteringDiagnostics,
    config: MeanShiftConfig,
) -> List[str]:
    suggestions = []

    if diagnostics.num_unconverged:
        suggestions.append(
            f"{diagnostics.num_unconverged}/{diagnostics.num_seeds} seeds did not converge "
            f"within {config.max_iterations} iterations. Consider raising max_iterations "
            "or loosening atol/rtol."
        )

    if diagnostics.num_seeds > 1 and diagnostics.num_clusters == diagnostics.num_seeds:
        suggestions.append(
            "Every seed formed its own cluster. Consider lowering merge_threshold "
            "or widening the kernel."
        )

    score = diagnostics.silhouette_score
    if score is not None and score < 0.2:
        suggestions.append(
            f"Low silhouette score ({score:.3f}). Clusters may be poorly separated."
        )

    return suggestions


def cluster_with_diagnostics(
    engine: MeanShift,
    f: Kernel,
    samples,
    seeds,
    index: Optional[NeighborIndex] = None,
) -> Tuple[np.ndarray, np.ndarray, List[ClusterInfo], ClusteringDiagnostics]:
    """
    Run mean-shift clustering and report on the result.

    Produces the same labels and centers as :meth:`MeanShift.clustering`.

    Args:
        engine: Configured mean-shift engine
        f: Kernel ``f(query, sample)``
        samples: Array of shape (n, dim)
        seeds: Start points, shape (m, dim)
        index: Index over ``samples``. Exhaustive if None

    Returns:
        (labels, centers, cluster_infos, diagnostics)
    """
    samples = as_points(samples)
    seeds = as_points(seeds, dim=samples.shape[1])
    results = engine.seek_all(f, samples, seeds, index=index)

    if results:
        modes = np.vstack([r.mode for r in results])
    else:
        modes = np.empty((0, samples.shape[1]))
    weights = [r.weight for r in results]
    labels, centers = engine.merge(f, modes, weights, index=index)

    clusters: List[ClusterInfo] = []
    cluster_sizes: List[int] = []
    for cid, center in enumerate(centers):
        members = np.flatnonzero(labels == cid).tolist()
        # The representative is the heaviest member; it claimed the rest.
        weight = max(weights[k] for k in members)
        clusters.append(ClusterInfo(
            cluster_id=cid,
            center=center,
            weight=weight,
            seed_indices=members,
            size=len(members),
        ))
        cluster_sizes.append(len(members))

    diagnostics = ClusteringDiagnostics(
        num_seeds=len(seeds),
        num_clusters=len(centers),
        cluster_sizes=cluster_sizes,
        num_unconverged=sum(1 for r in results if not r.converged),
        max_iterations_used=max((r.iterations for r in results), default=0),
        silhouette_score=_compute_cluster_quality(seeds, labels, len(centers)),
        config_used=engine.config,
    )
    diagnostics.suggestions = _suggest(diagnostics, engine.config)

    return labels, centers, clusters, diagnostics


def clusters_to_frame(clusters: List[ClusterInfo]) -> pd.DataFrame:
    """
    Tabulate clusters as a DataFrame.

    Columns: ``cluster``, ``size``, ``weight`` and one ``x{axis}`` column per
    coordinate of the center.
    """
    records = []
    for info in clusters:
        record = {
            "cluster": info.cluster_id,
            "size": info.size,
            "weight": info.weight,
        }
        for axis, value in enumerate(info.center):
            record[f"x{axis}"] = float(value)
        records.append(record)

    if not records:
        return pd.DataFrame(columns=["cluster", "size", "weight"])
    return pd.DataFrame(records)
