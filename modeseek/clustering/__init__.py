"""
modeseek.clustering: Mean-shift mode seeking and mode-merging clustering.

This module provides the mean-shift engine, its configuration, and
clustering diagnostics.
"""

from .config import (
    MeanShiftConfig,
    DEFAULT_CONFIG,
    load_config_from_yaml,
    save_config_to_yaml,
)
from .meanshift import (
    MeanShift,
    ModeResult,
    Kernel,
    WEIGHT_FLOOR,
)
from .diagnostics import (
    ClusterInfo,
    ClusteringDiagnostics,
    cluster_with_diagnostics,
    clusters_to_frame,
)

__all__ = [
    # Configuration
    "MeanShiftConfig",
    "DEFAULT_CONFIG",
    "load_config_from_yaml",
    "save_config_to_yaml",

    # Engine
    "MeanShift",
    "ModeResult",
    "Kernel",
    "WEIGHT_FLOOR",

    # Diagnostics
    "ClusterInfo",
    "ClusteringDiagnostics",
    "cluster_with_diagnostics",
    "clusters_to_frame",
]
