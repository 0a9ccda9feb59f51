"""
modeseek: Mean-shift mode seeking and clustering over neighbor indexes.

Subpackages:
- spatial: exhaustive and uniform-grid neighbor indexes
- clustering: mean-shift engine, configuration and diagnostics
- tools: YAML run profiles (engine settings plus index choice)
"""

from .spatial import NeighborIndex, ExhaustiveIndex, GridIndex, CellSlot
from .clustering import (
    MeanShift,
    MeanShiftConfig,
    ModeResult,
    ClusterInfo,
    ClusteringDiagnostics,
    cluster_with_diagnostics,
)
from .tools import Profile, load_profile

__version__ = "0.1.0"

__all__ = [
    "NeighborIndex",
    "ExhaustiveIndex",
    "GridIndex",
    "CellSlot",
    "MeanShift",
    "MeanShiftConfig",
    "ModeResult",
    "ClusterInfo",
    "ClusteringDiagnostics",
    "cluster_with_diagnostics",
    "Profile",
    "load_profile",
]
