"""
Mean-shift configuration.

Holds the iteration bound, per-axis convergence tolerances and the merge
threshold used to deduplicate converged modes. Configurations are immutable;
the ``with_*`` methods return modified copies so they can be chained:

    config = MeanShiftConfig().with_max_iterations(50).with_atol([1e-6, 1e-6])
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import yaml


Tolerance = Union[float, Tuple[float, ...]]

DEFAULT_MAX_ITERATIONS = 300
DEFAULT_TOLERANCE = 1e-8
DEFAULT_MERGE_THRESHOLD = 0.5

CONFIG_FIELDS = ("max_iterations", "atol", "rtol", "merge_threshold")

PROFILE_SECTIONS = ("meanshift", "index")
"""Top-level sections of a profile file (see ``modeseek.tools``)."""


def _coerce_iterations(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"max_iterations must be an integer, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"max_iterations must be an integer, got {value!r}") from None
    if not math.isfinite(number) or number != int(number):
        raise ValueError(f"max_iterations must be an integer, got {value!r}")
    if number < 1:
        raise ValueError(f"max_iterations must be at least 1, got {value!r}")
    return int(number)


def _coerce_tolerance(value, name: str) -> Tolerance:
    """Return ``value`` as a float or a tuple of floats, all non-negative."""

    if np.ndim(value) == 0:
        tol = float(value)
        values: Sequence[float] = (tol,)
    else:
        tol = tuple(float(v) for v in np.asarray(value, dtype=float).ravel())
        values = tol

    for v in values:
        if math.isnan(v) or v < 0.0:
            raise ValueError(f"{name} must be non-negative, got {value!r}")
    return tol


@dataclass(frozen=True)
class MeanShiftConfig:
    """Configuration for mode seeking and mode merging."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    """Upper bound on mean-shift steps per mode search."""

    atol: Tolerance = DEFAULT_TOLERANCE
    """Absolute tolerance, a scalar applied to every axis or one value per axis."""

    rtol: Tolerance = DEFAULT_TOLERANCE
    """Relative tolerance, a scalar applied to every axis or one value per axis."""

    merge_threshold: float = DEFAULT_MERGE_THRESHOLD
    """Fraction of self-similarity above which two modes are merged."""

    def __post_init__(self):
        iterations = _coerce_iterations(self.max_iterations)
        threshold = float(self.merge_threshold)
        if not math.isfinite(threshold) or threshold < 0.0:
            raise ValueError(
                f"merge_threshold must be a finite non-negative number, got {self.merge_threshold!r}"
            )

        object.__setattr__(self, "max_iterations", iterations)
        object.__setattr__(self, "merge_threshold", threshold)
        object.__setattr__(self, "atol", _coerce_tolerance(self.atol, "atol"))
        object.__setattr__(self, "rtol", _coerce_tolerance(self.rtol, "rtol"))

    def with_max_iterations(self, max_iterations: int) -> "MeanShiftConfig":
        return replace(self, max_iterations=max_iterations)

    def with_atol(self, atol) -> "MeanShiftConfig":
        return replace(self, atol=atol)

    def with_rtol(self, rtol) -> "MeanShiftConfig":
        return replace(self, rtol=rtol)

    def with_merge_threshold(self, merge_threshold: float) -> "MeanShiftConfig":
        return replace(self, merge_threshold=merge_threshold)

    def tolerances(self, dim: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Expand ``atol`` and ``rtol`` to per-axis arrays of length ``dim``.

        Raises:
            ValueError: If a per-axis tolerance does not have ``dim`` entries
        """
        return _expand(self.atol, dim, "atol"), _expand(self.rtol, dim, "rtol")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary suitable for YAML."""
        return {
            "max_iterations": self.max_iterations,
            "atol": list(self.atol) if isinstance(self.atol, tuple) else self.atol,
            "rtol": list(self.rtol) if isinstance(self.rtol, tuple) else self.rtol,
            "merge_threshold": self.merge_threshold,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MeanShiftConfig":
        """
        Build a configuration from a mapping, using defaults for missing keys.

        Raises:
            ValueError: If ``data`` is not a mapping or has keys other than
                the four configuration fields
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping of settings, got {type(data).__name__}")
        unknown = sorted(set(data) - set(CONFIG_FIELDS), key=str)
        if unknown:
            raise ValueError(
                f"Unknown mean-shift settings: {', '.join(map(str, unknown))}. "
                f"Expected some of: {', '.join(CONFIG_FIELDS)}"
            )
        return cls(
            max_iterations=data.get("max_iterations", DEFAULT_MAX_ITERATIONS),
            atol=data.get("atol", DEFAULT_TOLERANCE),
            rtol=data.get("rtol", DEFAULT_TOLERANCE),
            merge_threshold=data.get("merge_threshold", DEFAULT_MERGE_THRESHOLD),
        )


def _expand(tol: Tolerance, dim: int, name: str) -> np.ndarray:
    if isinstance(tol, tuple):
        if len(tol) != dim:
            raise ValueError(
                f"{name} has {len(tol)} entries but the points have dimension {dim}"
            )
        return np.array(tol, dtype=float)
    return np.full(dim, tol, dtype=float)


DEFAULT_CONFIG = MeanShiftConfig()


def load_config_from_yaml(yaml_path: Optional[str] = None) -> MeanShiftConfig:
    """
    Load a mean-shift configuration from a YAML file.

    Args:
        yaml_path: Path to the YAML file. If None, looks in configs/meanshift.yaml

    Returns:
        The loaded configuration, or the defaults if the file doesn't exist

    Raises:
        ValueError: On unknown keys, or when a profile file also carries
            top-level settings

    YAML Format:
        ```yaml
        max_iterations: 300
        atol: 1.0e-8          # or one value per axis: [1.0e-8, 1.0e-8]
        rtol: 1.0e-8
        merge_threshold: 0.5
        ```

    A profile file (settings nested under ``meanshift:``) is also accepted;
    only its ``meanshift`` section is read.
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent.parent.parent / "configs" / "meanshift.yaml"

    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        return DEFAULT_CONFIG

    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f)

    return MeanShiftConfig.from_dict(meanshift_section(data))


def meanshift_section(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Return the mean-shift settings of a flat or profile-shaped document.

    Raises:
        ValueError: If profile sections and flat settings are mixed, or a
            profile has an unknown section
    """
    if not isinstance(data, dict) or not any(key in PROFILE_SECTIONS for key in data):
        return data

    unknown = sorted(set(data) - set(PROFILE_SECTIONS), key=str)
    if unknown:
        raise ValueError(
            f"Unknown profile sections: {', '.join(map(str, unknown))}. "
            f"Expected some of: {', '.join(PROFILE_SECTIONS)}"
        )
    return data.get("meanshift")


def save_config_to_yaml(config: MeanShiftConfig, yaml_path: Optional[str] = None) -> str:
    """
    Save a mean-shift configuration to a YAML file.

    Returns:
        Path where the file was saved
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent.parent.parent / "configs" / "meanshift.yaml"

    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    with open(yaml_path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    return str(yaml_path)
