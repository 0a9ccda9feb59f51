"""
Named run profiles stored as YAML files in ``configs/``.

A profile bundles everything needed to run a clustering job: the mean-shift
settings and the kind of neighbor index to build over the samples.

    ```yaml
    meanshift:
      max_iterations: 50
      merge_threshold: 0.3
    index:
      kind: grid        # or "exhaustive"
      bits: 2
    ```

The profile is chosen by name, by the ``MODESEEK_PROFILE`` environment
variable, or falls back to ``default``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import yaml

from ..clustering.config import DEFAULT_CONFIG, MeanShiftConfig, meanshift_section
from ..clustering.meanshift import Kernel, MeanShift
from ..spatial.grid import DEFAULT_BITS, MAX_BITS, GridIndex
from ..spatial.index import ExhaustiveIndex, NeighborIndex


CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
DEFAULT_PROFILE = "default"
PROFILE_ENV_VAR = "MODESEEK_PROFILE"

INDEX_KINDS = ("exhaustive", "grid")


@dataclass(frozen=True)
class Profile:
    """A named mean-shift configuration plus the index to run it with."""

    name: str
    """Profile name (the YAML file stem)."""

    config: MeanShiftConfig = DEFAULT_CONFIG
    """Settings for the mean-shift engine."""

    index_kind: str = "exhaustive"
    """Either ``"exhaustive"`` or ``"grid"``."""

    bits: int = DEFAULT_BITS
    """Grid bits per axis; only used when ``index_kind`` is ``"grid"``."""

    def __post_init__(self):
        if self.index_kind not in INDEX_KINDS:
            raise ValueError(
                f"Profile '{self.name}': index kind must be one of "
                f"{', '.join(INDEX_KINDS)}, got {self.index_kind!r}"
            )
        if isinstance(self.bits, bool) or not isinstance(self.bits, int) or not 0 <= self.bits <= MAX_BITS:
            raise ValueError(
                f"Profile '{self.name}': grid bits must be an integer in [0, {MAX_BITS}], got {self.bits!r}"
            )

    @classmethod
    def from_dict(cls, name: str, data: Optional[Dict[str, Any]]) -> "Profile":
        """
        Build a profile from a parsed YAML document.

        Raises:
            ValueError: On unknown sections or keys
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Profile '{name}' must be a mapping of sections")
        config = MeanShiftConfig.from_dict(meanshift_section(data))

        index = data.get("index") or {}
        unknown = sorted(set(index) - {"kind", "bits"}, key=str)
        if unknown:
            raise ValueError(f"Profile '{name}': unknown index settings: {', '.join(map(str, unknown))}")

        return cls(
            name=name,
            config=config,
            index_kind=index.get("kind", "exhaustive"),
            bits=index.get("bits", DEFAULT_BITS),
        )

    def engine(self) -> MeanShift:
        return MeanShift(self.config)

    def build_index(self, samples) -> NeighborIndex:
        """Build this profile's index over ``samples``."""
        if self.index_kind == "grid":
            return GridIndex.construct(samples, bits=self.bits)
        return ExhaustiveIndex.construct(samples)

    def clustering(self, f: Kernel, samples, seeds) -> Tuple[np.ndarray, np.ndarray]:
        """Cluster ``seeds`` over ``samples`` with this profile's engine and index."""
        return self.engine().clustering(f, samples, seeds, index=self.build_index(samples))


def available_profiles() -> List[str]:
    return sorted(path.stem for path in CONFIG_DIR.glob("*.yaml"))


def profile_name_from_env() -> str:
    """Profile selected by ``MODESEEK_PROFILE``, or the default one."""
    return os.getenv(PROFILE_ENV_VAR) or DEFAULT_PROFILE


def load_profile(profile_name: Optional[str] = None) -> Profile:
    """
    Load a profile from ``configs/<profile_name>.yaml``.

    Args:
        profile_name: Profile to load. If None, uses ``MODESEEK_PROFILE`` or
            the default profile

    Raises:
        FileNotFoundError: If the profile doesn't exist
        ValueError: If the profile has unknown sections or invalid settings
    """
    name = profile_name or profile_name_from_env()
    path = CONFIG_DIR / f"{name}.yaml"

    if not path.exists():
        raise FileNotFoundError(
            f"Profile '{name}' not found. Available profiles: {', '.join(available_profiles())}"
        )

    with open(path, "r") as f:
        return Profile.from_dict(name, yaml.safe_load(f))
