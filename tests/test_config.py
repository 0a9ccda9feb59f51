"""
Unit Tests for Configuration (modeseek.clustering.config, modeseek.tools)

Tests MeanShiftConfig defaults and validation, the builder methods, YAML
persistence, and profile loading.
"""

import pytest
import numpy as np

from modeseek.clustering.config import (
    MeanShiftConfig,
    DEFAULT_CONFIG,
    load_config_from_yaml,
    save_config_to_yaml,
)
from modeseek.spatial import ExhaustiveIndex, GridIndex
from modeseek.clustering import MeanShift
from modeseek.tools import config_loader
from modeseek.tools import (
    Profile,
    available_profiles,
    load_profile,
)
from tests.conftest import make_uniform_kernel


# ==============================================================================
# MeanShiftConfig Tests
# ==============================================================================

class TestMeanShiftConfig:
    """Test mean-shift configuration."""
    
    def test_default_config(self):
        """Test default configuration."""
        config = MeanShiftConfig()
        
        assert config.max_iterations == 300
        assert config.atol == 1e-8
        assert config.rtol == 1e-8
        assert config.merge_threshold == 0.5
    
    def test_builder_returns_copies(self):
        """Test that with_* methods leave the original untouched."""
        base = MeanShiftConfig()
        tuned = (
            base.with_max_iterations(20)
            .with_atol([1e-3, 1e-4])
            .with_rtol(0.0)
            .with_merge_threshold(0.8)
        )
        
        assert base == DEFAULT_CONFIG
        assert tuned.max_iterations == 20
        assert tuned.atol == (1e-3, 1e-4)
        assert tuned.rtol == 0.0
        assert tuned.merge_threshold == 0.8
    
    def test_frozen(self):
        """Test that configurations are immutable."""
        config = MeanShiftConfig()
        
        with pytest.raises(AttributeError):
            config.max_iterations = 5
    
    def test_scalar_tolerance_broadcasts(self):
        """Test expansion of scalar tolerances."""
        atol, rtol = MeanShiftConfig(atol=0.1, rtol=0.2).tolerances(3)
        
        np.testing.assert_array_equal(atol, [0.1, 0.1, 0.1])
        np.testing.assert_array_equal(rtol, [0.2, 0.2, 0.2])
    
    def test_per_axis_tolerance(self):
        """Test per-axis tolerances."""
        atol, _ = MeanShiftConfig(atol=[0.1, 0.2]).tolerances(2)
        
        np.testing.assert_array_equal(atol, [0.1, 0.2])
    
    def test_per_axis_tolerance_dimension_mismatch(self):
        """Test that per-axis tolerances must match the dimension."""
        with pytest.raises(ValueError):
            MeanShiftConfig(rtol=[0.1, 0.2]).tolerances(3)
    
    @pytest.mark.parametrize("kwargs", [
        {"max_iterations": 0},
        {"max_iterations": 2.5},
        {"max_iterations": float("inf")},
        {"max_iterations": float("nan")},
        {"max_iterations": "many"},
        {"atol": -1.0},
        {"rtol": [0.1, float("nan")]},
        {"merge_threshold": -0.1},
        {"merge_threshold": float("inf")},
    ])
    def test_invalid_values(self, kwargs):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            MeanShiftConfig(**kwargs)
    
    def test_dict_conversion(self):
        """Test to_dict/from_dict."""
        config = MeanShiftConfig(max_iterations=10, atol=[0.1, 0.2], merge_threshold=0.25)
        
        data = config.to_dict()
        
        assert data["atol"] == [0.1, 0.2]
        assert MeanShiftConfig.from_dict(data) == config
        assert MeanShiftConfig.from_dict(None) == DEFAULT_CONFIG

    def test_from_dict_rejects_unknown_keys(self):
        """Test that misspelled settings are reported instead of ignored."""
        with pytest.raises(ValueError, match="max_iteration"):
            MeanShiftConfig.from_dict({"max_iteration": 5})

    def test_from_dict_rejects_nested_sections(self):
        """Test that a profile document is not taken for flat settings."""
        with pytest.raises(ValueError, match="meanshift"):
            MeanShiftConfig.from_dict({"meanshift": {"max_iterations": 5}})


# ==============================================================================
# YAML Persistence Tests
# ==============================================================================

class TestYamlPersistence:
    """Test loading and saving configurations."""
    
    def test_save_and_load(self, tmp_path):
        """Test that a saved configuration loads back unchanged."""
        config = MeanShiftConfig(max_iterations=42, rtol=[1e-6, 1e-5, 1e-4])
        path = tmp_path / "nested" / "meanshift.yaml"
        
        saved = save_config_to_yaml(config, str(path))
        
        assert saved == str(path)
        assert load_config_from_yaml(saved) == config
    
    def test_missing_file_uses_defaults(self, tmp_path):
        """Test fallback to defaults."""
        assert load_config_from_yaml(str(tmp_path / "missing.yaml")) == DEFAULT_CONFIG
    
    def test_partial_file(self, tmp_path):
        """Test that missing keys fall back to defaults."""
        path = tmp_path / "partial.yaml"
        path.write_text("merge_threshold: 0.75\n")
        
        config = load_config_from_yaml(str(path))
        
        assert config.merge_threshold == 0.75
        assert config.max_iterations == 300

    def test_profile_file_reads_meanshift_section(self):
        """Test that a bundled profile file yields its own settings."""
        config = load_config_from_yaml(str(config_loader.CONFIG_DIR / "coarse.yaml"))

        assert config.max_iterations == 50
        assert config.atol == pytest.approx(1e-4)
        assert config.merge_threshold == pytest.approx(0.3)

    def test_mixed_file_rejected(self, tmp_path):
        """Test that flat settings next to profile sections are an error."""
        path = tmp_path / "mixed.yaml"
        path.write_text("max_iterations: 10\nmeanshift:\n  max_iterations: 20\n")

        with pytest.raises(ValueError, match="max_iterations"):
            load_config_from_yaml(str(path))

    def test_misspelled_key_rejected(self, tmp_path):
        """Test that a typo in a flat file is reported."""
        path = tmp_path / "typo.yaml"
        path.write_text("merge_treshold: 0.75\n")

        with pytest.raises(ValueError, match="merge_treshold"):
            load_config_from_yaml(str(path))


# ==============================================================================
# Profile Tests
# ==============================================================================

class TestProfiles:
    """Test YAML run profiles."""

    def test_bundled_profiles(self):
        """Test that both bundled profiles are listed."""
        assert available_profiles() == ["coarse", "default"]

    def test_default_profile(self):
        """Test the bundled default profile."""
        profile = load_profile("default")

        assert profile.name == "default"
        assert profile.config == DEFAULT_CONFIG
        assert profile.index_kind == "exhaustive"

    def test_coarse_profile(self):
        """Test the bundled coarse grid profile."""
        profile = load_profile("coarse")

        assert profile.config.max_iterations == 50
        assert profile.config.rtol == pytest.approx(1e-6)
        assert profile.index_kind == "grid"
        assert profile.bits == 2

    def test_unknown_profile(self):
        """Test that unknown profiles list the available ones."""
        with pytest.raises(FileNotFoundError, match="coarse"):
            load_profile("no-such-profile")

    def test_env_profile(self, monkeypatch):
        """Test profile selection from the environment."""
        monkeypatch.setenv("MODESEEK_PROFILE", "coarse")

        assert load_profile().name == "coarse"

    def test_default_without_env(self, monkeypatch):
        """Test the default profile when no environment override is set."""
        monkeypatch.delenv("MODESEEK_PROFILE", raising=False)

        assert load_profile().name == "default"

    def test_build_index(self, cell_blobs, two_blobs):
        """Test that the profile picks the index kind and grid bits."""
        grid = load_profile("coarse").build_index(cell_blobs)
        exhaustive = load_profile("default").build_index(two_blobs)

        assert isinstance(grid, GridIndex)
        assert grid.bits == 2
        assert len(grid) == len(cell_blobs)
        assert isinstance(exhaustive, ExhaustiveIndex)
        assert len(exhaustive) == len(two_blobs)

    def test_engine_uses_profile_config(self):
        """Test that the engine carries the profile's settings."""
        profile = load_profile("coarse")

        assert profile.engine().config == profile.config

    def test_clustering_matches_manual_setup(self, cell_blobs):
        """Test that profile clustering equals an explicitly configured run."""
        samples = cell_blobs[:60]
        kernel = make_uniform_kernel(1.5)
        profile = load_profile("coarse")

        labels, centers = profile.clustering(kernel, samples, samples)
        expected = MeanShift(profile.config).clustering(
            kernel, samples, samples, index=GridIndex.construct(samples, bits=2)
        )

        np.testing.assert_array_equal(labels, expected[0])
        np.testing.assert_array_equal(centers, expected[1])
        np.testing.assert_array_equal(labels, [0] * 30 + [1] * 30)

    @pytest.mark.parametrize("document, match", [
        ({"meanshift": {}, "grid": {"bits": 2}}, "grid"),
        ({"index": {"kind": "octree"}}, "octree"),
        ({"index": {"kind": "grid", "bits": 12}}, "bits"),
        ({"index": {"kind": "grid", "depth": 2}}, "depth"),
        ({"meanshift": {"max_iteration": 5}}, "max_iteration"),
    ])
    def test_invalid_profiles(self, document, match):
        """Test profile validation."""
        with pytest.raises(ValueError, match=match):
            Profile.from_dict("broken", document)

    def test_profile_dir_override(self, tmp_path, monkeypatch):
        """Test loading profiles from another directory."""
        (tmp_path / "tiny.yaml").write_text("index:\n  kind: grid\n  bits: 1\n")
        monkeypatch.setattr(config_loader, "CONFIG_DIR", tmp_path)

        profile = load_profile("tiny")

        assert available_profiles() == ["tiny"]
        assert profile.config == DEFAULT_CONFIG
        assert profile.bits == 1
