"""Tests for dioecy_evo.config — configuration loading and validation."""

import warnings
from pathlib import Path

import pytest
import yaml

from dioecy_evo.config import (
    ModelSection,
    OutputSection,
    SimulationConfig,
    SweepSection,
    config_from_overrides,
    config_to_dict,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)
from dioecy_evo.types import Mapping, ParameterRecord, StartState


CONFIG_DIR = Path(__file__).parent.parent / "configs"


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_simple_override(self):
        assert deep_merge({'a': 1, 'b': 2}, {'b': 3}) == {'a': 1, 'b': 3}

    def test_nested_merge(self):
        base = {'model': {'h': 0.5, 'S': 0.0}, 'sweep': {'workers': 1}}
        result = deep_merge(base, {'model': {'S': 0.2, 'd': 0.1}})
        assert result == {'model': {'h': 0.5, 'S': 0.2, 'd': 0.1}, 'sweep': {'workers': 1}}

    def test_override_dict_with_scalar(self):
        assert deep_merge({'a': {'nested': 1}}, {'a': 'replaced'}) == {'a': 'replaced'}

    def test_modifies_base_in_place(self):
        base = {'a': 1}
        deep_merge(base, {'b': 2})
        assert base == {'a': 1, 'b': 2}


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        assert isinstance(default_config(), SimulationConfig)

    def test_default_values(self):
        config = default_config()
        assert config.model.variant == 1
        assert config.model.h == 0.5
        assert config.model.V == 1.0
        assert config.sweep.subdivisions == 201
        assert config.sweep.iterations == 10000
        assert config.sweep.threshold == 0.01
        assert config.start_state is StartState.DIOECY
        assert config.mapping is Mapping.LINEAR
        assert config.output.bitmap and not config.output.gnuplot

    def test_parameters(self):
        config = default_config()
        config.model.Q = 0.3
        config.model.PSatF = 1.5
        params = config.parameters()
        assert isinstance(params, ParameterRecord)
        assert params.Q == 0.3
        assert params.PSatF == 1.5
        assert params.ppY == 1.0

    def test_round_trip_dict(self):
        d = config_to_dict(default_config())
        assert set(d) == {'model', 'sweep', 'output'}
        assert d['sweep']['start'] == 'dioecy'


# ── YAML loading tests ───────────────────────────────────────────────

class TestLoadConfig:
    def _write(self, path, content):
        with open(path, 'w') as f:
            yaml.dump(content, f)
        return path

    def test_load_from_yaml(self, tmp_path):
        """Load a minimal YAML config."""
        path = self._write(tmp_path / "test.yaml", {
            'model': {'variant': 2, 'S': 0.4},
            'sweep': {'subdivisions': 51},
        })
        config = load_config(path)
        assert config.model.variant == 2
        assert config.model.S == 0.4
        assert config.sweep.subdivisions == 51
        # Unspecified fields and sections get defaults
        assert config.model.h == 0.5
        assert config.output == OutputSection()

    def test_override_file(self, tmp_path):
        base = self._write(tmp_path / "base.yaml", {'model': {'S': 0.1, 'd': 0.2}})
        over = self._write(tmp_path / "over.yaml", {'model': {'d': 0.9}})
        config = load_config(base, override_path=over)
        assert config.model.S == 0.1
        assert config.model.d == 0.9

    def test_missing_override_file_skipped(self, tmp_path):
        base = self._write(tmp_path / "base.yaml", {'model': {'S': 0.1}})
        config = load_config(base, override_path=tmp_path / "absent.yaml")
        assert config.model.S == 0.1

    def test_dict_overrides_applied_last(self, tmp_path):
        base = self._write(tmp_path / "base.yaml", {'sweep': {'workers': 2}})
        config = load_config(base, overrides={'sweep': {'workers': 8}})
        assert config.sweep.workers == 8

    def test_unknown_keys_ignored(self, tmp_path):
        path = self._write(tmp_path / "test.yaml", {
            'model': {'h': 0.7, 'colour': 'blue'},
            'plotting': {'dpi': 300},
        })
        config = load_config(path)
        assert config.model.h == 0.7
        assert not hasattr(config.model, 'colour')

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SimulationConfig()

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_invalid_values_rejected(self, tmp_path):
        path = self._write(tmp_path / "bad.yaml", {'sweep': {'mapping': 'polar'}})
        with pytest.raises(ValueError, match="sweep.mapping"):
            load_config(path)

    def test_load_real_default_yaml(self):
        config = load_config(CONFIG_DIR / "default.yaml")
        assert config == SimulationConfig(
            model=ModelSection(), sweep=SweepSection(), output=OutputSection(),
        )

    def test_load_real_override(self):
        config = load_config(
            CONFIG_DIR / "default.yaml",
            override_path=CONFIG_DIR / "ancient_selfing.yaml",
        )
        assert config.model.V == 0.0
        assert config.model.S == 0.3
        assert config.output.gnuplot


class TestConfigFromOverrides:
    def test_no_overrides(self):
        assert config_from_overrides() == SimulationConfig()

    def test_overrides(self):
        config = config_from_overrides({'model': {'Q': 0.25}, 'sweep': {'start': 'pgd'}})
        assert config.model.Q == 0.25
        assert config.start_state is StartState.PGD

    def test_validates(self):
        with pytest.raises(ValueError, match="model.variant"):
            config_from_overrides({'model': {'variant': 3}})


# ── Validation tests ──────────────────────────────────────────────────

class TestValidation:
    def test_invalid_variant(self):
        config = default_config()
        config.model.variant = 0
        with pytest.raises(ValueError, match="model.variant"):
            validate_config(config)

    def test_invalid_start(self):
        config = default_config()
        config.sweep.start = "hermaphrodite"
        with pytest.raises(ValueError, match="sweep.start"):
            validate_config(config)

    def test_too_few_subdivisions(self):
        config = default_config()
        config.sweep.subdivisions = 1
        with pytest.raises(ValueError, match="subdivisions"):
            validate_config(config)

    def test_subdivisions_unused_in_single_run(self):
        config = default_config()
        config.sweep.subdivisions = 1
        config.sweep.single_run = True
        validate_config(config)  # should not raise

    def test_negative_iterations(self):
        config = default_config()
        config.sweep.iterations = -1
        with pytest.raises(ValueError, match="iterations"):
            validate_config(config)

    def test_zero_iterations_allowed(self):
        config = default_config()
        config.sweep.iterations = 0
        validate_config(config)  # should not raise

    def test_workers(self):
        config = default_config()
        config.sweep.workers = 0
        with pytest.raises(ValueError, match="workers"):
            validate_config(config)

    def test_ppy_ignored_in_model2_warns(self):
        config = default_config()
        config.model.variant = 2
        config.model.ppY = 0.5
        with pytest.warns(UserWarning, match="ppY"):
            validate_config(config)

    def test_ppy_in_model1_silent(self):
        config = default_config()
        config.model.ppY = 0.5
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            validate_config(config)
