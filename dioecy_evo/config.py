"""Configuration system for dioecy-evo.

Layered YAML configuration with deep-merge support:
  base.yaml → override file → command-line overrides

Sections:
  model  — model variant and the ParameterRecord fields
  sweep  — grid size, generations, threshold, start state, coordinate mapping
  output — output directory and which artefacts to write

Only categorical choices and values the sweep divides by are validated;
biological parameters are taken as given.
"""

from __future__ import annotations

import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dioecy_evo.types import Mapping, ParameterRecord, StartState


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ModelSection:
    """Model variant and biological parameters."""
    variant: int = 1       # 1 = one locus (A/a/a*), 2 = two loci (A/a, M/m)
    h: float = 0.5         # P(inconstant reproduces as cosex)
    S: float = 0.0         # Selfing rate of cosexes
    d: float = 0.0         # Inbreeding depression
    V: float = 1.0         # YY viability (0 = ancient dioecy, 1 = recent dioecy)
    Q: float = 1.0         # Cosex pollen output (single run only)
    F: float = 1.0         # Cosex ovule output (single run only)
    PSatF: float = 0.0     # Pollen saturation point for female receivers
    ppY: float = 1.0       # Y pollen viability (model 1 only)


@dataclass
class SweepSection:
    """Grid sweep control."""
    subdivisions: int = 201        # Grid width and height (cells)
    iterations: int = 10000        # Generations per cell
    threshold: float = 0.01        # Frequency counted as "present"
    start: str = "dioecy"          # 'dioecy' (invade inconstants) or 'pgd' (invade males)
    mapping: str = "linear"        # 'linear' (Q, F axes) or 'oldformat' (K, k axes)
    oldformat_limit: float = 4.0   # Axis maximum of K and k in 'oldformat'
    single_run: bool = False       # Run one (Q, F) cell instead of the grid
    workers: int = 1               # Threads for the grid (1 = serial)


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "."
    bitmap: bool = True     # 24-bit BMP of the outcome map
    gnuplot: bool = False   # Tab-separated female frequencies
    figure: bool = False    # Annotated PNG of the outcome map


@dataclass
class SimulationConfig:
    """Complete run configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    model: ModelSection = field(default_factory=ModelSection)
    sweep: SweepSection = field(default_factory=SweepSection)
    output: OutputSection = field(default_factory=OutputSection)

    def parameters(self) -> ParameterRecord:
        """ParameterRecord of the model section."""
        m = self.model
        return ParameterRecord(
            h=m.h, S=m.S, d=m.d, V=m.V, Q=m.Q, F=m.F, PSatF=m.PSatF, ppY=m.ppY,
        )

    @property
    def start_state(self) -> StartState:
        return StartState(self.sweep.start)

    @property
    def mapping(self) -> Mapping:
        return Mapping(self.sweep.mapping)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    section_map = {
        'model': ModelSection,
        'sweep': SweepSection,
        'output': OutputSection,
    }
    sections = {}
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def config_to_dict(config: SimulationConfig) -> Dict:
    """Plain-dict form of a config (inverse of the YAML loader)."""
    return dataclasses.asdict(config)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Model variant is 1 or 2
      - Start state and coordinate mapping are known
      - Grid has at least 2 subdivisions (the mapping divides by n - 1)
      - Iteration count and worker count are usable
    """
    if config.model.variant not in (1, 2):
        raise ValueError(
            f"model.variant must be 1 or 2, got {config.model.variant!r}"
        )

    valid_starts = {s.value for s in StartState}
    if config.sweep.start not in valid_starts:
        raise ValueError(
            f"sweep.start must be one of {sorted(valid_starts)}, "
            f"got '{config.sweep.start}'"
        )

    valid_mappings = {m.value for m in Mapping}
    if config.sweep.mapping not in valid_mappings:
        raise ValueError(
            f"sweep.mapping must be one of {sorted(valid_mappings)}, "
            f"got '{config.sweep.mapping}'"
        )

    if not config.sweep.single_run and config.sweep.subdivisions < 2:
        raise ValueError(
            f"sweep.subdivisions must be >= 2, got {config.sweep.subdivisions}"
        )
    if config.sweep.iterations < 0:
        raise ValueError(
            f"sweep.iterations must be >= 0, got {config.sweep.iterations}"
        )
    if config.sweep.workers < 1:
        raise ValueError(
            f"sweep.workers must be >= 1, got {config.sweep.workers}"
        )

    if config.model.variant == 2 and config.model.ppY != 1.0:
        warnings.warn(
            f"model.ppY = {config.model.ppY} has no effect in model 2.",
            UserWarning,
            stacklevel=2,
        )


def load_config(
    base_path: Union[str, Path],
    override_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge layered YAML configuration.

    Merge order: base → override file → overrides dict.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        override_path: Optional override YAML (skipped if missing).
        overrides: Optional dict, e.g. from the command line.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if override_path is not None:
        override_path = Path(override_path)
        if override_path.exists():
            with open(override_path) as f:
                deep_merge(config_dict, yaml.safe_load(f) or {})

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def config_from_overrides(overrides: Optional[Dict] = None) -> SimulationConfig:
    """Defaults with an overrides dict merged on top, validated."""
    config_dict = config_to_dict(SimulationConfig())
    if overrides:
        deep_merge(config_dict, overrides)
    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
