"""Configuration system for stabsel.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Every numeric constraint is checked by ``validate_config`` before a run
starts, so a bad parameter is fatal at load time rather than mid-run.

Design decisions:
  - Fitness baseline and selection factor must be non-negative, so a
    fitness weight can never go below zero.
  - Logging regimes and snapshot ticks are stored as offsets from the
    selection-onset tick, so scaled-down runs keep the same shape.
"""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Top-level simulation timing, size and rates."""
    seed: int = 42
    population_size: int = 10_000      # N diploid individuals
    genome_size: int = 100_000         # Length of the single genomic element (bp)
    mutation_rate: float = 1.0e-8      # Per base per generation
    recombination_rate: float = 1.0e-8 # Per base per generation
    selection_tick: int = 100_000      # Burn-in ends / selection onset
    end_tick: int = 120_000            # Last simulated tick (inclusive)
    run_id: Optional[str] = None       # None = derived from parameters + seed


@dataclass
class EffectsSection:
    """Mutation effect-size distribution.

    distribution: "gamma" : magnitude ~ Gamma(mean=|mean|, shape), sign of mean
                  "normal": Normal(mean, sd)
    symmetric: randomize the sign of every draw once, at creation.

    Dominance is not configurable: every mutation is additive
    (types.DOMINANCE).
    """
    distribution: str = "gamma"
    mean: float = -0.10
    shape: float = 0.3
    sd: float = 0.1
    symmetric: bool = True


@dataclass
class SelectionSection:
    """Stabilizing selection parameters.

    w = baseline + factor × φ(optimum − phenotype; 0, SD)
    """
    factor: float = 1.0            # Selection-strength multiplier
    baseline: float = 1.0          # Fitness floor far from the optimum
    causal_fraction: float = 1.0   # Leading fraction of the element that is trait-affecting


@dataclass
class OutputSection:
    """Output control.

    log_regimes: [offset, interval] pairs; each regime starts at
    selection_tick + offset and lasts until the next one. Ticks before the
    first regime use log_interval_initial.
    """
    directory: str = "output/"
    log_interval_initial: int = 1000
    log_regimes: List[List[int]] = field(
        default_factory=lambda: [[-10_000, 100], [-1_000, 10], [0, 1], [1_000, 100]]
    )
    snapshot_offsets: List[int] = field(
        default_factory=lambda: [
            -5000, -1000, -500, -100, -50, -10, -1, 0,
            1, 10, 50, 100, 500, 1000, 2000, 5000, 10_000, 20_000,
        ]
    )
    write_catalog: bool = True
    write_presence: bool = True
    progress_interval: int = 10_000


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    effects: EffectsSection = field(default_factory=EffectsSection)
    selection: SelectionSection = field(default_factory=SelectionSection)
    output: OutputSection = field(default_factory=OutputSection)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict (YAML-serializable)."""
        return dataclasses.asdict(self)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

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


_SECTION_MAP = {
    'simulation': SimulationSection,
    'effects': EffectsSection,
    'selection': SelectionSection,
    'output': OutputSection,
}


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Population, genome and tick horizon are positive and ordered
      - Rates are probabilities
      - Effect distribution family and parameters are valid
      - Fitness weights cannot become negative
      - Output schedule tables are well formed
    """
    sim = config.simulation
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.population_size < 1:
        raise ValueError(
            f"simulation.population_size must be >= 1, got {sim.population_size}"
        )
    if sim.genome_size < 1:
        raise ValueError(
            f"simulation.genome_size must be positive, got {sim.genome_size}"
        )
    for name in ('mutation_rate', 'recombination_rate'):
        rate = getattr(sim, name)
        if not (0.0 <= rate <= 1.0):
            raise ValueError(f"simulation.{name} must be in [0, 1], got {rate}")
    if sim.end_tick < 1:
        raise ValueError(f"simulation.end_tick must be >= 1, got {sim.end_tick}")
    if not (1 <= sim.selection_tick <= sim.end_tick):
        raise ValueError(
            f"simulation.selection_tick ({sim.selection_tick}) must be in "
            f"[1, end_tick={sim.end_tick}]"
        )

    # Effect sizes
    eff = config.effects
    valid_distributions = {"gamma", "normal"}
    if eff.distribution not in valid_distributions:
        raise ValueError(
            f"effects.distribution must be one of {valid_distributions}, "
            f"got '{eff.distribution}'"
        )
    if eff.distribution == "gamma":
        if eff.shape <= 0:
            raise ValueError(f"effects.shape must be > 0, got {eff.shape}")
        if eff.mean == 0:
            raise ValueError("effects.mean must be non-zero for a gamma distribution")
    if eff.distribution == "normal" and eff.sd < 0:
        raise ValueError(f"effects.sd must be >= 0, got {eff.sd}")

    # Selection
    sel = config.selection
    if sel.factor < 0:
        raise ValueError(f"selection.factor must be >= 0, got {sel.factor}")
    if sel.baseline < 0:
        raise ValueError(f"selection.baseline must be >= 0, got {sel.baseline}")
    if sel.factor == 0 and sel.baseline == 0:
        raise ValueError("selection.factor and selection.baseline cannot both be 0")
    if not (0.0 <= sel.causal_fraction <= 1.0):
        raise ValueError(
            f"selection.causal_fraction must be in [0, 1], got {sel.causal_fraction}"
        )

    # Output schedule
    out = config.output
    if out.log_interval_initial < 1:
        raise ValueError(
            f"output.log_interval_initial must be >= 1, got {out.log_interval_initial}"
        )
    prev_offset = None
    for i, regime in enumerate(out.log_regimes):
        if len(regime) != 2:
            raise ValueError(
                f"output.log_regimes[{i}] must be [offset, interval], got {regime}"
            )
        offset, interval = regime
        if interval < 1:
            raise ValueError(
                f"output.log_regimes[{i}] interval must be >= 1, got {interval}"
            )
        if prev_offset is not None and offset <= prev_offset:
            raise ValueError(
                f"output.log_regimes offsets must be strictly increasing, "
                f"got {prev_offset} then {offset}"
            )
        prev_offset = offset
    if out.progress_interval < 1:
        raise ValueError(
            f"output.progress_interval must be >= 1, got {out.progress_interval}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        sweep_overrides: Optional dict of parameter overrides (e.g. from CLI).

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

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, copy.deepcopy(sweep_overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
