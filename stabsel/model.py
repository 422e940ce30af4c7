"""Generation loop for the stabilizing-selection simulation.

Per tick (strictly sequential, nothing overlaps across ticks):
  1. Advance the tick counter
  2. Build the offspring genome pool from the parents drawn last tick
     (recombination + new mutations written to the registry)
  3. Phenotypes over the newly realized pool
  4. Fitness weights by phase; at the onset tick SD/optimum are frozen
  5. Output writers fire if the tick is scheduled
  6. Fitness-weighted parent draw for the next tick

The only cross-tick state is the genome pool, the registry, the drawn
parents and the SimulationContext. Everything is driven by named RNG
streams spawned from one master seed, so a run is reproducible
bit-for-bit from (config, seed).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from stabsel.config import SimulationConfig, default_config, validate_config
from stabsel.effects import EffectSampler
from stabsel.fitness import FitnessEvaluator, compute_phenotypes, phenotype_moments
from stabsel.genomes import GenomePool, nucleotide_heterozygosity, segregating_mask
from stabsel.output import OutputWriters, make_run_id
from stabsel.provenance import run_provenance, timer
from stabsel.registry import MutationRegistry
from stabsel.reproduction import advance_generation
from stabsel.rng import create_rng_streams
from stabsel.schedule import LoggingSchedule, PhaseController, snapshot_ticks
from stabsel.selection import draw_parents
from stabsel.types import MutationType, Phase

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION CONTEXT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationContext:
    """Mutable run state shared by the loop components.

    Lifecycle:
      - created with tick 0 and nothing frozen
      - ``advance()`` once per generation
      - ``freeze()`` exactly once, at the selection-onset tick
      - discarded when the run ends (no checkpointing)
    """
    run_id: str
    seed: int
    tick: int = 0
    sd: Optional[float] = None
    optimum: Optional[float] = None
    freeze_tick: Optional[int] = None

    @property
    def frozen(self) -> bool:
        return self.freeze_tick is not None

    def advance(self) -> int:
        self.tick += 1
        return self.tick

    def freeze(self, sd: float, optimum: float) -> None:
        """Set SD and optimum. They are write-once."""
        if self.frozen:
            raise RuntimeError(
                f"SD/optimum already frozen at tick {self.freeze_tick}; "
                f"refusing to refreeze at tick {self.tick}"
            )
        self.sd = float(sd)
        self.optimum = float(optimum)
        self.freeze_tick = self.tick


# ═══════════════════════════════════════════════════════════════════════
# RESULTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class TickRecord:
    """What one generation produced (handed to observers)."""
    tick: int
    phase: Phase
    phenotypes: np.ndarray
    weights: np.ndarray
    registry_size: int


@dataclass
class SimulationResult:
    """Results of one run."""
    run_id: str = ""
    final_tick: int = 0
    # One entry per logged tick
    logged_ticks: List[int] = field(default_factory=list)
    registry_sizes: List[int] = field(default_factory=list)
    summary_rows: List[Tuple[int, int, float, float, float]] = field(default_factory=list)
    snapshot_ticks_written: List[int] = field(default_factory=list)
    # Frozen at selection onset
    sd: Optional[float] = None
    optimum: Optional[float] = None
    freeze_tick: Optional[int] = None
    # Final state
    registry: Optional[MutationRegistry] = None
    pool: Optional[GenomePool] = None
    output_paths: Dict[str, Path] = field(default_factory=dict)

    @property
    def final_mean_phenotype(self) -> Optional[float]:
        return self.summary_rows[-1][3] if self.summary_rows else None


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════

class Simulation:
    """Stateful generation loop. Call ``step()`` per tick or ``run()``."""

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        writers: Optional[OutputWriters] = None,
    ):
        if config is None:
            config = default_config()
        validate_config(config)
        self.config = config
        sim = config.simulation
        self.n_individuals = sim.population_size
        self.n_genomes = 2 * sim.population_size
        self.causal_length = int(round(config.selection.causal_fraction * sim.genome_size))

        self.rngs = create_rng_streams(sim.seed)
        self.sampler = EffectSampler.from_config(config.effects, self.rngs['effects'])
        self.registry = MutationRegistry()
        self.pool = GenomePool.empty(self.n_individuals)
        self.ctx = SimulationContext(run_id=make_run_id(config), seed=sim.seed)

        self.phases = PhaseController(sim.selection_tick)
        self.evaluator = FitnessEvaluator(
            factor=config.selection.factor,
            baseline=config.selection.baseline,
        )
        self.log_schedule = LoggingSchedule(
            sim.selection_tick,
            initial_interval=config.output.log_interval_initial,
            regimes=config.output.log_regimes,
        )
        self.snapshot_ticks = frozenset(
            snapshot_ticks(sim.selection_tick, sim.end_tick, config.output.snapshot_offsets)
        )
        self.writers = writers
        self.result = SimulationResult(run_id=self.ctx.run_id)

        # Tick-0 population carries nothing, so its parents are a neutral draw.
        self.parents = draw_parents(
            np.ones(self.n_individuals), self.n_genomes, self.rngs['selection'],
        )

    # ── Provenance ───────────────────────────────────────────────────

    def metadata(self) -> Dict:
        cfg = self.config.to_dict()
        return {
            'run_id': self.ctx.run_id,
            'seed': self.ctx.seed,
            **run_provenance(cfg),
            'config': cfg,
        }

    # ── Per-tick outputs ─────────────────────────────────────────────

    def _emit(self, tick: int, phenotypes: np.ndarray) -> None:
        log_now = self.log_schedule.should_log(tick)
        snap_now = tick in self.snapshot_ticks
        if not (log_now or snap_now):
            return

        counts = self.registry.prevalence(self.pool)

        if log_now:
            causal = self.registry.types == int(MutationType.CAUSAL)
            n_seg = int(np.count_nonzero(segregating_mask(counts, self.n_genomes) & causal))
            het = nucleotide_heterozygosity(
                counts, self.n_genomes, self.config.simulation.genome_size,
            )
            mean_z, sd_z = phenotype_moments(phenotypes)
            row = (tick, n_seg, het, mean_z, sd_z)
            self.result.logged_ticks.append(tick)
            self.result.registry_sizes.append(len(self.registry))
            self.result.summary_rows.append(row)
            if self.writers is not None:
                self.writers.write_summary(*row)

        if snap_now:
            self.result.snapshot_ticks_written.append(tick)
            if self.writers is not None:
                self.writers.write_catalog(tick, self.registry, counts)
                self.writers.write_presence(tick, self.pool, counts)

    # ── Loop ─────────────────────────────────────────────────────────

    def step(self) -> TickRecord:
        """Run one complete generation."""
        sim = self.config.simulation
        tick = self.ctx.advance()

        self.pool = advance_generation(
            self.pool,
            self.parents,
            self.registry,
            self.sampler,
            tick,
            sim.genome_size,
            sim.mutation_rate,
            sim.recombination_rate,
            self.causal_length,
            self.rngs['recombination'],
            self.rngs['mutation'],
        )
        logger.debug("tick %d: registry=%d entries=%d", tick, len(self.registry), self.pool.n_entries)

        phenotypes = compute_phenotypes(self.pool, self.registry.effects)
        phase = self.phases.phase_at(tick)
        weights = self.evaluator.weights(phase, phenotypes, self.ctx)

        self._emit(tick, phenotypes)

        self.parents = draw_parents(weights, self.n_genomes, self.rngs['selection'])

        if tick % self.config.output.progress_interval == 0:
            logger.info(
                "tick %d/%d phase=%s registry=%d (%.1f MB)",
                tick, sim.end_tick, phase.name, len(self.registry),
                self.registry.nbytes / 1e6,
            )
        return TickRecord(tick, phase, phenotypes, weights, len(self.registry))

    def run(
        self,
        observer: Optional[Callable[['Simulation', TickRecord], None]] = None,
    ) -> SimulationResult:
        """Run from the current tick to ``end_tick``.

        Args:
            observer: Optional callback invoked after every tick.
        """
        end_tick = self.config.simulation.end_tick
        logger.info(
            "Run %s: N=%d L=%d ticks=%d selection at %d",
            self.ctx.run_id, self.n_individuals, self.config.simulation.genome_size,
            end_tick, self.config.simulation.selection_tick,
        )
        with timer(f"run {self.ctx.run_id}"):
            while self.ctx.tick < end_tick:
                record = self.step()
                if observer is not None:
                    observer(self, record)

        res = self.result
        res.final_tick = self.ctx.tick
        res.sd = self.ctx.sd
        res.optimum = self.ctx.optimum
        res.freeze_tick = self.ctx.freeze_tick
        res.registry = self.registry
        res.pool = self.pool
        logger.info(
            "Run %s finished at tick %d with %d mutations registered",
            self.ctx.run_id, res.final_tick, len(self.registry),
        )
        return res


def run_simulation(
    config: Optional[SimulationConfig] = None,
    output_dir: Optional[str | Path] = None,
    write_outputs: bool = True,
    observer: Optional[Callable[[Simulation, TickRecord], None]] = None,
) -> SimulationResult:
    """Run a full simulation, writing the append-only outputs.

    Args:
        config: Simulation configuration (default config if None).
        output_dir: Overrides ``config.output.directory``.
        write_outputs: If False, results are only kept in memory.
        observer: Optional per-tick callback.

    Returns:
        SimulationResult.
    """
    if config is None:
        config = default_config()
    if not write_outputs:
        return Simulation(config).run(observer)

    directory = Path(output_dir if output_dir is not None else config.output.directory)
    writers = OutputWriters(
        directory,
        make_run_id(config),
        n_genomes=2 * config.simulation.population_size,
        write_catalog=config.output.write_catalog,
        write_presence=config.output.write_presence,
    )
    with writers:
        sim = Simulation(config, writers=writers)
        writers.write_metadata(sim.metadata())
        result = sim.run(observer)
        writers.append_completion({
            'final_tick': result.final_tick,
            'freeze_tick': result.freeze_tick,
            'sd': result.sd,
            'optimum': result.optimum,
            'registry_size': len(result.registry),
            'n_causal': result.registry.count_by_type(MutationType.CAUSAL),
        })
        result.output_paths = writers.output_paths()
    return result
