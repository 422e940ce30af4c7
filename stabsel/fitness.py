"""Phenotype and fitness evaluation.

Phenotype z_i = Σ effects of every mutation carried by individual i,
summed over both homologs (dominance 0.5 everywhere, so a homozygote
counts its effect twice and no heterozygote scaling is needed).

Fitness depends on the simulation phase:

  BURN_IN          w_i = 1                                   (pure drift)
  SELECTION_ONSET  freeze SD = sd(z), z_opt = mean(z);  w_i = 1
  SELECTION        w_i = baseline + factor × φ(z_opt − z_i; 0, SD)

φ is the normal density, so fitness is single-peaked at z_opt and falls
off symmetrically in both directions (stabilizing selection). The frozen
SD and z_opt parameterize selection for the rest of the run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict

import numpy as np
from scipy.stats import norm

from stabsel.genomes import GenomePool
from stabsel.types import Phase

if TYPE_CHECKING:
    from stabsel.model import SimulationContext

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# PHENOTYPE
# ═══════════════════════════════════════════════════════════════════════


def compute_genome_values(pool: GenomePool, effects: np.ndarray) -> np.ndarray:
    """(2N,) sum of carried effects per genome."""
    if pool.n_entries == 0:
        return np.zeros(pool.n_genomes, dtype=np.float64)
    return np.bincount(
        pool.entry_owner(),
        weights=effects[pool.mutations],
        minlength=pool.n_genomes,
    )


def compute_phenotypes(pool: GenomePool, effects: np.ndarray) -> np.ndarray:
    """Additive phenotype of every individual.

    Args:
        pool: Genome pool (2N genomes).
        effects: (n_mutations,) registry effect sizes indexed by id.

    Returns:
        (N,) float64 phenotypes.
    """
    per_genome = compute_genome_values(pool, effects)
    return per_genome.reshape(-1, 2).sum(axis=1)


# ═══════════════════════════════════════════════════════════════════════
# FITNESS FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════


def neutral_fitness(phenotypes: np.ndarray) -> np.ndarray:
    """Uniform weights: every individual equally likely to be a parent."""
    return np.ones(len(phenotypes), dtype=np.float64)


def stabilizing_fitness(
    phenotypes: np.ndarray,
    optimum: float,
    sd: float,
    factor: float = 1.0,
    baseline: float = 1.0,
) -> np.ndarray:
    """Gaussian stabilizing fitness around a fixed optimum.

    w = baseline + factor × φ(optimum − z; mean=0, sd=sd)

    Args:
        phenotypes: (N,) phenotypes.
        optimum: Frozen optimum phenotype.
        sd: Frozen phenotype SD (> 0).
        factor: Selection-strength multiplier.
        baseline: Constant offset.

    Returns:
        (N,) float64 fitness weights.
    """
    if not sd > 0:
        raise ValueError(f"Stabilizing fitness needs sd > 0, got {sd}")
    deviation = optimum - np.asarray(phenotypes, dtype=np.float64)
    return baseline + factor * norm.pdf(deviation, loc=0.0, scale=sd)


def phenotype_moments(phenotypes: np.ndarray) -> tuple:
    """(mean, population SD) of the phenotype distribution."""
    return float(np.mean(phenotypes)), float(np.std(phenotypes))


# ═══════════════════════════════════════════════════════════════════════
# PHASE-DISPATCHED EVALUATOR
# ═══════════════════════════════════════════════════════════════════════


class FitnessEvaluator:
    """Turns phenotypes into fitness weights according to the phase.

    Phase handlers live in a dispatch table; the tick loop never branches
    on phase itself.
    """

    def __init__(self, factor: float = 1.0, baseline: float = 1.0):
        self.factor = factor
        self.baseline = baseline
        self._handlers: Dict[Phase, Callable[[np.ndarray, 'SimulationContext'], np.ndarray]] = {
            Phase.BURN_IN: self._burn_in,
            Phase.SELECTION_ONSET: self._onset,
            Phase.SELECTION: self._selection,
        }

    def weights(
        self,
        phase: Phase,
        phenotypes: np.ndarray,
        ctx: 'SimulationContext',
    ) -> np.ndarray:
        return self._handlers[phase](phenotypes, ctx)

    def _burn_in(self, phenotypes, ctx):
        return neutral_fitness(phenotypes)

    def _onset(self, phenotypes, ctx):
        mean, sd = phenotype_moments(phenotypes)
        if sd == 0.0:
            raise ValueError(
                f"Phenotype SD is zero at selection onset (tick {ctx.tick}); "
                f"stabilizing fitness is undefined. Increase mutation_rate, "
                f"genome_size or the burn-in length."
            )
        ctx.freeze(sd=sd, optimum=mean)
        logger.info(
            "Selection onset at tick %d: optimum=%.6g SD=%.6g", ctx.tick, mean, sd
        )
        return neutral_fitness(phenotypes)

    def _selection(self, phenotypes, ctx):
        if not ctx.frozen:
            raise RuntimeError(
                f"Selection phase reached at tick {ctx.tick} before SD/optimum were frozen"
            )
        return stabilizing_fitness(
            phenotypes, ctx.optimum, ctx.sd, self.factor, self.baseline,
        )
