"""Reproduction and recombination engine.

Builds the next generation's genome pool from the current one:

  1. Gamete formation: every offspring genome copies one parent
     individual's two homologs, switching homolog at each crossover
     breakpoint. Crossover count ~ Poisson(r × (L − 1)); breakpoints are
     uniform on [1, L); positions ≥ b come from the other homolog after
     breakpoint b. The starting homolog is a fair coin.
  2. Mutation injection: new-mutation count per genome ~ Poisson(μ × L),
     positions uniform on [0, L). Mutations inside the causal window get an
     effect from the EffectSampler; the rest are neutral with effect 0.

Per-base rates are never applied per base: counts and positions are
sampled directly, and the whole population is processed as flat arrays.

Which parents contribute is decided beforehand by the selection module;
this module never looks at fitness.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from stabsel.effects import EffectSampler
from stabsel.genomes import GenomePool
from stabsel.registry import MutationRegistry
from stabsel.types import MutationType


# ═══════════════════════════════════════════════════════════════════════
# GAMETE FORMATION
# ═══════════════════════════════════════════════════════════════════════


def recombine_gametes(
    pool: GenomePool,
    parents: np.ndarray,
    positions: np.ndarray,
    genome_size: int,
    recombination_rate: float,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Form one recombinant gamete per entry of ``parents``.

    Args:
        pool: Current generation.
        parents: (n_gametes,) parent individual index for each gamete.
        positions: (n_mutations,) registry positions, indexed by mutation id.
        genome_size: L.
        recombination_rate: Per-base crossover probability.
        rng: Recombination RNG stream.

    Returns:
        Tuple of:
          ids:   mutation ids inherited by the gametes (unsorted)
          owner: (same length) gamete index each id belongs to
    """
    parents = np.asarray(parents, dtype=np.int64)
    n_gametes = len(parents)

    start_strand = rng.integers(0, 2, size=n_gametes)
    n_breaks = rng.poisson(recombination_rate * max(genome_size - 1, 0), size=n_gametes)
    total_breaks = int(n_breaks.sum())
    if total_breaks > 0:
        break_pos = rng.integers(1, genome_size, size=total_breaks)
    else:
        break_pos = np.empty(0, dtype=np.int64)

    # Encode (gamete, position) as one sortable key so a single
    # searchsorted counts breakpoints at or before each mutation.
    break_owner = np.repeat(np.arange(n_gametes, dtype=np.int64), n_breaks)
    break_key = np.sort(break_owner * genome_size + break_pos)
    breaks_before = np.cumsum(n_breaks) - n_breaks

    ids_parts = []
    owner_parts = []
    for strand in (0, 1):
        ids, owner = pool.gather(2 * parents + strand)
        if len(ids) == 0:
            continue
        key = owner * genome_size + positions[ids]
        n_crossed = np.searchsorted(break_key, key, side='right') - breaks_before[owner]
        keep = (start_strand[owner] + n_crossed) % 2 == strand
        ids_parts.append(ids[keep])
        owner_parts.append(owner[keep])

    if not ids_parts:
        empty = np.empty(0, dtype=np.int64)
        return empty, empty
    return np.concatenate(ids_parts), np.concatenate(owner_parts)


# ═══════════════════════════════════════════════════════════════════════
# MUTATION INJECTION
# ═══════════════════════════════════════════════════════════════════════


def inject_mutations(
    n_genomes: int,
    registry: MutationRegistry,
    sampler: EffectSampler,
    tick: int,
    genome_size: int,
    mutation_rate: float,
    causal_length: int,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """Create and register new mutations for ``n_genomes`` offspring genomes.

    Duplicate positions drawn for the same genome in this event collapse
    into a single mutation.

    Returns:
        Tuple of:
          ids:   newly registered mutation ids
          owner: (same length) offspring genome index of each new mutation
    """
    n_new = rng.poisson(mutation_rate * genome_size, size=n_genomes)
    total = int(n_new.sum())
    if total == 0:
        empty = np.empty(0, dtype=np.int64)
        return empty, empty

    owner = np.repeat(np.arange(n_genomes, dtype=np.int64), n_new)
    pos = rng.integers(0, genome_size, size=total)
    key = np.unique(owner * genome_size + pos)
    owner = key // genome_size
    pos = key % genome_size

    causal = pos < causal_length
    effects = np.zeros(len(pos), dtype=np.float64)
    effects[causal] = sampler.draw(int(causal.sum()))
    types = np.where(causal, int(MutationType.CAUSAL), int(MutationType.NEUTRAL))

    ids = registry.create_mutations(pos, effects, tick, types)
    return ids, owner


# ═══════════════════════════════════════════════════════════════════════
# GENERATION STEP
# ═══════════════════════════════════════════════════════════════════════


def assemble_pool(ids: np.ndarray, owner: np.ndarray, n_genomes: int) -> GenomePool:
    """Sort (owner, id) pairs into CSR form."""
    order = np.lexsort((ids, owner))
    lengths = np.bincount(owner, minlength=n_genomes)
    offsets = np.concatenate(([0], np.cumsum(lengths))).astype(np.int64)
    return GenomePool(ids[order], offsets)


def advance_generation(
    pool: GenomePool,
    parents: np.ndarray,
    registry: MutationRegistry,
    sampler: EffectSampler,
    tick: int,
    genome_size: int,
    mutation_rate: float,
    recombination_rate: float,
    causal_length: int,
    rng_recombination: np.random.Generator,
    rng_mutation: np.random.Generator,
) -> GenomePool:
    """Produce the offspring genome pool for ``tick``.

    Offspring individual i receives genome 2i from a gamete of
    ``parents[2i]`` and genome 2i+1 from a gamete of ``parents[2i+1]``.

    Args:
        pool: Parental generation.
        parents: (2N,) parent individual per offspring genome.
        registry: Mutation registry (new mutations are appended).
        sampler: Effect-size sampler for causal mutations.
        tick: Current tick, stamped on new mutations.
        genome_size: L.
        mutation_rate: Per-base mutation rate μ.
        recombination_rate: Per-base crossover rate r.
        causal_length: Positions [0, causal_length) are trait-affecting.
        rng_recombination: RNG stream for gametes.
        rng_mutation: RNG stream for mutation counts/positions.

    Returns:
        New GenomePool with the same number of individuals.
    """
    parents = np.asarray(parents, dtype=np.int64)
    n_genomes = pool.n_genomes
    if len(parents) != n_genomes:
        raise ValueError(
            f"Need one parent per offspring genome ({n_genomes}), got {len(parents)}"
        )

    inherited, inherited_owner = recombine_gametes(
        pool, parents, registry.positions, genome_size,
        recombination_rate, rng_recombination,
    )
    new_ids, new_owner = inject_mutations(
        n_genomes, registry, sampler, tick, genome_size,
        mutation_rate, causal_length, rng_mutation,
    )
    return assemble_pool(
        np.concatenate([inherited, new_ids]),
        np.concatenate([inherited_owner, new_owner]),
        n_genomes,
    )
