"""Genome pool: diploid genotypes of the whole population.

Every genome is an ordered set of mutation ids (sorted ascending by id).
The pool stores all 2N genomes in compressed-sparse-row form:

    mutations: (n_entries,) int64 : concatenated genome contents
    offsets:   (2N + 1,)   int64 : genome g is mutations[offsets[g]:offsets[g+1]]

Genomes 2i and 2i+1 are the two homologs of individual i. Mutation
records themselves live in the MutationRegistry; the pool only holds ids,
so identity comparison is integer comparison and no record is duplicated.

Also hosts population-level diversity statistics computed from the pool.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


class GenomePool:
    """Fixed-size diploid population in CSR layout."""

    def __init__(self, mutations: np.ndarray, offsets: np.ndarray):
        mutations = np.asarray(mutations, dtype=np.int64)
        offsets = np.asarray(offsets, dtype=np.int64)
        if offsets.ndim != 1 or len(offsets) < 3 or (len(offsets) - 1) % 2 != 0:
            raise ValueError(
                f"offsets must have length 2N + 1 for N >= 1, got {len(offsets)}"
            )
        if offsets[0] != 0 or offsets[-1] != len(mutations):
            raise ValueError("offsets must start at 0 and end at len(mutations)")
        self.mutations = mutations
        self.offsets = offsets

    @classmethod
    def empty(cls, n_individuals: int) -> 'GenomePool':
        """A pool of ``n_individuals`` carrying no mutations (tick-0 state)."""
        return cls(
            np.empty(0, dtype=np.int64),
            np.zeros(2 * n_individuals + 1, dtype=np.int64),
        )

    @classmethod
    def from_genomes(cls, genomes) -> 'GenomePool':
        """Build a pool from a list of per-genome id sequences (test helper)."""
        arrays = [np.unique(np.asarray(g, dtype=np.int64)) for g in genomes]
        lengths = np.array([len(a) for a in arrays], dtype=np.int64)
        offsets = np.concatenate(([0], np.cumsum(lengths)))
        flat = np.concatenate(arrays) if arrays else np.empty(0, dtype=np.int64)
        return cls(flat, offsets)

    # ── Shape ────────────────────────────────────────────────────────

    @property
    def n_genomes(self) -> int:
        return len(self.offsets) - 1

    @property
    def n_individuals(self) -> int:
        return self.n_genomes // 2

    @property
    def n_entries(self) -> int:
        return len(self.mutations)

    def genome(self, g: int) -> np.ndarray:
        """Mutation ids carried by genome ``g`` (read-only view)."""
        view = self.mutations[self.offsets[g]:self.offsets[g + 1]]
        view.flags.writeable = False
        return view

    def individual(self, i: int) -> Tuple[np.ndarray, np.ndarray]:
        """The two homologs of individual ``i``."""
        return self.genome(2 * i), self.genome(2 * i + 1)

    def genome_lengths(self) -> np.ndarray:
        return np.diff(self.offsets)

    def entry_owner(self) -> np.ndarray:
        """(n_entries,) genome index of every stored mutation reference."""
        return np.repeat(
            np.arange(self.n_genomes, dtype=np.int64), self.genome_lengths()
        )

    def gather(self, genome_idx: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Concatenate the contents of several genomes.

        Args:
            genome_idx: (k,) genome indices (repeats allowed).

        Returns:
            Tuple of:
              ids:   mutation ids of all requested genomes, in request order
              owner: (same length) position in ``genome_idx`` each id came from
        """
        genome_idx = np.asarray(genome_idx, dtype=np.int64)
        starts = self.offsets[genome_idx]
        lengths = self.offsets[genome_idx + 1] - starts
        total = int(lengths.sum())
        if total == 0:
            empty = np.empty(0, dtype=np.int64)
            return empty, empty
        owner = np.repeat(np.arange(len(genome_idx), dtype=np.int64), lengths)
        # Offset of each entry inside its own genome
        seg_start = np.cumsum(lengths) - lengths
        within = np.arange(total, dtype=np.int64) - seg_start[owner]
        return self.mutations[starts[owner] + within], owner

    # ── Counts ───────────────────────────────────────────────────────

    def mutation_counts(self, n_mutations: int) -> np.ndarray:
        """Number of genomes carrying each mutation id in [0, n_mutations)."""
        return np.bincount(self.mutations, minlength=n_mutations)[:n_mutations]

    def presence_matrix(self, mutation_ids: np.ndarray) -> np.ndarray:
        """Presence/absence of each requested mutation in every genome.

        Args:
            mutation_ids: (k,) sorted ascending, unique mutation ids.

        Returns:
            (k, 2N) uint8: 1 where genome carries the mutation.
        """
        mutation_ids = np.asarray(mutation_ids, dtype=np.int64)
        matrix = np.zeros((len(mutation_ids), self.n_genomes), dtype=np.uint8)
        if len(mutation_ids) == 0 or self.n_entries == 0:
            return matrix
        owner = self.entry_owner()
        row = np.searchsorted(mutation_ids, self.mutations)
        row_clipped = np.minimum(row, len(mutation_ids) - 1)
        hit = mutation_ids[row_clipped] == self.mutations
        matrix[row_clipped[hit], owner[hit]] = 1
        return matrix


# ═══════════════════════════════════════════════════════════════════════
# DIVERSITY STATISTICS
# ═══════════════════════════════════════════════════════════════════════


def nucleotide_heterozygosity(
    counts: np.ndarray,
    n_genomes: int,
    genome_size: int,
) -> float:
    """Per-base heterozygosity π = Σ 2p(1 − p) / L over all mutations.

    Fixed and lost mutations contribute 0, so summing over the full
    registry is equivalent to summing over segregating sites.

    Args:
        counts: (n_mutations,) carrier genome counts.
        n_genomes: 2N.
        genome_size: L in base pairs.

    Returns:
        π (float).
    """
    if n_genomes == 0 or len(counts) == 0:
        return 0.0
    p = counts.astype(np.float64) / n_genomes
    return float(np.sum(2.0 * p * (1.0 - p)) / genome_size)


def segregating_mask(counts: np.ndarray, n_genomes: int) -> np.ndarray:
    """True for mutations present in some but not all genomes."""
    return (counts > 0) & (counts < n_genomes)
