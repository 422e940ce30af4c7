"""Mutation registry: the append-only catalog of every mutation ever created.

Storage is an arena of parallel numpy arrays indexed by mutation id
(ids start at 0 and increase by one per mutation). Capacity doubles when
full, so appends are amortized O(1).

There is no delete operation. Lost and fixed mutations both stay in the
catalog for the life of the run (no conversion to substitutions), which
makes the registry the dominant memory cost of a long run. ``nbytes``
reports the current arena size.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

import numpy as np

from stabsel.types import Mutation, MutationType

if TYPE_CHECKING:
    from stabsel.genomes import GenomePool

logger = logging.getLogger(__name__)

_INITIAL_CAPACITY = 1024


class MutationRegistry:
    """Append-only arena of mutation records."""

    def __init__(self, initial_capacity: int = _INITIAL_CAPACITY):
        capacity = max(1, int(initial_capacity))
        self._n = 0
        self._positions = np.empty(capacity, dtype=np.int64)
        self._effects = np.empty(capacity, dtype=np.float64)
        self._origin_ticks = np.empty(capacity, dtype=np.int64)
        self._types = np.empty(capacity, dtype=np.int8)

    def __len__(self) -> int:
        return self._n

    @property
    def capacity(self) -> int:
        return len(self._positions)

    @property
    def nbytes(self) -> int:
        return (
            self._positions.nbytes + self._effects.nbytes
            + self._origin_ticks.nbytes + self._types.nbytes
        )

    def _reserve(self, needed: int) -> None:
        if needed <= self.capacity:
            return
        new_cap = self.capacity
        while new_cap < needed:
            new_cap *= 2
        logger.debug("Registry grows %d -> %d slots", self.capacity, new_cap)
        for name in ('_positions', '_effects', '_origin_ticks', '_types'):
            old = getattr(self, name)
            grown = np.empty(new_cap, dtype=old.dtype)
            grown[:self._n] = old[:self._n]
            setattr(self, name, grown)

    # ── Creation ─────────────────────────────────────────────────────

    def create_mutations(
        self,
        positions: np.ndarray,
        effects: np.ndarray,
        origin_tick: int,
        types: Union[np.ndarray, MutationType] = MutationType.CAUSAL,
    ) -> np.ndarray:
        """Register a batch of new mutations.

        Args:
            positions: (k,) int positions along the genomic element.
            effects: (k,) float effect sizes (already signed).
            origin_tick: Tick at which all k mutations arose.
            types: (k,) MutationType values, or one type for the batch.

        Returns:
            (k,) int64 ids: contiguous, increasing.
        """
        positions = np.asarray(positions, dtype=np.int64)
        effects = np.asarray(effects, dtype=np.float64)
        k = len(positions)
        if len(effects) != k:
            raise ValueError(
                f"positions and effects differ in length ({k} vs {len(effects)})"
            )
        start = self._n
        self._reserve(start + k)
        end = start + k
        self._positions[start:end] = positions
        self._effects[start:end] = effects
        self._origin_ticks[start:end] = origin_tick
        self._types[start:end] = np.asarray(types, dtype=np.int8)
        self._n = end
        return np.arange(start, end, dtype=np.int64)

    def create_mutation(
        self,
        position: int,
        effect: float,
        origin_tick: int,
        mutation_type: MutationType = MutationType.CAUSAL,
    ) -> int:
        """Register one new mutation and return its id."""
        ids = self.create_mutations(
            np.array([position]), np.array([effect]), origin_tick, mutation_type,
        )
        return int(ids[0])

    # ── Lookup ───────────────────────────────────────────────────────

    def lookup(self, mutation_id: int) -> Mutation:
        """Return the record for ``mutation_id``.

        Raises:
            KeyError: If the id was never created.
        """
        if not (0 <= mutation_id < self._n):
            raise KeyError(
                f"No mutation with id {mutation_id} (registry holds {self._n})"
            )
        return Mutation(
            id=int(mutation_id),
            position=int(self._positions[mutation_id]),
            effect=float(self._effects[mutation_id]),
            origin_tick=int(self._origin_ticks[mutation_id]),
            mutation_type=MutationType(int(self._types[mutation_id])),
        )

    def _view(self, arr: np.ndarray) -> np.ndarray:
        view = arr[:self._n]
        view.flags.writeable = False
        return view

    @property
    def positions(self) -> np.ndarray:
        return self._view(self._positions)

    @property
    def effects(self) -> np.ndarray:
        return self._view(self._effects)

    @property
    def origin_ticks(self) -> np.ndarray:
        return self._view(self._origin_ticks)

    @property
    def types(self) -> np.ndarray:
        return self._view(self._types)

    def count_by_type(self, mutation_type: MutationType = MutationType.CAUSAL) -> int:
        """Number of registered mutations of one type (lost ones included)."""
        return int(np.count_nonzero(self.types == int(mutation_type)))

    # ── Derived frequencies ──────────────────────────────────────────

    def prevalence(self, pool: 'GenomePool') -> np.ndarray:
        """(len(self),) number of genomes in ``pool`` carrying each mutation."""
        return pool.mutation_counts(self._n)

    def frequency_of(self, mutation_id: int, pool: 'GenomePool') -> float:
        """Fraction of the pool's 2N genomes carrying ``mutation_id``."""
        if not (0 <= mutation_id < self._n):
            raise KeyError(f"No mutation with id {mutation_id}")
        carriers = int(np.count_nonzero(pool.mutations == mutation_id))
        return carriers / pool.n_genomes
