"""Core data types for stabsel.

This module is the SINGLE SOURCE OF TRUTH for:
  - Phase and MutationType enumerations
  - The Mutation record returned by registry lookups
  - Fixed model constants (dominance, subpopulation label)

All modules import these types from here.
"""

from dataclasses import dataclass
from enum import IntEnum


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class Phase(IntEnum):
    """Fitness phases of a run, keyed purely on tick.

    BURN_IN          →  SELECTION_ONSET:  tick == selection_tick
    SELECTION_ONSET  →  SELECTION:        tick == selection_tick + 1
    """
    BURN_IN         = 0   # Neutral drift; uniform fitness
    SELECTION_ONSET = 1   # Single tick: SD and optimum are frozen here
    SELECTION       = 2   # Stabilizing selection around the frozen optimum


class MutationType(IntEnum):
    """Mutation classes. Only CAUSAL mutations affect the trait."""
    CAUSAL  = 1   # Trait-affecting; effect drawn from the effect sampler
    NEUTRAL = 2   # Outside the causal window; effect is always 0.0

    @property
    def label(self) -> str:
        return f"m{int(self)}"


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

DOMINANCE: float = 0.5        # Additive; heterozygote carries half the homozygote effect
SUBPOP_LABEL: str = "p1"      # Single panmictic population
FIRST_TICK: int = 1


# ═══════════════════════════════════════════════════════════════════════
# RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Mutation:
    """One registered mutation. Immutable once created.

    Frequency is not stored; MutationRegistry.frequency_of derives it
    from the genome pool.
    """
    id: int
    position: int
    effect: float
    origin_tick: int
    mutation_type: MutationType = MutationType.CAUSAL
    dominance: float = DOMINANCE
    origin_subpop: str = SUBPOP_LABEL
