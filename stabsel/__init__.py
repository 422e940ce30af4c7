"""stabsel: forward simulation of stabilizing selection on a quantitative trait.

An individual-based, discrete-generation Wright-Fisher model of a diploid
population:
  - One linear genomic element with per-base mutation and recombination
  - Mutation effects from a (sign-symmetrized) gamma or normal distribution
  - Neutral burn-in, then Gaussian stabilizing selection around the
    phenotype mean frozen at the selection-onset tick
  - Append-only summary log, mutation catalog and presence snapshots on a
    multi-regime schedule centred on the onset
"""

__version__ = "0.1.0"
