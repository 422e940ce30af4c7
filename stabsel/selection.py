"""Fitness-weighted Wright-Fisher parent sampling."""

from __future__ import annotations

import numpy as np


def draw_parents(
    weights: np.ndarray,
    n_draws: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Sample parent individuals with replacement, proportional to weight.

    Uniform weights give pure drift; non-uniform weights give drift plus
    selection. Zero weights are legal (that individual never reproduces).

    Args:
        weights: (N,) non-negative fitness weights.
        n_draws: Number of parents to draw (2N: one per offspring genome).
        rng: Selection RNG stream.

    Returns:
        (n_draws,) int64 individual indices.

    Raises:
        ValueError: If any weight is negative or non-finite, or all are zero.
    """
    w = np.asarray(weights, dtype=np.float64)
    if len(w) == 0:
        raise ValueError("Cannot draw parents from an empty population")
    if not np.all(np.isfinite(w)):
        raise ValueError("Fitness weights contain NaN or infinite values")
    if np.any(w < 0):
        raise ValueError(
            f"Fitness weights must be non-negative (min={w.min():.6g})"
        )
    total = w.sum()
    if total <= 0:
        raise ValueError("All fitness weights are zero; no parent can be drawn")
    return rng.choice(len(w), size=n_draws, replace=True, p=w / total).astype(np.int64)
