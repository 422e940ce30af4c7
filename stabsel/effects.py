"""Random effect-size sampler for new mutations.

Two families are supported:
  - gamma:  |s| ~ Gamma(shape k, scale |mean|/k), so E|s| = |mean|.
            The raw draw carries the sign of ``mean``.
  - normal: s ~ Normal(mean, sd).

With ``symmetric=True`` every draw then has its sign flipped with
probability 1/2. The flip happens exactly once, when the mutation is
created; the registry never touches an effect size again. The symmetric
gamma produces a heavy-tailed effect distribution centred on zero: most
new variants are near-neutral for the trait, a few have large effects.
"""

from __future__ import annotations

import numpy as np

from stabsel.config import EffectsSection


VALID_DISTRIBUTIONS = ("gamma", "normal")


class EffectSampler:
    """Draws signed effect sizes from a configured distribution.

    Parameters are checked at construction; an invalid family or a
    non-positive gamma shape is a configuration error, never a per-draw
    failure.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        distribution: str = "gamma",
        mean: float = -0.10,
        shape: float = 0.3,
        sd: float = 0.1,
        symmetric: bool = True,
    ):
        if distribution not in VALID_DISTRIBUTIONS:
            raise ValueError(
                f"distribution must be one of {VALID_DISTRIBUTIONS}, got '{distribution}'"
            )
        if distribution == "gamma":
            if shape <= 0:
                raise ValueError(f"gamma shape must be > 0, got {shape}")
            if mean == 0:
                raise ValueError("gamma mean must be non-zero")
        if distribution == "normal" and sd < 0:
            raise ValueError(f"normal sd must be >= 0, got {sd}")

        self.rng = rng
        self.distribution = distribution
        self.mean = float(mean)
        self.shape = float(shape)
        self.sd = float(sd)
        self.symmetric = symmetric

    @classmethod
    def from_config(cls, cfg: EffectsSection, rng: np.random.Generator) -> 'EffectSampler':
        return cls(
            rng,
            distribution=cfg.distribution,
            mean=cfg.mean,
            shape=cfg.shape,
            sd=cfg.sd,
            symmetric=cfg.symmetric,
        )

    def _raw(self, n: int) -> np.ndarray:
        if self.distribution == "gamma":
            scale = abs(self.mean) / self.shape
            magnitude = self.rng.gamma(self.shape, scale, size=n)
            return np.copysign(magnitude, self.mean)
        return self.rng.normal(self.mean, self.sd, size=n)

    def draw(self, n: int) -> np.ndarray:
        """Draw ``n`` effect sizes.

        Args:
            n: Number of new mutations needing an effect.

        Returns:
            (n,) float64 array of signed effect sizes.
        """
        if n == 0:
            return np.empty(0, dtype=np.float64)
        effects = self._raw(n)
        if self.symmetric:
            signs = self.rng.integers(0, 2, size=n) * 2 - 1
            effects = effects * signs
        return effects.astype(np.float64, copy=False)
