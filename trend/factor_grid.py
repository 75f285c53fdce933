"""Candidate SuperTrend multipliers evaluated side by side."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from ..config_structured import SupertrendAIConfig

# Grid values are rounded so that 1.0 + 3 * 0.1 is stored as 1.3, not 1.3000000000000003.
_GRID_DECIMALS = 10


@dataclass(frozen=True)
class FactorGrid:
    """Ordered, strictly increasing tuple of multipliers.

    Built deterministically as ``min_factor + i * factor_step`` for
    ``i = 0 .. floor((max_factor - min_factor) / factor_step)``.  The upper
    bound is included when it lies on the step lattice.
    """

    factors: Tuple[float, ...]

    def __post_init__(self):
        if len(self.factors) == 0:
            raise ValueError("FactorGrid requires at least one factor")
        if any(b <= a for a, b in zip(self.factors, self.factors[1:])):
            raise ValueError(f"Factors must be strictly increasing, got {self.factors}")

    @classmethod
    def build(cls, min_factor: float, max_factor: float, step: float) -> "FactorGrid":
        """Generate the grid from a ``[min, max]`` range and a step."""
        if step <= 0:
            raise ValueError(f"step must be > 0, got {step}")
        if max_factor < min_factor:
            raise ValueError(
                f"max_factor ({max_factor}) must be >= min_factor ({min_factor})"
            )
        # Tolerance absorbs representation error such as (3.0 - 1.0) / 0.1 = 19.999...
        n_steps = int(math.floor((max_factor - min_factor) / step + 1e-9))
        values = [round(min_factor + i * step, _GRID_DECIMALS) for i in range(n_steps + 1)]
        return cls(tuple(values))

    @classmethod
    def from_config(cls, cfg: SupertrendAIConfig) -> "FactorGrid":
        """Grid described by an engine config."""
        return cls.build(cfg.min_factor, cfg.max_factor, cfg.factor_step)

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[float]:
        return iter(self.factors)

    def __getitem__(self, idx: int) -> float:
        return self.factors[idx]

    def as_array(self) -> np.ndarray:
        """Factors as a float64 array."""
        return np.asarray(self.factors, dtype=np.float64)

    def labels(self) -> Tuple[str, ...]:
        """Column labels for per-factor frames (e.g. ``"f1.5"``)."""
        return tuple(f"f{f:g}" for f in self.factors)
