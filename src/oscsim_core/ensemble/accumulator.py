# src/oscsim_core/ensemble/accumulator.py
import logging

import numpy as np

logger = logging.getLogger(__name__)


class LocalAccumulator:
    """
    Worker-owned running sum of replicate displacement sequences, indexed by step.

    A fresh accumulator is allocated for every run; it is never shared between
    workers or reused across runs.
    """
    def __init__(self, steps: int):
        if steps < 1:
            raise ValueError(f"Accumulator length must be at least 1, got {steps}.")
        self._sum = np.zeros(steps, dtype=float)
        self.count = 0

    @property
    def steps(self) -> int:
        return self._sum.shape[0]

    def add(self, displacements: np.ndarray):
        """Adds one replicate's displacement sequence elementwise."""
        displacements = np.asarray(displacements, dtype=float)
        if displacements.shape != self._sum.shape:
            raise ValueError(
                f"Replicate sequence has shape {displacements.shape}, expected {self._sum.shape}."
            )
        self._sum += displacements
        self.count += 1

    @property
    def partial_sum(self) -> np.ndarray:
        """The local partial-sum vector. A worker with no replicates yields zeros."""
        return self._sum

    def __repr__(self):
        return f"LocalAccumulator(steps={self.steps}, count={self.count})"
