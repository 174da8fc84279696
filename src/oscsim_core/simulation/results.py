# src/oscsim_core/simulation/results.py
"""
Defines the formal, type-safe result of an ensemble run.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class EnsembleResult:
    """
    The ensemble-averaged trajectory, available on the coordinator only.

    Attributes:
        times: The time vector, length STEPS.
        mean_displacement: Mean displacement over all replicates at each time, length STEPS.
        replicates: Total replicate count R the mean was taken over.
        workers: Number of workers W that took part.
        seed: The run-level seed, so the run can be reproduced.
        output_path: The written trajectory file, or None if nothing was written.
    """
    times: np.ndarray
    mean_displacement: np.ndarray
    replicates: int
    workers: int
    seed: int
    output_path: Optional[Path] = None

    @property
    def steps(self) -> int:
        return int(self.times.shape[0])
