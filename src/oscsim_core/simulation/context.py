# src/oscsim_core/simulation/context.py
"""
Defines the `SimulationContext`, the immutable input of every ensemble worker.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..constants import COORDINATOR_RANK


@dataclass(frozen=True)
class SimulationContext:
    """
    An immutable container for everything a worker needs to run its share of the
    ensemble. It is identical on every worker and is never mutated, so no worker
    can alter the run's initial conditions mid-execution.

    Attributes:
        config: The validated run configuration.
        output_path: Where the coordinator writes the mean trajectory. None keeps
                     the result in memory only.
        root: Rank of the coordinator that receives the reduced sum.
    """
    config: SimulationConfig
    output_path: Optional[Path] = None
    root: int = COORDINATOR_RANK
