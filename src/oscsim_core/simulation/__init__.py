# src/oscsim_core/simulation/__init__.py
from .context import SimulationContext
from .results import EnsembleResult
from .engine import EnsembleWorker, run_worker
from .finalizer import finalize_ensemble
from .execution import run_ensemble

__all__ = [
    # Contracts
    "SimulationContext",
    "EnsembleResult",
    # Core Classes
    "EnsembleWorker",
    "run_worker",
    "finalize_ensemble",
    # Public API
    "run_ensemble",
]
