# src/oscsim_core/ensemble/__init__.py
from .partition import local_replicate_count, partition_counts, replicate_range
from .accumulator import LocalAccumulator
from .replicate import time_vector, replicate_parameters, simulate_replicate
from .rng import fresh_run_seed, worker_generator, sample_damping

__all__ = [
    # Partitioning
    "local_replicate_count",
    "partition_counts",
    "replicate_range",
    # Accumulation
    "LocalAccumulator",
    # Replicates
    "time_vector",
    "replicate_parameters",
    "simulate_replicate",
    # Randomness
    "fresh_run_seed",
    "worker_generator",
    "sample_damping",
]
