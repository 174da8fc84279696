# src/oscsim_core/ensemble/rng.py
"""
Per-worker random streams.

Each worker draws from its own PCG64 generator seeded by (run seed, rank), so runs
are reproducible for a fixed seed and worker count, and no two workers share or
overlap a stream.
"""
import logging

import numpy as np

logger = logging.getLogger(__name__)


def fresh_run_seed() -> int:
    """Draws a new run-level seed from OS entropy."""
    return int(np.random.SeedSequence().entropy)


def worker_generator(run_seed: int, rank: int) -> np.random.Generator:
    """Independent generator for worker `rank` within the run identified by `run_seed`."""
    seed_sequence = np.random.SeedSequence(entropy=run_seed, spawn_key=(rank,))
    return np.random.Generator(np.random.PCG64(seed_sequence))


def sample_damping(rng: np.random.Generator, damping_min: float, damping_max: float) -> float:
    """D_MIN + (D_MAX - D_MIN) * U with U uniform in [0, 1)."""
    return damping_min + (damping_max - damping_min) * rng.random()
