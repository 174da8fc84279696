# src/oscsim_core/ensemble/partition.py
"""
Splits a global replicate count across a fixed number of workers.

Every worker gets floor(R / W) replicates; the R mod W left over go one each to
the highest-indexed workers. Coverage is exact and no two workers differ by more
than one replicate.
"""
import logging
from typing import List

logger = logging.getLogger(__name__)


def _check(total_replicates: int, num_workers: int):
    if total_replicates < 0:
        raise ValueError(f"Replicate count must be non-negative, got {total_replicates}.")
    if num_workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {num_workers}.")


def local_replicate_count(total_replicates: int, num_workers: int, rank: int) -> int:
    """
    Number of replicates worker `rank` runs.

    Workers with rank >= W - (R mod W) receive one extra replicate. When R < W the
    low ranks receive zero; they still take part in the reduction.
    """
    _check(total_replicates, num_workers)
    if not 0 <= rank < num_workers:
        raise ValueError(f"Rank {rank} is outside [0, {num_workers}).")
    base, remainder = divmod(total_replicates, num_workers)
    if remainder > 0 and rank >= num_workers - remainder:
        return base + 1
    return base


def partition_counts(total_replicates: int, num_workers: int) -> List[int]:
    """Local replicate counts of all workers, indexed by rank."""
    return [local_replicate_count(total_replicates, num_workers, r) for r in range(num_workers)]


def replicate_range(total_replicates: int, num_workers: int, rank: int) -> range:
    """
    Half-open range of global replicate indices owned by `rank`.

    Ranges are contiguous in rank order, disjoint, and together cover [0, R).
    """
    _check(total_replicates, num_workers)
    if not 0 <= rank < num_workers:
        raise ValueError(f"Rank {rank} is outside [0, {num_workers}).")
    base, remainder = divmod(total_replicates, num_workers)
    first_extra = num_workers - remainder
    start = rank * base + max(0, rank - first_extra)
    return range(start, start + local_replicate_count(total_replicates, num_workers, rank))
