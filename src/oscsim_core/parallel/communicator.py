# src/oscsim_core/parallel/communicator.py
"""
The message-passing contract between ensemble workers.

Workers never touch each other's memory. The only cross-worker operations are:

- `barrier()`: block until every worker has arrived.
- `reduce_sum(vector, root)`: elementwise sum of every worker's vector, delivered
  to `root` only. Every other worker gets None.
- `broadcast(value, root)`: `root`'s value, delivered to every worker.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from ..constants import COORDINATOR_RANK

logger = logging.getLogger(__name__)


class Communicator(ABC):
    """
    Base class of all worker communicators.

    Attributes:
        rank: Zero-based index of this worker.
        size: Total number of workers W.
        timeout: Deadline in seconds for each collective, or None to wait forever.
    """
    def __init__(self, rank: int, size: int, timeout: Optional[float] = None):
        if size < 1:
            raise ValueError(f"Communicator size must be at least 1, got {size}.")
        if not 0 <= rank < size:
            raise ValueError(f"Rank {rank} is outside [0, {size}).")
        self.rank = rank
        self.size = size
        self.timeout = timeout

    def is_root(self, root: int = COORDINATOR_RANK) -> bool:
        return self.rank == root

    @abstractmethod
    def barrier(self):
        """Blocks until all workers have called `barrier`."""
        raise NotImplementedError

    @abstractmethod
    def reduce_sum(self, vector: np.ndarray, root: int = COORDINATOR_RANK) -> Optional[np.ndarray]:
        """Elementwise sum over all workers, returned on `root` only."""
        raise NotImplementedError

    @abstractmethod
    def broadcast(self, value: Any, root: int = COORDINATOR_RANK) -> Any:
        """Returns `root`'s `value` on every worker."""
        raise NotImplementedError

    def abort(self):
        """Releases any peers blocked in a collective so they fail instead of waiting."""

    def _check_root(self, root: int):
        if not 0 <= root < self.size:
            raise ValueError(f"Root rank {root} is outside [0, {self.size}).")

    @staticmethod
    def _as_send_buffer(vector: np.ndarray) -> np.ndarray:
        buffer = np.ascontiguousarray(vector, dtype=float)
        if buffer.ndim != 1:
            raise ValueError(f"Only 1-D vectors can be reduced, got shape {buffer.shape}.")
        return buffer

    def __repr__(self):
        return f"{type(self).__name__}(rank={self.rank}, size={self.size}, timeout={self.timeout})"


class SerialCommunicator(Communicator):
    """The trivial communicator of a single in-process worker."""
    def __init__(self, timeout: Optional[float] = None):
        super().__init__(rank=0, size=1, timeout=timeout)

    def barrier(self):
        pass

    def reduce_sum(self, vector, root=COORDINATOR_RANK):
        self._check_root(root)
        return self._as_send_buffer(vector).copy()

    def broadcast(self, value, root=COORDINATOR_RANK):
        self._check_root(root)
        return value
