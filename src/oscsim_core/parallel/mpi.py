# src/oscsim_core/parallel/mpi.py
"""
MPI communicator backed by `mpi4py`.

One worker per MPI rank. All waits go through non-blocking requests so that a
configured deadline can be enforced; MPI itself has no collective timeout.
"""
import logging
import time
from typing import Any, Optional

import numpy as np

from ..config import REDUCTIONS
from ..constants import COLLECTIVE_POLL_INTERVAL_S, COORDINATOR_RANK
from .communicator import Communicator
from .exceptions import CollectiveTimeoutError

logger = logging.getLogger(__name__)

#: Message tag of the point-to-point reduction.
REDUCE_TAG = 0


class MPICommunicator(Communicator):
    """
    Wraps an `mpi4py` communicator.

    Args:
        comm: The MPI communicator. Defaults to `MPI.COMM_WORLD`.
        timeout: Deadline in seconds for the barrier and the reduction.
        reduction: 'collective' uses a single MPI Reduce with SUM; 'point-to-point'
                   has the root receive every other rank's vector and sum them in
                   rank order.
        sum_op: The reduction operator. Defaults to `MPI.SUM`.
    """
    def __init__(
        self,
        comm=None,
        timeout: Optional[float] = None,
        reduction: str = "collective",
        sum_op=None,
    ):
        if comm is None or sum_op is None:
            from mpi4py import MPI
            comm = MPI.COMM_WORLD if comm is None else comm
            sum_op = MPI.SUM if sum_op is None else sum_op
        if reduction not in REDUCTIONS:
            raise ValueError(f"Unknown reduction strategy '{reduction}'. Available: {list(REDUCTIONS)}.")
        super().__init__(rank=comm.Get_rank(), size=comm.Get_size(), timeout=timeout)
        self._comm = comm
        self._sum_op = sum_op
        self.reduction = reduction
        logger.debug(f"MPICommunicator ready: rank {self.rank} of {self.size}, reduction={reduction}.")

    def barrier(self):
        self._wait(self._comm.Ibarrier(), "barrier")

    def reduce_sum(self, vector, root=COORDINATOR_RANK):
        self._check_root(root)
        sendbuf = self._as_send_buffer(vector)
        if self.reduction == "collective":
            return self._reduce_collective(sendbuf, root)
        return self._reduce_point_to_point(sendbuf, root)

    def broadcast(self, value: Any, root=COORDINATOR_RANK) -> Any:
        self._check_root(root)
        return self._comm.bcast(value, root=root)

    def abort(self, errorcode: int = 1):
        logger.critical(f"Aborting all {self.size} MPI ranks with error code {errorcode}.")
        self._comm.Abort(errorcode)

    def _reduce_collective(self, sendbuf: np.ndarray, root: int) -> Optional[np.ndarray]:
        recvbuf = np.empty_like(sendbuf) if self.rank == root else None
        request = self._comm.Ireduce(sendbuf, recvbuf, op=self._sum_op, root=root)
        self._wait(request, "reduce")
        return recvbuf

    def _reduce_point_to_point(self, sendbuf: np.ndarray, root: int) -> Optional[np.ndarray]:
        if self.rank != root:
            self._wait(self._comm.Isend(sendbuf, dest=root, tag=REDUCE_TAG), "reduce")
            return None
        total = np.zeros_like(sendbuf)
        for source in range(self.size):
            if source == root:
                total += sendbuf
                continue
            received = np.empty_like(sendbuf)
            self._wait(self._comm.Irecv(received, source=source, tag=REDUCE_TAG), "reduce")
            total += received
        return total

    def _wait(self, request, operation: str):
        if self.timeout is None:
            request.Wait()
            return
        deadline = time.monotonic() + self.timeout
        while not request.Test():
            if time.monotonic() >= deadline:
                raise CollectiveTimeoutError(
                    operation=operation,
                    details=f"Not all {self.size} MPI ranks took part in time.",
                    rank=self.rank, timeout=self.timeout
                )
            time.sleep(COLLECTIVE_POLL_INTERVAL_S)
