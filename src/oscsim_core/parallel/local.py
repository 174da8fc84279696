# src/oscsim_core/parallel/local.py
"""
Single-host worker pool built on `multiprocessing`.

Each worker is a separate process with its own memory. Workers meet at one shared
barrier and exchange vectors through per-rank message queues; the coordinator
receives every other worker's contribution in its inbox and sums them in rank
order. The launcher supervises the pool: the first failing worker aborts the
shared barrier so the others fail fast, and the whole pool is torn down.
"""
import logging
import multiprocessing
import queue
import sys
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from ..constants import COORDINATOR_RANK
from ..errors import DiagnosableError, format_diagnostic_report
from ..log_config import setup_logging
from .communicator import Communicator
from .exceptions import CollectiveError, CollectiveTimeoutError, WorkerFailureError

logger = logging.getLogger(__name__)

_REDUCE = "reduce"
_BROADCAST = "broadcast"

#: Interval at which the launcher checks on its worker processes.
SUPERVISOR_POLL_INTERVAL_S: float = 0.1


class QueueCommunicator(Communicator):
    """
    Communicator over a shared barrier and one inbox queue per rank.

    Works with both `multiprocessing` and `threading` primitives (`Barrier`,
    `Queue`, `Event`), since both raise `threading.BrokenBarrierError` and `queue.Empty`.

    `aborted` is an event shared by all ranks. It is set when a failing worker
    aborts an intact barrier, so a barrier broken by a failure can be told apart
    from one broken because a peer's wait ran past the deadline.
    """
    def __init__(
        self,
        rank: int,
        size: int,
        barrier,
        inboxes: Sequence,
        timeout: Optional[float] = None,
        aborted=None,
    ):
        super().__init__(rank, size, timeout)
        if len(inboxes) != size:
            raise ValueError(f"Expected {size} inboxes, got {len(inboxes)}.")
        self._barrier = barrier
        self._inboxes = inboxes
        self._aborted = aborted if aborted is not None else threading.Event()

    def barrier(self):
        try:
            self._barrier.wait(self.timeout)
        except threading.BrokenBarrierError:
            if self.timeout is not None and not self._aborted.is_set():
                raise CollectiveTimeoutError(
                    operation="barrier",
                    details=f"Not all {self.size} workers arrived at the barrier.",
                    rank=self.rank, timeout=self.timeout
                ) from None
            raise CollectiveError(
                operation="barrier",
                details="The barrier was aborted because another worker failed.",
                rank=self.rank
            ) from None

    def reduce_sum(self, vector, root=COORDINATOR_RANK):
        self._check_root(root)
        local = self._as_send_buffer(vector)
        if self.rank != root:
            self._inboxes[root].put((_REDUCE, self.rank, local.copy()))
            return None

        contributions: Dict[int, np.ndarray] = {root: local}
        deadline = self._deadline()
        while len(contributions) < self.size:
            tag, source, payload = self._receive("reduce", deadline)
            if tag != _REDUCE or source in contributions:
                raise CollectiveError(
                    operation="reduce",
                    details=f"Unexpected '{tag}' message from rank {source} during the reduction.",
                    rank=self.rank
                )
            if payload.shape != local.shape:
                raise CollectiveError(
                    operation="reduce",
                    details=f"Rank {source} contributed a vector of shape {payload.shape}, expected {local.shape}.",
                    rank=self.rank
                )
            contributions[source] = payload

        total = np.zeros_like(local)
        for source in range(self.size):
            total += contributions[source]
        return total

    def broadcast(self, value, root=COORDINATOR_RANK):
        self._check_root(root)
        if self.rank == root:
            for destination in range(self.size):
                if destination != root:
                    self._inboxes[destination].put((_BROADCAST, root, value))
            return value
        tag, source, payload = self._receive("broadcast", self._deadline())
        if tag != _BROADCAST or source != root:
            raise CollectiveError(
                operation="broadcast",
                details=f"Unexpected '{tag}' message from rank {source} while waiting for the broadcast.",
                rank=self.rank
            )
        return payload

    def abort(self):
        # A barrier already broken by a missed deadline keeps that cause.
        if not self._barrier.broken:
            self._aborted.set()
        self._barrier.abort()

    def _deadline(self) -> Optional[float]:
        return None if self.timeout is None else time.monotonic() + self.timeout

    def _receive(self, operation: str, deadline: Optional[float]):
        inbox = self._inboxes[self.rank]
        if deadline is None:
            return inbox.get()
        try:
            return inbox.get(timeout=max(0.0, deadline - time.monotonic()))
        except queue.Empty:
            raise CollectiveTimeoutError(
                operation=operation,
                details="Not every worker delivered its message in time.",
                rank=self.rank, timeout=self.timeout
            ) from None


WorkerTarget = Callable[..., Any]


def _worker_entry(
    target: WorkerTarget,
    rank: int,
    size: int,
    barrier,
    inboxes: List,
    aborted,
    results,
    timeout: Optional[float],
    log_level: int,
    args: tuple,
):
    """Process entry point of one local worker."""
    setup_logging(log_level, rank=rank)
    comm = QueueCommunicator(rank, size, barrier, inboxes, timeout, aborted)
    try:
        value = target(comm, *args)
    except DiagnosableError as e:
        logger.error(f"Worker {rank} failed: {e}")
        results.put(("error", rank, e.get_diagnostic_report()))
        comm.abort()
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Worker {rank} hit an unexpected internal error: {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"Unexpected Worker Error ({type(e).__name__})",
            details=f"Worker {rank} encountered an unexpected internal error: {e}",
            suggestion="This may be a bug. Review the traceback in the worker log.",
            context={'rank': rank}
        )
        results.put(("error", rank, report))
        comm.abort()
        sys.exit(1)
    results.put(("ok", rank, value))


def launch_local(
    target: WorkerTarget,
    size: int,
    args: tuple = (),
    timeout: Optional[float] = None,
    root: int = COORDINATOR_RANK,
    log_level: Optional[int] = None,
) -> Any:
    """
    Runs `target(comm, *args)` in `size` worker processes and returns the root's value.

    Args:
        target: A picklable, module-level function. It receives a
                `QueueCommunicator` as its first argument.
        size: Number of worker processes W.
        args: Extra positional arguments passed to every worker.
        timeout: Collective deadline in seconds passed to every communicator.
        root: Rank whose return value is returned.
        log_level: Logging level for the workers; defaults to the current root level.

    Raises:
        WorkerFailureError: If any worker reports a failure or dies.
    """
    if size < 1:
        raise ValueError(f"Worker count must be at least 1, got {size}.")
    if log_level is None:
        log_level = logging.getLogger().level

    ctx = multiprocessing.get_context()
    barrier = ctx.Barrier(size)
    inboxes = [ctx.Queue() for _ in range(size)]
    aborted = ctx.Event()
    results = ctx.Queue()
    processes = [
        ctx.Process(
            target=_worker_entry,
            args=(target, rank, size, barrier, inboxes, aborted, results, timeout, log_level, args),
            name=f"oscsim-worker-{rank}",
        )
        for rank in range(size)
    ]
    logger.info(f"Starting {size} local worker process(es).")
    for process in processes:
        process.start()

    values: Dict[int, Any] = {}
    failure: Optional[WorkerFailureError] = None
    try:
        while len(values) < size:
            try:
                status, rank, payload = results.get(timeout=SUPERVISOR_POLL_INTERVAL_S)
            except queue.Empty:
                failure = _find_silent_death(processes, values)
                if failure is None:
                    continue
                # A dead worker's own report may still be in flight.
                try:
                    status, rank, payload = results.get(timeout=SUPERVISOR_POLL_INTERVAL_S)
                except queue.Empty:
                    break
                if status == "ok":
                    values[rank] = payload
                    failure = None
                    continue
            if status == "error":
                failure = WorkerFailureError(
                    rank=rank, details="The worker reported a failure.", worker_report=payload
                )
                break
            values[rank] = payload
    finally:
        if failure is not None or len(values) < size:
            if not barrier.broken:
                aborted.set()
            barrier.abort()
            for process in processes:
                if process.is_alive():
                    process.terminate()
        for process in processes:
            process.join()

    if failure is not None:
        logger.error(f"Local worker pool failed: {failure}")
        raise failure
    logger.info(f"All {size} local worker process(es) completed.")
    return values[root]


def _find_silent_death(processes: List, values: Dict[int, Any]) -> Optional[WorkerFailureError]:
    """Detects a worker that exited without sending its result."""
    for rank, process in enumerate(processes):
        if rank in values or process.exitcode is None:
            continue
        if process.exitcode != 0:
            return WorkerFailureError(
                rank=rank, details="The worker process died without reporting a result.",
                exitcode=process.exitcode
            )
    return None
