# tests/conftest.py
import queue
import threading
from typing import Any, Callable, List, Optional, Tuple

import numpy as np
import pytest

from oscsim_core import SimulationConfig, QueueCommunicator


# Common fixture: a small ensemble that runs in milliseconds
@pytest.fixture
def small_config():
    return SimulationConfig(replicates=12, steps=25, seed=1234)


# Randomness disabled: every replicate uses damping 1000 N*s/m
@pytest.fixture
def fixed_damping_config():
    return SimulationConfig(replicates=4, steps=200, damping_min=1000.0, damping_max=1000.0, seed=7)


# A configuration the explicit RK4 scheme cannot integrate (omega*h far outside its stability region)
@pytest.fixture
def diverging_config():
    return SimulationConfig(replicates=3, steps=200, step_size=10.0, seed=3)


def run_threaded(
    size: int,
    fn: Callable[[QueueCommunicator], Any],
    timeout: Optional[float] = None,
) -> Tuple[List[Any], List[Optional[BaseException]]]:
    """
    Runs `fn(comm)` on `size` threads wired together by QueueCommunicators built
    on threading primitives. Returns per-rank results and per-rank exceptions.
    A failing rank aborts the shared barrier, like a failing worker process does.
    """
    barrier = threading.Barrier(size)
    inboxes = [queue.Queue() for _ in range(size)]
    aborted = threading.Event()
    results: List[Any] = [None] * size
    errors: List[Optional[BaseException]] = [None] * size

    def worker(rank):
        comm = QueueCommunicator(rank, size, barrier, inboxes, timeout, aborted)
        try:
            results[rank] = fn(comm)
        except Exception as e:
            errors[rank] = e
            comm.abort()

    threads = [threading.Thread(target=worker, args=(rank,)) for rank in range(size)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results, errors


class _FakeRequest:
    """Minimal stand-in for an mpi4py Request: completes when `ready()` is true."""
    def __init__(self, world, ready, on_complete=None):
        self._world = world
        self._ready = ready
        self._on_complete = on_complete
        self._done = False

    def Test(self):
        with self._world.cond:
            return self._finish_if_ready()

    def Wait(self):
        with self._world.cond:
            self._world.cond.wait_for(self._finish_if_ready, timeout=30)

    def _finish_if_ready(self):
        if not self._done and self._ready():
            if self._on_complete is not None:
                self._on_complete()
            self._done = True
        return self._done


class FakeMPIWorld:
    """
    In-process fake of an MPI world for `size` ranks driven by threads.

    Supports the subset of the mpi4py communicator API used by MPICommunicator:
    Get_rank, Get_size, Ibarrier, Ireduce, Isend, Irecv, bcast and Abort.
    Every collective is matched across ranks by its per-rank call sequence number.
    """
    SUM = object()

    def __init__(self, size: int):
        self.size = size
        self.cond = threading.Condition()
        self.collectives = {}
        self.mailboxes = {}
        self.aborted_with = []

    def comm(self, rank: int) -> "FakeMPIComm":
        return FakeMPIComm(self, rank)


class FakeMPIComm:
    def __init__(self, world: FakeMPIWorld, rank: int):
        self._world = world
        self._rank = rank
        self._sequence = 0

    def Get_rank(self):
        return self._rank

    def Get_size(self):
        return self._world.size

    def _slot(self, name):
        key = (name, self._sequence)
        self._sequence += 1
        with self._world.cond:
            return self._world.collectives.setdefault(key, {})

    def Ibarrier(self):
        slot = self._slot("barrier")
        with self._world.cond:
            slot[self._rank] = True
            self._world.cond.notify_all()
        return _FakeRequest(self._world, lambda: len(slot) == self._world.size)

    def Ireduce(self, sendbuf, recvbuf, op, root):
        assert op is FakeMPIWorld.SUM
        slot = self._slot("reduce")
        with self._world.cond:
            slot[self._rank] = np.array(sendbuf, copy=True)
            self._world.cond.notify_all()

        def complete():
            if self._rank == root:
                total = np.zeros_like(slot[root])
                for r in range(self._world.size):
                    total += slot[r]
                recvbuf[:] = total

        return _FakeRequest(self._world, lambda: len(slot) == self._world.size, complete)

    def Isend(self, buf, dest, tag):
        with self._world.cond:
            self._world.mailboxes.setdefault((self._rank, dest, tag), []).append(np.array(buf, copy=True))
            self._world.cond.notify_all()
        return _FakeRequest(self._world, lambda: True)

    def Irecv(self, buf, source, tag):
        with self._world.cond:
            box = self._world.mailboxes.setdefault((source, self._rank, tag), [])

        def complete():
            buf[:] = box.pop(0)

        return _FakeRequest(self._world, lambda: len(box) > 0, complete)

    def bcast(self, value, root=0):
        slot = self._slot("bcast")
        with self._world.cond:
            if self._rank == root:
                slot["value"] = value
                self._world.cond.notify_all()
            self._world.cond.wait_for(lambda: "value" in slot, timeout=30)
            return slot["value"]

    def Abort(self, errorcode=1):
        self._world.aborted_with.append(errorcode)
