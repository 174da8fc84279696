# src/oscsim_core/simulation/engine.py
"""
Defines the `EnsembleWorker`, the program every worker runs.

All workers execute the same code on disjoint replicate ranges:

1. Agree on the run seed (the coordinator draws one if none is configured).
2. Simulate the local replicates and sum their displacement sequences.
3. Meet at the barrier.
4. Take part in the sum-reduction towards the coordinator.
5. The coordinator alone turns the global sum into the mean and writes it.
"""
import logging
from typing import Optional

from ..ensemble import (
    LocalAccumulator,
    fresh_run_seed,
    local_replicate_count,
    replicate_range,
    sample_damping,
    simulate_replicate,
    time_vector,
    worker_generator,
)
from ..integration import FixedStepIntegrator, IntegrationError, create_stepper
from ..parallel import Communicator
from .context import SimulationContext
from .finalizer import finalize_ensemble
from .results import EnsembleResult

logger = logging.getLogger(__name__)


class EnsembleWorker:
    """
    Runs one worker's share of the ensemble and its side of the collectives.

    The worker owns its stepper, random stream and accumulator; nothing is shared
    with other workers except through the communicator.
    """
    def __init__(
        self,
        context: SimulationContext,
        comm: Communicator,
        stepper: Optional[FixedStepIntegrator] = None,
    ):
        self.context = context
        self.config = context.config
        self.comm = comm
        self.stepper = stepper if stepper is not None else create_stepper(self.config.method)

    def run(self) -> Optional[EnsembleResult]:
        """
        Executes the worker program.

        Returns:
            The `EnsembleResult` on the coordinator, None on every other worker.

        Raises:
            IntegrationError: If a replicate cannot be integrated.
            CollectiveError: If the barrier or the reduction fails.
            OutputWriteError: If the coordinator cannot write the output.
        """
        run_seed = self.resolve_seed()
        local_count = local_replicate_count(self.config.replicates, self.comm.size, self.comm.rank)
        owned = replicate_range(self.config.replicates, self.comm.size, self.comm.rank)
        logger.debug(f"Rank {self.comm.rank}: l_rep={local_count} (replicates {owned.start}..{owned.stop - 1}).")

        accumulator = self.simulate_local(run_seed, local_count)

        self.comm.barrier()
        global_sum = self.comm.reduce_sum(accumulator.partial_sum, root=self.context.root)
        if not self.comm.is_root(self.context.root):
            return None

        times = time_vector(self.config.steps, self.config.step_size)
        return finalize_ensemble(self.context, global_sum, times, seed=run_seed, workers=self.comm.size)

    def resolve_seed(self) -> int:
        """Returns the run seed, identical on every worker."""
        if self.config.seed is not None:
            return self.config.seed
        proposal = fresh_run_seed() if self.comm.is_root(self.context.root) else None
        run_seed = self.comm.broadcast(proposal, root=self.context.root)
        if self.comm.is_root(self.context.root):
            logger.info(f"No seed configured; drew run seed {run_seed}.")
        return run_seed

    def simulate_local(self, run_seed: int, local_count: int) -> LocalAccumulator:
        """Simulates `local_count` replicates and returns their running sum."""
        rng = worker_generator(run_seed, self.comm.rank)
        accumulator = LocalAccumulator(self.config.steps)
        for _ in range(local_count):
            damping = sample_damping(rng, self.config.damping_min, self.config.damping_max)
            try:
                displacements = simulate_replicate(self.config, damping, self.stepper)
            except IntegrationError as e:
                e.rank = self.comm.rank
                logger.error(f"Replicate with damping {damping:.6g} failed on rank {self.comm.rank}: {e}")
                raise
            accumulator.add(displacements)
        logger.debug(f"Rank {self.comm.rank}: accumulated {accumulator.count} replicate(s).")
        return accumulator


def run_worker(comm: Communicator, context: SimulationContext) -> Optional[EnsembleResult]:
    """Module-level worker entry point, as required by process-based launchers."""
    return EnsembleWorker(context, comm).run()
