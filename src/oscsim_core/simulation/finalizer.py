# src/oscsim_core/simulation/finalizer.py
import logging

import numpy as np

from ..io import write_trajectory
from .context import SimulationContext
from .results import EnsembleResult

logger = logging.getLogger(__name__)


def finalize_ensemble(
    context: SimulationContext,
    global_sum: np.ndarray,
    times: np.ndarray,
    seed: int,
    workers: int,
) -> EnsembleResult:
    """
    Turns the reduced global sum into the mean trajectory and persists it.

    Runs on the coordinator only. Divides every element of the global sum by the
    total replicate count R, then writes the time vector and the mean side by side
    if an output path is configured.

    Raises:
        ValueError: If the global sum and the time vector differ in length.
        OutputWriteError: If the output file cannot be written.
    """
    config = context.config
    if global_sum.shape != times.shape:
        raise ValueError(f"Global sum has shape {global_sum.shape}, time vector has {times.shape}.")

    mean = global_sum / float(config.replicates)
    written = None
    if context.output_path is not None:
        written = write_trajectory(context.output_path, times, mean)

    logger.info(f"Mean trajectory over {config.replicates} replicate(s) from {workers} worker(s) finalized.")
    return EnsembleResult(
        times=times,
        mean_displacement=mean,
        replicates=config.replicates,
        workers=workers,
        seed=seed,
        output_path=written,
    )
