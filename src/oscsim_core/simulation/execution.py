# src/oscsim_core/simulation/execution.py
"""
Provides the primary public API for running an ensemble.

`run_ensemble` is a thin facade: it builds the immutable `SimulationContext`,
picks the communicator for the requested backend, runs the worker program, and
turns any diagnosable failure into a single user-facing `SimulationRunError`.
The numerical and collective logic lives in `simulation/engine.py`.
"""
import logging
from pathlib import Path
from typing import Optional

from ..config import RunSettings, SimulationConfig
from ..errors import DiagnosableError, SimulationRunError, format_diagnostic_report
from ..parallel import Communicator, MPICommunicator, SerialCommunicator, launch_local
from .context import SimulationContext
from .engine import EnsembleWorker, run_worker
from .results import EnsembleResult

logger = logging.getLogger(__name__)


def run_ensemble(
    config: SimulationConfig,
    settings: Optional[RunSettings] = None,
    comm: Optional[Communicator] = None,
) -> Optional[EnsembleResult]:
    """
    Runs a complete ensemble and returns the mean trajectory.

    Args:
        config: The validated run configuration.
        settings: Backend, worker count and output destination. Defaults to a single
                  serial worker writing to the default output path.
        comm: An explicit communicator for this worker. If given, `settings.backend`
              is ignored and this process acts as worker `comm.rank` of `comm.size`.

    Returns:
        The `EnsembleResult` on the coordinator. None on every other worker of an
        MPI run or an explicit multi-worker communicator.

    Raises:
        SimulationRunError: A user-friendly, diagnosable error if the run fails at
                            any stage (integration, collectives or output). The
                            original exception is chained for debugging.
    """
    settings = settings if settings is not None else RunSettings()
    output_path = Path(settings.output_path) if settings.output_path is not None else None
    context = SimulationContext(config=config, output_path=output_path)

    try:
        logger.info(
            f"--- Starting ensemble: R={config.replicates}, STEPS={config.steps}, "
            f"H={config.step_size} s, method={config.method} ---"
        )
        if comm is not None:
            result = EnsembleWorker(context, comm).run()
        elif settings.backend == "serial":
            result = EnsembleWorker(context, SerialCommunicator(timeout=settings.timeout)).run()
        elif settings.backend == "local":
            result = launch_local(
                run_worker, settings.workers, args=(context,), timeout=settings.timeout, root=context.root
            )
        else:
            mpi_comm = MPICommunicator(timeout=settings.timeout, reduction=settings.reduction)
            result = EnsembleWorker(context, mpi_comm).run()

        if result is not None:
            logger.info(f"Ensemble run successful (seed {result.seed}, {result.workers} worker(s)).")
        return result

    except DiagnosableError as e:
        logger.error(f"A diagnosable error occurred during the ensemble run: {e}")
        raise SimulationRunError(e.get_diagnostic_report()) from e

    except Exception as e:
        logger.critical(f"An unexpected internal error occurred during the ensemble run: {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Simulation Error Occurred ({type(e).__name__})",
            details=f"The simulator encountered an unexpected internal error: {e}",
            suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
            context={}
        )
        raise SimulationRunError(report) from e
