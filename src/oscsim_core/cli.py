# src/oscsim_core/cli.py
"""
Command-line entry point.

    oscsim --config run.yaml
    oscsim --replicates 1000 --backend local --workers 4 --output daten.dat
    mpirun -n 4 oscsim --backend mpi --seed 42

Exit codes: 0 on success, 2 for a rejected configuration, 1 for any other failure.
"""
import argparse
import logging
import sys
from typing import Any, Dict, List, Optional, Union

from .config import BACKENDS, REDUCTIONS, ConfigurationError, load_config
from .errors import SimulationRunError
from .integration import STEPPER_REGISTRY
from .log_config import setup_logging
from .parallel import MPICommunicator
from .simulation import run_ensemble

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_RUN_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _number_or_quantity(text: str) -> Union[float, str]:
    """Plain numbers are SI values; anything else is handed to pint as a quantity string."""
    try:
        return float(text)
    except ValueError:
        return text


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oscsim",
        description="Ensemble-averaged trajectory of a damped oscillator with uniformly random damping.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--output", default=None, help="trajectory output file (default: daten.dat)")

    sim = parser.add_argument_group("simulation")
    sim.add_argument("--replicates", type=int, default=None, help="total replicate count R")
    sim.add_argument("--steps", type=int, default=None, help="recorded time steps per replicate")
    sim.add_argument("--step-size", type=_number_or_quantity, default=None, help="fixed step, seconds or e.g. '10 ms'")
    sim.add_argument("--method", choices=sorted(STEPPER_REGISTRY), default=None, help="fixed-step integration method")
    sim.add_argument("--seed", type=int, default=None, help="run seed; drawn from OS entropy if omitted")

    osc = parser.add_argument_group("oscillator")
    osc.add_argument("--stiffness", type=_number_or_quantity, default=None, help="N/m or e.g. '9 kN/m'")
    osc.add_argument("--mass", type=_number_or_quantity, default=None, help="kg or e.g. '450 kg'")
    osc.add_argument("--damping-min", type=_number_or_quantity, default=None, help="N*s/m")
    osc.add_argument("--damping-max", type=_number_or_quantity, default=None, help="N*s/m")

    par = parser.add_argument_group("parallel")
    par.add_argument("--backend", choices=BACKENDS, default=None, help="worker backend (default: serial)")
    par.add_argument("--workers", type=int, default=None, help="worker processes for the 'local' backend")
    par.add_argument("--timeout", type=_number_or_quantity, default=None, help="collective deadline, seconds")
    par.add_argument("--reduction", choices=REDUCTIONS, default=None, help="MPI reduction strategy")

    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    return {
        "simulation": {
            "replicates": args.replicates,
            "steps": args.steps,
            "step_size": args.step_size,
            "method": args.method,
            "seed": args.seed,
        },
        "oscillator": {
            "stiffness": args.stiffness,
            "mass": args.mass,
            "damping_min": args.damping_min,
            "damping_max": args.damping_max,
        },
        "parallel": {
            "backend": args.backend,
            "workers": args.workers,
            "timeout": args.timeout,
            "reduction": args.reduction,
        },
        "output": {"path": args.output},
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    level = getattr(logging, args.log_level)
    setup_logging(level)

    try:
        config, settings = load_config(args.config, overrides_from_args(args))
    except ConfigurationError as e:
        logger.error(e.get_diagnostic_report())
        return EXIT_CONFIG_ERROR

    comm = None
    if settings.backend == "mpi":
        comm = MPICommunicator(timeout=settings.timeout, reduction=settings.reduction)
        setup_logging(level, rank=comm.rank)

    try:
        result = run_ensemble(config, settings, comm=comm)
    except SimulationRunError as e:
        logger.error(str(e))
        if comm is not None and comm.size > 1:
            # Peers may be blocked in a collective; take the whole job down.
            comm.abort(EXIT_RUN_FAILURE)
        return EXIT_RUN_FAILURE

    if result is not None:
        destination = result.output_path if result.output_path is not None else "memory"
        logger.info(
            f"Mean of {result.replicates} replicate(s) over {result.steps} step(s) "
            f"written to {destination} (seed {result.seed})."
        )
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
