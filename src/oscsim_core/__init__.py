# src/oscsim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("OscSim Core package initialized.")

from .units import ureg, pint, Quantity
from .config import SimulationConfig, RunSettings, ConfigParser, load_config, ConfigurationError, ConfigSchemaError
from .model import OscillatorModel, OscillatorState, ReplicateParameters, derivative, jacobian
from .integration import FixedStepIntegrator, IntegrationError, create_stepper
from .ensemble import LocalAccumulator, local_replicate_count, partition_counts, simulate_replicate, time_vector
from .parallel import (
    Communicator, SerialCommunicator, QueueCommunicator, MPICommunicator,
    CollectiveError, CollectiveTimeoutError, WorkerFailureError,
)
from .io import write_trajectory, read_trajectory, OutputWriteError
from .simulation import run_ensemble, EnsembleResult, EnsembleWorker
from .errors import OscSimError, SimulationRunError

__all__ = [
    # Units
    "ureg", "pint", "Quantity",
    # Configuration
    "SimulationConfig", "RunSettings", "ConfigParser", "load_config",
    # Model & Integration
    "OscillatorModel", "OscillatorState", "ReplicateParameters", "derivative", "jacobian",
    "FixedStepIntegrator", "create_stepper",
    # Ensemble
    "LocalAccumulator", "local_replicate_count", "partition_counts", "simulate_replicate", "time_vector",
    # Parallel
    "Communicator", "SerialCommunicator", "QueueCommunicator", "MPICommunicator",
    # I/O
    "write_trajectory", "read_trajectory",
    # Simulation
    "run_ensemble", "EnsembleResult", "EnsembleWorker",
    # Errors
    "OscSimError", "SimulationRunError", "ConfigurationError", "ConfigSchemaError", "IntegrationError",
    "CollectiveError", "CollectiveTimeoutError", "WorkerFailureError", "OutputWriteError",
]
