# src/oscsim_core/config/config.py
"""
Immutable run configuration.

`SimulationConfig` holds everything every worker needs to simulate its share of the
ensemble and is identical on all workers. `RunSettings` holds the launch-level
choices (backend, worker count, output destination) that only the launcher and the
coordinator care about. Both validate themselves on construction, so an invalid
configuration is rejected before any worker begins integrating.
"""
import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .. import constants
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

BACKENDS = ("serial", "local", "mpi")
REDUCTIONS = ("collective", "point-to-point")


def _require_finite(name: str, value: float):
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
        raise ConfigurationError(f"'{name}' must be a finite number, got {value!r}.", field=name, user_input=value)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Process-wide, immutable configuration of one ensemble run.

    Attributes:
        replicates: Total replicate count R across all workers.
        steps: Number of recorded time steps STEPS, including the initial state.
        step_size: Fixed integration step H in seconds.
        stiffness: Spring stiffness K in N/m.
        mass: Oscillating mass M in kg.
        damping_min: Lower bound D_MIN of the uniform damping distribution in N*s/m.
        damping_max: Upper bound D_MAX. Equal bounds give a fixed damping value.
        initial_displacement: Displacement of every replicate at t=0, in m.
        initial_velocity: Velocity of every replicate at t=0, in m/s.
        method: Name of the fixed-step integration method.
        seed: Run-level seed for the per-worker random streams. None draws fresh entropy.
    """
    replicates: int = constants.DEFAULT_REPLICATES
    steps: int = constants.DEFAULT_STEPS
    step_size: float = constants.DEFAULT_STEP_SIZE_S
    stiffness: float = constants.DEFAULT_STIFFNESS_N_PER_M
    mass: float = constants.DEFAULT_MASS_KG
    damping_min: float = constants.DEFAULT_DAMPING_MIN_NS_PER_M
    damping_max: float = constants.DEFAULT_DAMPING_MAX_NS_PER_M
    initial_displacement: float = constants.DEFAULT_INITIAL_DISPLACEMENT_M
    initial_velocity: float = constants.DEFAULT_INITIAL_VELOCITY_M_PER_S
    method: str = constants.DEFAULT_METHOD
    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Checks every setting for semantic validity.

        Raises:
            ConfigurationError: On the first invalid setting found.
        """
        for name in ("replicates", "steps"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(f"'{name}' must be an integer, got {value!r}.", field=name, user_input=value)
        if self.replicates < 1:
            raise ConfigurationError(
                f"The replicate count must be at least 1, got {self.replicates}. "
                "The mean trajectory is undefined for an empty ensemble.",
                field="replicates", user_input=self.replicates
            )
        if self.steps < 1:
            raise ConfigurationError(
                f"The step count must be at least 1 (the initial state), got {self.steps}.",
                field="steps", user_input=self.steps
            )

        for name in ("step_size", "stiffness", "mass", "damping_min", "damping_max",
                     "initial_displacement", "initial_velocity"):
            _require_finite(name, getattr(self, name))

        if self.step_size <= 0:
            raise ConfigurationError(f"The step size must be positive, got {self.step_size} s.", field="step_size", user_input=self.step_size)
        if self.mass <= 0:
            raise ConfigurationError(f"The mass must be positive, got {self.mass} kg.", field="mass", user_input=self.mass)
        if self.damping_min > self.damping_max:
            raise ConfigurationError(
                f"The damping lower bound ({self.damping_min}) exceeds the upper bound ({self.damping_max}).",
                field="damping_min", user_input=self.damping_min
            )

        if self.seed is not None and (not isinstance(self.seed, int) or isinstance(self.seed, bool) or self.seed < 0):
            raise ConfigurationError(f"The seed must be a non-negative integer, got {self.seed!r}.", field="seed", user_input=self.seed)

        # Imported here: the stepper registry lives with the integrators.
        from ..integration.steppers import STEPPER_REGISTRY
        if self.method not in STEPPER_REGISTRY:
            raise ConfigurationError(
                f"Unknown integration method '{self.method}'. Available: {sorted(STEPPER_REGISTRY)}.",
                field="method", user_input=self.method
            )

    @property
    def fixed_damping(self) -> bool:
        """True if the damping distribution is degenerate, i.e. sampling is disabled."""
        return self.damping_min == self.damping_max

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RunSettings:
    """
    Launch-level settings of a run.

    Attributes:
        backend: 'serial' (one in-process worker), 'local' (worker processes on this
                 host) or 'mpi' (one worker per MPI rank).
        workers: Worker count for the 'local' backend. Ignored by 'serial' (always 1)
                 and 'mpi' (taken from the MPI world size).
        reduction: MPI reduction strategy, 'collective' or 'point-to-point'.
        output_path: Destination of the mean trajectory file. None keeps the result in memory only.
        timeout: Deadline in seconds for the barrier and the reduction. None waits forever.
    """
    backend: str = constants.DEFAULT_BACKEND
    workers: int = 1
    reduction: str = constants.DEFAULT_REDUCTION
    output_path: Optional[str] = constants.DEFAULT_OUTPUT_PATH
    timeout: Optional[float] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend '{self.backend}'. Available: {list(BACKENDS)}.", field="backend", user_input=self.backend)
        if self.reduction not in REDUCTIONS:
            raise ConfigurationError(f"Unknown reduction strategy '{self.reduction}'. Available: {list(REDUCTIONS)}.", field="reduction", user_input=self.reduction)
        if not isinstance(self.workers, int) or isinstance(self.workers, bool) or self.workers < 1:
            raise ConfigurationError(f"The worker count must be a positive integer, got {self.workers!r}.", field="workers", user_input=self.workers)
        if self.backend == "serial" and self.workers != 1:
            raise ConfigurationError(
                f"The 'serial' backend runs exactly one worker, but {self.workers} were requested.",
                field="workers", user_input=self.workers
            )
        if self.timeout is not None:
            _require_finite("timeout", self.timeout)
            if self.timeout <= 0:
                raise ConfigurationError(f"The collective timeout must be positive, got {self.timeout} s.", field="timeout", user_input=self.timeout)
        if self.output_path is not None and not str(self.output_path):
            raise ConfigurationError("The output path must not be empty.", field="output_path")
