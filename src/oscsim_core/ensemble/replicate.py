# src/oscsim_core/ensemble/replicate.py
import logging
from typing import Optional

import numpy as np

from ..config import SimulationConfig
from ..integration import FixedStepIntegrator, create_stepper
from ..model import OscillatorState, ReplicateParameters

logger = logging.getLogger(__name__)


def time_vector(steps: int, step_size: float) -> np.ndarray:
    """Times t[i] = i * H of the recorded steps. Depends only on STEPS and H."""
    return np.arange(steps, dtype=float) * step_size


def replicate_parameters(config: SimulationConfig, damping: float) -> ReplicateParameters:
    return ReplicateParameters(stiffness=config.stiffness, damping=damping, mass=config.mass)


def simulate_replicate(
    config: SimulationConfig,
    damping: float,
    stepper: Optional[FixedStepIntegrator] = None,
) -> np.ndarray:
    """
    Runs one replicate and returns its displacement at every recorded step.

    The oscillator starts from the configured initial displacement and velocity at
    t=0 and is advanced STEPS-1 times by the fixed step H. The initial displacement
    is recorded too, so the result has length STEPS and lines up with
    `time_vector(config.steps, config.step_size)`.

    Args:
        config: The run configuration.
        damping: The damping coefficient of this replicate.
        stepper: The worker's stepper. A new one for `config.method` if omitted.

    Raises:
        IntegrationError: If any step fails.
    """
    if stepper is None:
        stepper = create_stepper(config.method)
    params = replicate_parameters(config, damping)
    state = OscillatorState.initial(config.initial_displacement, config.initial_velocity)

    displacements = np.empty(config.steps, dtype=float)
    displacements[0] = state.y[0]
    for step in range(1, config.steps):
        stepper.apply_fixed_step(state, config.step_size, params)
        displacements[step] = state.y[0]
    return displacements
