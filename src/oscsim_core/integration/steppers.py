# src/oscsim_core/integration/steppers.py
"""
Fixed-step integrators.

Each stepper advances an `OscillatorState` in place by exactly the requested step.
There is no adaptive fallback: if a step cannot be taken as requested, the stepper
raises `IntegrationError` instead of substituting a different step.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type

import numpy as np
from scipy.linalg import expm

from ..model import DAMPED_OSCILLATOR, OscillatorModel, OscillatorState, ReplicateParameters
from .exceptions import IntegrationError

logger = logging.getLogger(__name__)


class FixedStepIntegrator(ABC):
    """
    Base class of all fixed-step schemes.

    A stepper instance is owned by exactly one worker; any scratch space it keeps
    (e.g. cached propagators) is never shared.
    """
    name: str = ""

    def __init__(self, model: OscillatorModel = DAMPED_OSCILLATOR):
        self.model = model

    def apply_fixed_step(self, state: OscillatorState, h: float, params: ReplicateParameters) -> OscillatorState:
        """
        Advances `state` in place by exactly `h`.

        Raises:
            IntegrationError: If `h` is not a positive finite number or the new state
                              is not finite.
        """
        if not (isinstance(h, (int, float)) and math.isfinite(h) and h > 0):
            raise IntegrationError(
                details=f"The step size must be a positive finite number, got {h!r}.",
                method=self.name, time=state.t, step_size=None
            )
        y_new = self._step(state.t, state.y, h, params)
        if not np.all(np.isfinite(y_new)):
            raise IntegrationError(
                details=f"The state became non-finite ({y_new.tolist()}); the integration diverged.",
                method=self.name, time=state.t, step_size=h
            )
        state.y[:] = y_new
        state.t = state.t + h
        return state

    @abstractmethod
    def _step(self, t: float, y: np.ndarray, h: float, params: ReplicateParameters) -> np.ndarray:
        """Returns the state at t + h. Must not modify `y`."""
        raise NotImplementedError


def _rk4(rhs, t: float, y: np.ndarray, h: float, params: ReplicateParameters) -> np.ndarray:
    k1 = rhs(t, y, params)
    k2 = rhs(t + 0.5 * h, y + 0.5 * h * k1, params)
    k3 = rhs(t + 0.5 * h, y + 0.5 * h * k2, params)
    k4 = rhs(t + h, y + h * k3, params)
    return y + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


class RungeKutta4Stepper(FixedStepIntegrator):
    """Classical explicit 4th-order Runge-Kutta, one four-stage update per step."""
    name = "rk4"

    def _step(self, t, y, h, params):
        return _rk4(self.model.rhs, t, y, h, params)


class StepDoublingRK4Stepper(FixedStepIntegrator):
    """
    Explicit RK4 applied as two half steps per fixed step.

    This matches what GSL's `rk4` stepper returns in fixed-step mode,
    where the two-half-step result is kept and the single full step only feeds an
    error estimate. Error estimation is not needed here, so the full step is skipped.
    """
    name = "rk4-doubling"

    def _step(self, t, y, h, params):
        half = 0.5 * h
        y_mid = _rk4(self.model.rhs, t, y, half, params)
        return _rk4(self.model.rhs, t + half, y_mid, half, params)


class ExactLinearStepper(FixedStepIntegrator):
    """
    Advances a linear, autonomous system by its matrix-exponential propagator.

    y(t + h) = expm(J * h) @ y(t)

    The propagator only depends on the parameters and the step size, so it is
    computed once per replicate and cached in this stepper's scratch space.
    """
    name = "exact"

    def __init__(self, model: OscillatorModel = DAMPED_OSCILLATOR):
        if model.jac is None:
            raise ValueError("The 'exact' stepper requires a model with a Jacobian.")
        super().__init__(model)
        self._propagators: Dict[Tuple[ReplicateParameters, float], np.ndarray] = {}

    def _step(self, t, y, h, params):
        key = (params, h)
        propagator = self._propagators.get(key)
        if propagator is None:
            dfdy, dfdt = self.model.jac(t, y, params)
            if np.any(dfdt != 0.0):
                raise IntegrationError(
                    details="The model has an explicit time dependence; the exact propagator only applies to autonomous linear systems.",
                    method=self.name, time=t, step_size=h
                )
            propagator = expm(np.asarray(dfdy, dtype=float) * h)
            # One entry per replicate is enough; keep the cache from growing over a run.
            self._propagators.clear()
            self._propagators[key] = propagator
        return propagator @ y


STEPPER_REGISTRY: Dict[str, Type[FixedStepIntegrator]] = {
    RungeKutta4Stepper.name: RungeKutta4Stepper,
    StepDoublingRK4Stepper.name: StepDoublingRK4Stepper,
    ExactLinearStepper.name: ExactLinearStepper,
}


def create_stepper(method: str, model: OscillatorModel = DAMPED_OSCILLATOR) -> FixedStepIntegrator:
    """Instantiates the registered stepper for `method`."""
    try:
        stepper_cls = STEPPER_REGISTRY[method]
    except KeyError:
        raise ValueError(f"Unknown integration method '{method}'. Available: {sorted(STEPPER_REGISTRY)}.") from None
    logger.debug(f"Created '{method}' stepper for a {model.dimension}-dimensional model.")
    return stepper_cls(model)
