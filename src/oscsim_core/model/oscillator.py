# src/oscsim_core/model/oscillator.py
"""
The damped mass-spring system whose ensemble behaviour is simulated.

    m * x'' + d * x' + k * x = 0

written as the first-order system y = (x, v):

    dx/dt = v
    dv/dt = -d/m * v - k/m * x

Everything else in the package treats the model as a black box with the
`(t, y, params) -> dydt` signature, so another dynamical system can be dropped in
by supplying a different right-hand side.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np

logger = logging.getLogger(__name__)

#: Dimension of the oscillator state vector (displacement, velocity).
STATE_DIMENSION = 2


@dataclass(frozen=True)
class ReplicateParameters:
    """
    The physical constants of one replicate. Damping is sampled per replicate,
    stiffness and mass are copied from the run configuration.
    """
    stiffness: float
    damping: float
    mass: float


@dataclass
class OscillatorState:
    """Displacement and velocity of the oscillator at time `t`."""
    y: np.ndarray
    t: float = 0.0

    @classmethod
    def initial(cls, displacement: float, velocity: float) -> "OscillatorState":
        return cls(y=np.array([displacement, velocity], dtype=float), t=0.0)

    @property
    def displacement(self) -> float:
        return float(self.y[0])

    @property
    def velocity(self) -> float:
        return float(self.y[1])


RightHandSide = Callable[[float, np.ndarray, ReplicateParameters], np.ndarray]


def derivative(t: float, y: np.ndarray, params: ReplicateParameters) -> np.ndarray:
    """
    Right-hand side of the damped oscillator.

    Args:
        t: Current time. The system is autonomous, so it is unused.
        y: State vector (x, v).
        params: Stiffness, damping and mass of the replicate.

    Returns:
        The derivative (dx/dt, dv/dt) as a new array.
    """
    k, d, m = params.stiffness, params.damping, params.mass
    return np.array([y[1], -d / m * y[1] - k / m * y[0]], dtype=float)


def jacobian(t: float, y: np.ndarray, params: ReplicateParameters) -> Tuple[np.ndarray, np.ndarray]:
    """
    Jacobian df/dy of the damped oscillator and its explicit time derivative df/dt.

    The system is linear and autonomous, so the Jacobian is constant and df/dt is zero.
    Only the 'exact' stepper uses it.
    """
    k, d, m = params.stiffness, params.damping, params.mass
    dfdy = np.array([[0.0, 1.0],
                     [-k / m, -d / m]], dtype=float)
    dfdt = np.zeros(STATE_DIMENSION, dtype=float)
    return dfdy, dfdt


@dataclass(frozen=True)
class OscillatorModel:
    """Bundles a right-hand side with an optional Jacobian."""
    rhs: RightHandSide = derivative
    jac: Callable[[float, np.ndarray, ReplicateParameters], Tuple[np.ndarray, np.ndarray]] = jacobian
    dimension: int = STATE_DIMENSION


DAMPED_OSCILLATOR = OscillatorModel()
