# src/oscsim_core/model/__init__.py
from .oscillator import (
    STATE_DIMENSION,
    DAMPED_OSCILLATOR,
    OscillatorModel,
    OscillatorState,
    ReplicateParameters,
    derivative,
    jacobian,
)

__all__ = [
    "STATE_DIMENSION",
    "DAMPED_OSCILLATOR",
    "OscillatorModel",
    "OscillatorState",
    "ReplicateParameters",
    "derivative",
    "jacobian",
]
