# src/oscsim_core/integration/__init__.py
from .exceptions import IntegrationError
from .steppers import (
    FixedStepIntegrator,
    RungeKutta4Stepper,
    StepDoublingRK4Stepper,
    ExactLinearStepper,
    STEPPER_REGISTRY,
    create_stepper,
)

__all__ = [
    # Exceptions
    "IntegrationError",
    # Steppers
    "FixedStepIntegrator",
    "RungeKutta4Stepper",
    "StepDoublingRK4Stepper",
    "ExactLinearStepper",
    "STEPPER_REGISTRY",
    "create_stepper",
]
