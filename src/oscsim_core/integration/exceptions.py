# src/oscsim_core/integration/exceptions.py
"""
Defines the diagnosable exception raised when a fixed-step integrator cannot advance.

A failed step is fatal to the whole run: skipping the replicate would silently
change the denominator of the ensemble mean.
"""
from dataclasses import dataclass
from typing import Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class IntegrationError(DiagnosableError):
    """
    Raised when a stepper is asked for an invalid step or produces a non-finite state.
    """
    details: str
    method: str
    time: Optional[float] = None
    step_size: Optional[float] = None
    rank: Optional[int] = None

    def __str__(self):
        at = f" at t={self.time:.6g} s" if self.time is not None else ""
        return f"Integration with '{self.method}' failed{at}: {self.details}"

    def get_diagnostic_report(self) -> str:
        """Generates the diagnostic report for a failed integration step."""
        step = f"{self.step_size:.6g} s" if self.step_size is not None else "N/A"
        return format_diagnostic_report(
            error_type="Fixed-Step Integration Failure",
            details=f"Method '{self.method}' could not advance by the fixed step {step}.\n{self.details}",
            suggestion="The step size is never reduced automatically. Choose a smaller step size, check the oscillator constants for extreme stiffness-to-mass ratios, or select a different method.",
            context={
                'time': f"{self.time:.6g} s" if self.time is not None else None,
                'rank': self.rank,
            }
        )
