# src/oscsim_core/parallel/exceptions.py
"""
Defines diagnosable exceptions for the collective operations between workers.

The barrier and the reduction are all-or-nothing: if any worker fails to take
part, or the configured deadline passes, the collective fails on every worker
that can still observe it, and the run produces no result.
"""
from dataclasses import dataclass
from typing import Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class CollectiveError(DiagnosableError):
    """Raised when a barrier, reduction or broadcast cannot complete."""
    operation: str
    details: str
    rank: Optional[int] = None

    def __str__(self):
        return f"Collective '{self.operation}' failed on rank {self.rank}: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Collective Operation Failed",
            details=f"The '{self.operation}' collective could not complete.\n{self.details}",
            suggestion="Another worker most likely failed before reaching this point. Look for its own diagnostic report in the log; the whole run is discarded.",
            context={'rank': self.rank}
        )


@dataclass()
class CollectiveTimeoutError(CollectiveError):
    """Raised when a collective does not complete before the configured deadline."""
    timeout: Optional[float] = None

    def __str__(self):
        return f"Collective '{self.operation}' on rank {self.rank} exceeded its deadline of {self.timeout} s: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Collective Deadline Exceeded",
            details=(
                f"The '{self.operation}' collective did not complete within {self.timeout} s.\n"
                f"{self.details}"
            ),
            suggestion="A worker is stalled or was lost. Increase the timeout if the replicates are legitimately slow, otherwise check the other workers' logs.",
            context={'rank': self.rank}
        )


@dataclass()
class WorkerFailureError(DiagnosableError):
    """
    Raised by the local launcher when one of its worker processes fails. It wraps the
    worker's own diagnostic report (if the worker managed to send one) with the
    rank and exit status of the process.
    """
    rank: int
    details: str
    worker_report: Optional[str] = None
    exitcode: Optional[int] = None

    def __str__(self):
        return f"Worker {self.rank} failed: {self.details}"

    def get_diagnostic_report(self) -> str:
        details = self.details
        if self.exitcode is not None:
            details += f"\nProcess exit code: {self.exitcode}"
        if self.worker_report:
            details += f"\n\n--- Details of the Root Cause ---\n{self.worker_report}"
        return format_diagnostic_report(
            error_type="Worker Failure",
            details=details,
            suggestion="Address the root cause reported by the failing worker. The remaining workers were stopped and no result was written.",
            context={'rank': self.rank}
        )
