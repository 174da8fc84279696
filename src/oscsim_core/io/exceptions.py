# src/oscsim_core/io/exceptions.py
from dataclasses import dataclass
from pathlib import Path

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class OutputWriteError(DiagnosableError):
    """Raised when the mean trajectory cannot be written. No partial file is left behind."""
    details: str
    file_path: Path

    def __str__(self):
        return f"Cannot write trajectory file '{self.file_path}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Output File Error",
            details=self.details,
            suggestion="Ensure the destination directory exists and is writable, and that there is enough free space.",
            context={'source_file': self.file_path}
        )
