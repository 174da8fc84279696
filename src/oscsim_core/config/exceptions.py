# src/oscsim_core/config/exceptions.py
"""
Defines custom, diagnosable exceptions for configuration loading and validation.

Every problem with the run configuration is detected before any worker starts
integrating, and is reported through one of the classes below:

1.  `ConfigurationError` covers semantic problems with a single setting (a
    non-positive mass, a zero replicate count, a quantity with the wrong unit) and
    file-level problems (a missing or unreadable YAML file).
2.  `ConfigSchemaError` covers structural problems found by the Cerberus schema
    (unknown keys, wrong types), listing every violation at once.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class ConfigurationError(DiagnosableError):
    """Raised when a configuration value or file cannot be accepted."""
    details: str
    field: Optional[str] = None
    user_input: Optional[Any] = None
    source_file: Optional[Path] = None

    def __str__(self):
        where = f" for '{self.field}'" if self.field else ""
        return f"Invalid configuration{where}: {self.details}"

    def get_diagnostic_report(self) -> str:
        """Generates the diagnostic report for a rejected configuration value."""
        return format_diagnostic_report(
            error_type="Invalid Configuration",
            details=self.details,
            suggestion="Correct the setting in the YAML file or on the command line. Physical quantities accept plain SI numbers or unit strings such as '10 ms' or '450 kg'.",
            context={
                'field': self.field,
                'user_input': self.user_input,
                'source_file': self.source_file,
            }
        )


@dataclass()
class ConfigSchemaError(ConfigurationError):
    """
    Raised when the configuration document does not conform to the schema, e.g.
    an unknown section, a misspelled key or a value of the wrong type.
    """
    errors: Dict[str, Any] = None

    def __str__(self):
        error_lines = [
            f"  - In field '{k}': {v}"
            for k, v in sorted(_flatten_errors(self.errors or {}).items())
        ]
        return "Configuration schema validation failed:\n" + "\n".join(error_lines)

    def get_diagnostic_report(self) -> str:
        """Lists every schema violation found in the configuration document."""
        flat = _flatten_errors(self.errors or {})
        error_list_str = "\n".join(f"  - Field '{k}': {v}" for k, v in sorted(flat.items()))
        details = (
            "The structure of the configuration does not conform to the required schema.\n"
            f"See details for {len(flat)} issue(s) below:\n\n{error_list_str}"
        )
        return format_diagnostic_report(
            error_type="Configuration Schema Validation Error",
            details=details,
            suggestion="Check for misspelled keys, unknown sections or values of the wrong type. Valid sections are 'simulation', 'oscillator', 'parallel' and 'output'.",
            context={'source_file': self.source_file}
        )


def _flatten_errors(errors: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flattens Cerberus' nested error tree into dotted field names."""
    flat: Dict[str, str] = {}
    for key, value in errors.items():
        name = f"{prefix}{key}"
        for item in value:
            if isinstance(item, dict):
                flat.update(_flatten_errors(item, prefix=f"{name}."))
            else:
                flat[name] = str(item)
    return flat
