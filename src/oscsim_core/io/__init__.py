# src/oscsim_core/io/__init__.py
from .trajectory import write_trajectory, read_trajectory, format_line
from .exceptions import OutputWriteError

__all__ = [
    "write_trajectory",
    "read_trajectory",
    "format_line",
    "OutputWriteError",
]
