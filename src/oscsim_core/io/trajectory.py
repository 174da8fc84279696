# src/oscsim_core/io/trajectory.py
"""
Reading and writing the two-column trajectory text format.

One line per time step, two whitespace-separated fields in C '%E' notation
(time, then mean displacement), no header:

    0.000000E+00 0.000000E+00
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from .exceptions import OutputWriteError

logger = logging.getLogger(__name__)


def format_line(t: float, y: float) -> str:
    return f"{t:E} {y:E}\n"


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_trajectory(path: Union[str, Path], times: np.ndarray, values: np.ndarray) -> Path:
    """
    Writes `times` and `values` side by side to `path`.

    The file is first written to a temporary file in the destination directory and
    then renamed into place, so a failed write never leaves a partial file.

    Returns:
        The resolved destination path.

    Raises:
        ValueError: If the two columns differ in length.
        OutputWriteError: If the destination cannot be written.
    """
    times = np.asarray(times, dtype=float)
    values = np.asarray(values, dtype=float)
    if times.shape != values.shape or times.ndim != 1:
        raise ValueError(f"Column shapes differ or are not 1-D: {times.shape} vs {values.shape}.")

    destination = Path(path).resolve()
    if destination.is_dir():
        raise OutputWriteError(details="The destination is a directory.", file_path=destination)
    temp_name = None
    try:
        fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
        with os.fdopen(fd, "w", encoding="ascii") as f:
            f.writelines(format_line(t, y) for t, y in zip(times, values))
        # mkstemp creates 0600; give the final file the mode a plain open() would.
        os.chmod(temp_name, 0o666 & ~_current_umask())
        os.replace(temp_name, destination)
    except OSError as e:
        if temp_name is not None and os.path.exists(temp_name):
            os.unlink(temp_name)
        logger.error(f"Failed to write trajectory file {destination}: {e}")
        raise OutputWriteError(details=str(e), file_path=destination) from e

    logger.info(f"Wrote {times.shape[0]} trajectory lines to {destination}")
    return destination


def read_trajectory(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """Parses a trajectory file back into (times, values)."""
    data = np.loadtxt(Path(path), dtype=float, ndmin=2)
    if data.shape[1] != 2:
        raise ValueError(f"Expected two columns in '{path}', found {data.shape[1]}.")
    return data[:, 0], data[:, 1]
