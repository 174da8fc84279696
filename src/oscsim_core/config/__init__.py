# src/oscsim_core/config/__init__.py
from .config import SimulationConfig, RunSettings, BACKENDS, REDUCTIONS
from .parser import ConfigParser, load_config, to_si
from .exceptions import ConfigurationError, ConfigSchemaError

__all__ = [
    # Configuration Objects
    "SimulationConfig",
    "RunSettings",
    "BACKENDS",
    "REDUCTIONS",
    # Loading
    "ConfigParser",
    "load_config",
    "to_si",
    # Exceptions
    "ConfigurationError",
    "ConfigSchemaError",
]
