# src/oscsim_core/config/parser.py
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import cerberus
import pint
import yaml

from ..units import (
    ureg,
    STIFFNESS_DIMENSIONALITY,
    DAMPING_DIMENSIONALITY,
    MASS_DIMENSIONALITY,
    TIME_DIMENSIONALITY,
    LENGTH_DIMENSIONALITY,
    VELOCITY_DIMENSIONALITY,
)
from .config import BACKENDS, REDUCTIONS, RunSettings, SimulationConfig
from .exceptions import ConfigurationError, ConfigSchemaError

logger = logging.getLogger(__name__)

#: Quantity kinds accepted by the 'quantity_of' schema rule: (dimensionality, SI unit).
QUANTITY_KINDS = {
    "stiffness": (STIFFNESS_DIMENSIONALITY, "N/m"),
    "damping": (DAMPING_DIMENSIONALITY, "N*s/m"),
    "mass": (MASS_DIMENSIONALITY, "kg"),
    "time": (TIME_DIMENSIONALITY, "s"),
    "length": (LENGTH_DIMENSIONALITY, "m"),
    "velocity": (VELOCITY_DIMENSIONALITY, "m/s"),
}


def to_si(value: Union[str, float, int], kind: str) -> float:
    """
    Converts a configured quantity to its SI magnitude.

    Plain numbers are taken to already be in SI units. Strings are parsed by pint
    and must carry a unit of the expected dimensionality.

    Raises:
        ValueError: If the string cannot be parsed or has the wrong dimensionality.
    """
    dimensionality, si_unit = QUANTITY_KINDS[kind]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        quantity = ureg.Quantity(value)
    except (pint.PintError, AttributeError, SyntaxError, TypeError, ValueError) as e:
        raise ValueError(f"cannot parse '{value}' as a quantity: {e}") from e
    if quantity.dimensionality != dimensionality:
        raise ValueError(
            f"'{value}' has dimensionality {quantity.dimensionality}, expected {kind} ({si_unit})"
        )
    return float(quantity.to(si_unit).magnitude)


class QuantityValidator(cerberus.Validator):
    """Custom Cerberus validator that understands unit-bearing quantity strings."""

    def _validate_quantity_of(self, kind: str, field: str, value: Any):
        """
        Validates that a value converts to an SI magnitude of the given kind.
        The rule's arguments are validated against this schema:
        {'type': 'string'}
        """
        if value is None or kind not in QUANTITY_KINDS:
            return
        try:
            to_si(value, kind)
        except ValueError as e:
            self._error(field, str(e))


def _quantity(kind: str, nullable: bool = False) -> Dict[str, Any]:
    return {"type": ["string", "number"], "required": False, "nullable": nullable, "quantity_of": kind}


class ConfigParser:
    """
    Loads and validates an ensemble run configuration from YAML and command-line
    overrides. Its sole responsibility is to produce the immutable
    `SimulationConfig` and `RunSettings` objects.
    """
    _schema = {
        "simulation": {
            "type": "dict", "required": False, "schema": {
                "replicates": {"type": "integer", "required": False},
                "steps": {"type": "integer", "required": False},
                "step_size": _quantity("time"),
                "method": {"type": "string", "required": False, "empty": False},
                "seed": {"type": "integer", "required": False, "nullable": True, "min": 0},
            },
        },
        "oscillator": {
            "type": "dict", "required": False, "schema": {
                "stiffness": _quantity("stiffness"),
                "mass": _quantity("mass"),
                "damping_min": _quantity("damping"),
                "damping_max": _quantity("damping"),
                "initial_displacement": _quantity("length"),
                "initial_velocity": _quantity("velocity"),
            },
        },
        "parallel": {
            "type": "dict", "required": False, "schema": {
                "backend": {"type": "string", "required": False, "allowed": list(BACKENDS)},
                "workers": {"type": "integer", "required": False, "min": 1},
                "timeout": _quantity("time", nullable=True),
                "reduction": {"type": "string", "required": False, "allowed": list(REDUCTIONS)},
            },
        },
        "output": {
            "type": "dict", "required": False, "schema": {
                "path": {"type": "string", "required": False, "empty": False},
            },
        },
    }

    _simulation_fields = {"replicates": None, "steps": None, "step_size": "time", "method": None, "seed": None}
    _oscillator_fields = {
        "stiffness": "stiffness", "mass": "mass",
        "damping_min": "damping", "damping_max": "damping",
        "initial_displacement": "length", "initial_velocity": "velocity",
    }

    def __init__(self):
        self._validator = QuantityValidator(self._schema)
        self._validator.allow_unknown = False
        logger.debug("ConfigParser initialized with strict structural validation rules.")

    def load(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> Tuple[SimulationConfig, RunSettings]:
        """
        Builds the run configuration.

        Args:
            config_path: Optional YAML file. Missing sections and keys take the defaults.
            overrides: Optional nested mapping with the same shape as the YAML document.
                       Keys whose value is None are ignored, so unset CLI flags do
                       not clobber file settings.

        Returns:
            A tuple (SimulationConfig, RunSettings).

        Raises:
            ConfigurationError: If the file cannot be read or a value is invalid.
            ConfigSchemaError: If the document does not match the schema.
        """
        source = Path(config_path).resolve() if config_path is not None else None
        document = self._load_yaml(source) if source is not None else {}
        document = merge_overrides(document, overrides or {})

        if not self._validator.validate(document):
            raise ConfigSchemaError(
                details="Schema validation failed.", errors=self._validator.errors, source_file=source
            )
        validated = self._validator.document

        try:
            sim_kwargs = self._convert_section(validated.get("simulation") or {}, self._simulation_fields)
            sim_kwargs.update(self._convert_section(validated.get("oscillator") or {}, self._oscillator_fields))
            config = SimulationConfig(**sim_kwargs)

            parallel = validated.get("parallel") or {}
            output = validated.get("output") or {}
            run_kwargs: Dict[str, Any] = {}
            for key in ("backend", "workers", "reduction"):
                if key in parallel:
                    run_kwargs[key] = parallel[key]
            if parallel.get("timeout") is not None:
                run_kwargs["timeout"] = to_si(parallel["timeout"], "time")
            if "path" in output:
                run_kwargs["output_path"] = output["path"]
            settings = RunSettings(**run_kwargs)
        except ConfigurationError as e:
            if e.source_file is None:
                e.source_file = source
            raise

        logger.info(
            f"Configuration loaded{f' from {source}' if source else ''}: "
            f"R={config.replicates}, STEPS={config.steps}, H={config.step_size} s, method={config.method}, "
            f"backend={settings.backend}."
        )
        return config, settings

    @staticmethod
    def _convert_section(section: Dict[str, Any], fields: Dict[str, Optional[str]]) -> Dict[str, Any]:
        converted: Dict[str, Any] = {}
        for key, kind in fields.items():
            if key not in section:
                continue
            value = section[key]
            converted[key] = to_si(value, kind) if kind is not None and value is not None else value
        return converted

    def _load_yaml(self, source: Path) -> Dict[str, Any]:
        """Loads and performs basic sanity checks on a YAML file."""
        if not source.is_file():
            raise ConfigurationError(details=f"Configuration file not found at path: {source}", source_file=source)
        try:
            with source.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except PermissionError as e:
            raise ConfigurationError(details=f"Permission denied when trying to read file: {e}", source_file=source) from e
        except UnicodeDecodeError as e:
            raise ConfigurationError(details=f"The file is not valid UTF-8 text: {e}", source_file=source) from e
        except OSError as e:
            raise ConfigurationError(details=f"Could not read file: {e}", source_file=source) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(details=f"Invalid YAML syntax: {e}", source_file=source) from e
        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigurationError(details="The root of the YAML file must be a dictionary (mapping).", source_file=source)
        return content


def merge_overrides(document: Dict[str, Any], overrides: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Returns a copy of `document` with the non-None override values applied per section."""
    merged = {key: (dict(value) if isinstance(value, dict) else value) for key, value in document.items()}
    for section, values in overrides.items():
        present = {k: v for k, v in values.items() if v is not None}
        if not present:
            continue
        if section not in merged:
            merged[section] = {}
        target = merged[section]
        # A section that is not a mapping is left for the schema to reject.
        if isinstance(target, dict):
            target.update(present)
    return merged


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Tuple[SimulationConfig, RunSettings]:
    """Convenience wrapper around `ConfigParser().load`."""
    return ConfigParser().load(config_path, overrides)
