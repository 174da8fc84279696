# --- src/oscsim_core/units.py ---
import pint
import logging

logger = logging.getLogger(__name__)
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.info("Pint Unit Registry initialized.")


# --- Canonical dimensionality objects for explicit checks ---
# These store the frozendict representation of the dimensions.
STIFFNESS_DIMENSIONALITY = ureg.parse_expression('N/m').dimensionality
DAMPING_DIMENSIONALITY = ureg.parse_expression('N*s/m').dimensionality
MASS_DIMENSIONALITY = ureg.parse_expression('kg').dimensionality
TIME_DIMENSIONALITY = ureg.parse_expression('s').dimensionality
LENGTH_DIMENSIONALITY = ureg.parse_expression('m').dimensionality
VELOCITY_DIMENSIONALITY = ureg.parse_expression('m/s').dimensionality

logger.debug("Defined canonical dimensionalities for stiffness, damping, mass, time, length and velocity.")
