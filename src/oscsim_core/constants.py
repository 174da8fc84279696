# --- src/oscsim_core/constants.py ---
import logging

logger = logging.getLogger(__name__)

# --- Ensemble defaults ---

#: Total number of replicates (independent simulations) in one run.
DEFAULT_REPLICATES: int = 1000

#: Number of recorded time steps per replicate, including the initial state.
DEFAULT_STEPS: int = 200

#: Fixed integration step size in seconds.
DEFAULT_STEP_SIZE_S: float = 0.01

# --- Damped mass-spring system ---

DEFAULT_STIFFNESS_N_PER_M: float = 9000.0
DEFAULT_MASS_KG: float = 450.0
DEFAULT_DAMPING_MIN_NS_PER_M: float = 800.0
DEFAULT_DAMPING_MAX_NS_PER_M: float = 1200.0

#: Initial state of every replicate: displacement 0 m, velocity 0.1 m/s.
DEFAULT_INITIAL_DISPLACEMENT_M: float = 0.0
DEFAULT_INITIAL_VELOCITY_M_PER_S: float = 0.1

# --- Run infrastructure ---

DEFAULT_METHOD: str = "rk4"
DEFAULT_BACKEND: str = "serial"
DEFAULT_REDUCTION: str = "collective"
DEFAULT_OUTPUT_PATH: str = "daten.dat"

#: Rank of the worker that receives the reduced sum and writes the output.
COORDINATOR_RANK: int = 0

#: Poll interval (seconds) used while waiting on non-blocking collectives with a deadline.
COLLECTIVE_POLL_INTERVAL_S: float = 0.005

logger.debug("Defined ensemble and oscillator default constants.")
