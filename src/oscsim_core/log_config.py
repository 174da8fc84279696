# --- src/oscsim_core/log_config.py ---
import logging
import sys
from typing import Optional

def setup_logging(level=logging.INFO, rank: Optional[int] = None):
    """ Configures basic logging to stdout. Tags every record with the worker rank if given. """
    rank_tag = f"[rank {rank}] " if rank is not None else ""
    log_formatter = logging.Formatter(
        f"%(asctime)s [%(levelname)-5.5s] {rank_tag}[%(name)s] %(message)s"
    )
    root_logger = logging.getLogger() # Get the root logger

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    logging.debug("Logging configured.")
