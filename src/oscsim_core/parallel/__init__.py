# src/oscsim_core/parallel/__init__.py
from .exceptions import CollectiveError, CollectiveTimeoutError, WorkerFailureError
from .communicator import Communicator, SerialCommunicator
from .local import QueueCommunicator, launch_local
from .mpi import MPICommunicator

__all__ = [
    # Exceptions
    "CollectiveError",
    "CollectiveTimeoutError",
    "WorkerFailureError",
    # Communicators
    "Communicator",
    "SerialCommunicator",
    "QueueCommunicator",
    "MPICommunicator",
    # Launchers
    "launch_local",
]
