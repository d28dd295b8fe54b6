from enum import StrEnum, auto

class RunnerState(StrEnum):
    NEW = auto()        # Constructed, waiting for run()
    RUNNING = auto()    # Lease confirmed, strategy executing
    SUCCEEDED = auto()  # Strategy reported success, deleting
    TIMED_OUT = auto()  # Lease about to expire, strategy abandoned
    FAILED = auto()     # Strategy asked for no retry, deleting
    RETRIED = auto()    # Recoverable failure, waiting on backoff policy
    DONE = auto()       # Terminal
