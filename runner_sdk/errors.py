class RunnerError(Exception):
    """Base exception for job runner errors."""
    pass

class UnknownStateError(RunnerError):
    def __init__(self, machine, state):
        super().__init__(f"{machine}: invalid state {state!r}")
        self.state = state

class NoRetry(RunnerError):
    """Raised by a job handler when the job must not be scheduled again."""
    pass
