from .deferred import Deferred
from .errors import NoRetry, RunnerError, UnknownStateError
from .job import AsyncJob, QueueItem
from .outcome import NO_RETRY, TIMED_OUT, Outcome, OutcomeKind
from .runner import JobRunner
from .state_machine import StateMachine
from .states import RunnerState
from .strategy import Handler, Middleware, Strategy, from_handler

__all__ = [
    "AsyncJob",
    "Deferred",
    "Handler",
    "JobRunner",
    "Middleware",
    "NO_RETRY",
    "NoRetry",
    "Outcome",
    "OutcomeKind",
    "QueueItem",
    "RunnerError",
    "RunnerState",
    "StateMachine",
    "Strategy",
    "TIMED_OUT",
    "UnknownStateError",
    "from_handler",
]
