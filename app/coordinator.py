import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from app.api.v1.metrics import JOB_DURATION, JOB_FAILURES, RUNNER_TRANSITIONS
from app.domain.retry import ExponentialBackoff
from runner_sdk.job import QueueItem
from runner_sdk.runner import JobRunner
from runner_sdk.states import RunnerState
from runner_sdk.strategy import Strategy


ExceptionHandler = Callable[[BaseException], Any]
BackoffFunction = Callable[[JobRunner, Optional[Dict[str, Any]]], Any]

_FAILURE_TYPES = {
    RunnerState.RETRIED: "retryable",
    RunnerState.FAILED: "final",
    RunnerState.TIMED_OUT: "timeout",
}


class Coordinator:
    """
    Owns the job runners of one consumer.

    Holds what runners share (logger, exception handler, backoff policy),
    starts a runner per reserved job and, on every tick, checks live runners
    for lapsing leases and forgets the finished ones.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        exception_handler: Optional[ExceptionHandler] = None,
        backoff_function: Optional[BackoffFunction] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.exception_handler = exception_handler or self._log_exception
        self.backoff_function = backoff_function or ExponentialBackoff()
        self.clock = clock
        self._runners: List[JobRunner] = []
        self._started_at: Dict[int, float] = {}
        self._faulted: Set[int] = set()

    @property
    def runners(self) -> List[JobRunner]:
        return list(self._runners)

    def submit(self, job: QueueItem, params: Any, strategy: Strategy) -> JobRunner:
        runner = JobRunner(self, job, params, strategy, clock=self.clock)
        runner.add_state_listener(self._record_transition)
        self._runners.append(runner)
        self._started_at[id(runner)] = self.clock()

        self._guard(runner, runner.run)
        return runner

    def check_timeouts(self) -> int:
        """
        Checks every live runner for a lapsing lease, then drops runners that
        are done, could not start, or raised while being driven. Returns the
        number dropped.
        """
        for runner in list(self._runners):
            self._guard(runner, runner.check_for_timeout)

        live = []
        dropped = 0
        for runner in self._runners:
            if runner.state == RunnerState.DONE or runner.start_failed or id(runner) in self._faulted:
                if runner.start_failed:
                    self.logger.warning("%s: dropping runner that never started", runner)
                elif id(runner) in self._faulted:
                    self.logger.warning("%s: dropping runner stuck in %s after an error", runner, runner.state)
                self._started_at.pop(id(runner), None)
                self._faulted.discard(id(runner))
                dropped += 1
            else:
                live.append(runner)
        self._runners = live
        return dropped

    def _guard(self, runner: JobRunner, action: Callable[[], Any]):
        try:
            action()
        except Exception:
            self.logger.exception("%s: error while in state %s", runner, runner.state)
            self._faulted.add(id(runner))

    def _record_transition(self, runner: JobRunner, old, new):
        RUNNER_TRANSITIONS.labels(state=str(new)).inc()

        failure_type = _FAILURE_TYPES.get(new)
        if failure_type:
            JOB_FAILURES.labels(type=failure_type).inc()

        if new == RunnerState.DONE:
            started_at = self._started_at.get(id(runner))
            if started_at is not None:
                JOB_DURATION.observe(self.clock() - started_at)

    def _log_exception(self, error: BaseException):
        self.logger.error("Job raised %s: %s", type(error).__name__, error, exc_info=error)
