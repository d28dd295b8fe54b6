import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol

from runner_sdk.deferred import Deferred
from runner_sdk.job import QueueItem
from runner_sdk.outcome import TIMED_OUT, Outcome, OutcomeKind
from runner_sdk.state_machine import StateMachine
from runner_sdk.states import RunnerState
from runner_sdk.strategy import Strategy

# Fixed priority until the broker client accepts bury without one.
BURY_PRIORITY = 100000

# Seconds of lease left below which a running job is considered timed out.
TIMEOUT_MARGIN = 1


class Coordinator(Protocol):
    logger: logging.Logger

    def exception_handler(self, error: BaseException) -> None: ...

    def backoff_function(self, runner: "JobRunner", stats: Dict[str, Any]) -> None: ...


class JobRunner(StateMachine):
    """
    Drives one reserved job from lease confirmation to delete, release or bury.

    new -> running (gated on fetching the job's stats) runs the strategy.
    Its outcome moves the runner to succeeded, failed or retried; a lapsing
    lease moves it to timed_out. Every path ends in done once the broker
    acknowledges (or rejects) the final delete, release or bury.
    """

    def __init__(
        self,
        coordinator: Coordinator,
        job: QueueItem,
        params: Any,
        strategy: Strategy,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(RunnerState.NEW)
        self.coordinator = coordinator
        self.job = job
        self.params = params
        self.strategy = strategy
        self.clock = clock

        self.stats: Optional[Dict[str, Any]] = None
        self.end_time: Optional[float] = None
        self.start_failed = False
        self._strategy_deferred: Optional[Deferred] = None

        self.declare(RunnerState.NEW)
        self.declare(RunnerState.RUNNING, pre=self._fetch_stats, enter=[self._run_strategy])
        self.declare(RunnerState.SUCCEEDED, enter=[self.delete])
        self.declare(RunnerState.TIMED_OUT, enter=[self._timeout_strategy, self._backoff])
        self.declare(RunnerState.FAILED, enter=[self.delete])
        self.declare(RunnerState.RETRIED, enter=[self._backoff])
        self.declare(RunnerState.DONE, terminal=True)

        self.logger.debug("%s: New job with body: %r", self, params)

    def __str__(self):
        return f"Job {self.job.id}"

    @property
    def logger(self) -> logging.Logger:
        return self.coordinator.logger

    def run(self):
        self.change_state(RunnerState.RUNNING)

    def time_left(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.clock()

    def check_for_timeout(self):
        if self.state != RunnerState.RUNNING:
            return

        time_left = self.time_left()
        if time_left < TIMEOUT_MARGIN:
            self.logger.info("%s: Timed out (%ss left)", self, time_left)
            self.change_state(RunnerState.TIMED_OUT)

    def release(self, delay: int = 0):
        self.logger.debug("%s: releasing", self)
        d = self.job.release(delay)

        def _released(_):
            self.logger.info("%s: released for retry in %ss", self, delay)
            self.change_state(RunnerState.DONE)

        def _release_failed(reason):
            self.logger.error("%s: release failed (%r)", self, reason)
            self.change_state(RunnerState.DONE)

        d.add_callbacks(_released, _release_failed)

    def bury(self):
        self.logger.warning("%s: burying", self)
        d = self.job.bury(BURY_PRIORITY)

        def _buried(_):
            self.change_state(RunnerState.DONE)

        def _bury_failed(reason):
            self.logger.error("%s: bury failed (%r)", self, reason)
            self.change_state(RunnerState.DONE)

        d.add_callbacks(_buried, _bury_failed)

    def delete(self):
        d = self.job.delete()

        def _deleted(_):
            self.logger.debug("%s: deleted", self)
            self.change_state(RunnerState.DONE)

        def _delete_failed(reason):
            self.logger.debug("%s: delete operation failed (%r)", self, reason)
            self.change_state(RunnerState.DONE)

        d.add_callbacks(_deleted, _delete_failed)

    def _fetch_stats(self) -> Deferred:
        gate = Deferred()
        self.logger.debug("%s: Fetching stats", self)

        def _fetched(stats):
            self.stats = stats
            self.end_time = self.clock() + stats["time-left"]
            self.logger.debug("%s stats: %r", self, stats)
            gate.succeed()

        def _fetch_failed(reason):
            self.logger.error("%s: Fetching stats failed (%r)", self, reason)
            self.start_failed = True
            gate.fail(reason)

        self.job.stats().add_callbacks(_fetched, _fetch_failed)
        return gate

    def _run_strategy(self):
        d = Deferred()
        self._strategy_deferred = d

        try:
            self.strategy(d, self.params, self.stats)
        except Exception as e:
            if not d.fail(Outcome.exception(e)):
                self.logger.error(
                    "%s: error after strategy already reported (%s)", self, e, exc_info=e
                )

        # Registered after the call so the hooks they trigger run outside the guard above.
        d.add_callbacks(self._strategy_succeeded, self._strategy_failed)

    def _strategy_succeeded(self, _):
        self.change_state(RunnerState.SUCCEEDED)

    def _strategy_failed(self, reason):
        outcome = Outcome.coerce(reason)

        if outcome.kind == OutcomeKind.TIMEOUT:
            # Already handled by the timeout path
            return

        if outcome.kind == OutcomeKind.NO_RETRY:
            self.change_state(RunnerState.FAILED)
        elif outcome.kind == OutcomeKind.EXCEPTION:
            self.coordinator.exception_handler(outcome.value)
            self.change_state(RunnerState.RETRIED)
        else:
            self.logger.debug("%s: failed with %r", self, outcome.value)
            self.change_state(RunnerState.RETRIED)

    def _timeout_strategy(self):
        if self._strategy_deferred is not None:
            self._strategy_deferred.fail(TIMED_OUT)

    def _backoff(self):
        self.coordinator.backoff_function(self, self.stats)
