import logging

import pytest

from runner_sdk.deferred import Deferred


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeJob:
    """QueueItem double. Resolves every call immediately unless auto=False."""

    def __init__(self, job_id=1, time_left=10, delay=0, auto=True):
        self.id = job_id
        self.time_left = time_left
        self.delay = delay
        self.auto = auto
        self.fail_ops = set()
        self.calls = []
        self.pending = {}

    def _op(self, name, *args, result=None):
        self.calls.append((name, *args))
        d = Deferred()
        self.pending[name] = d
        if self.auto:
            if name in self.fail_ops:
                d.fail(RuntimeError(f"{name} failed"))
            else:
                d.succeed(result)
        return d

    def names(self):
        return [c[0] for c in self.calls]

    def stats(self):
        return self._op("stats", result={"time-left": self.time_left, "delay": self.delay})

    def release(self, delay=0):
        return self._op("release", delay)

    def bury(self, priority):
        return self._op("bury", priority)

    def delete(self):
        return self._op("delete")


class RecordingCoordinator:
    def __init__(self, backoff=None):
        self.logger = logging.getLogger("tests.runner")
        self.errors = []
        self.backoffs = []
        self._backoff = backoff

    def exception_handler(self, error):
        self.errors.append(error)

    def backoff_function(self, runner, stats):
        self.backoffs.append((runner, stats))
        if self._backoff:
            self._backoff(runner, stats)


class RecordingStrategy:
    """Strategy double that leaves the deferred for the test to resolve."""

    def __init__(self, action=None):
        self.calls = []
        self.action = action

    def __call__(self, deferred, params, stats):
        self.calls.append((deferred, params, stats))
        if self.action:
            self.action(deferred)

    @property
    def deferred(self) -> Deferred:
        return self.calls[-1][0]


@pytest.fixture
def make_job():
    return FakeJob

@pytest.fixture
def make_coordinator():
    return RecordingCoordinator

@pytest.fixture
def make_strategy():
    return RecordingStrategy

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def job():
    return FakeJob(job_id=7)

@pytest.fixture
def coordinator():
    return RecordingCoordinator()

@pytest.fixture
def strategy():
    return RecordingStrategy()
