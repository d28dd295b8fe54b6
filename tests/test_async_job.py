import asyncio

from runner_sdk.job import AsyncJob, QueueItem
from runner_sdk.runner import JobRunner
from runner_sdk.states import RunnerState


class AsyncHandle:
    def __init__(self, job_id, time_left=10):
        self.id = job_id
        self.time_left = time_left
        self.calls = []

    async def stats(self):
        await asyncio.sleep(0)
        self.calls.append("stats")
        return {"time-left": self.time_left, "delay": 0}

    async def release(self, delay):
        self.calls.append(("release", delay))

    async def bury(self, priority):
        self.calls.append(("bury", priority))

    async def delete(self):
        raise ConnectionError("broker went away")


async def wait_for_state(runner, state):
    for _ in range(20):
        if runner.state == state:
            return
        await asyncio.sleep(0)


def test_async_job_satisfies_protocol():
    assert isinstance(AsyncJob(AsyncHandle(1)), QueueItem)
    assert AsyncJob(AsyncHandle(1)).id == 1
    assert AsyncJob(AsyncHandle(1), job_id="j-9").id == "j-9"


async def test_runner_drives_async_job(coordinator, strategy):
    handle = AsyncHandle(4)
    runner = JobRunner(coordinator, AsyncJob(handle), {}, strategy)

    runner.run()
    assert runner.state == RunnerState.NEW

    await wait_for_state(runner, RunnerState.RUNNING)
    assert runner.state == RunnerState.RUNNING
    assert runner.stats == {"time-left": 10, "delay": 0}

    strategy.deferred.succeed()
    await wait_for_state(runner, RunnerState.DONE)

    # A failed delete still finishes the runner
    assert runner.state == RunnerState.DONE


async def test_async_release(coordinator, strategy):
    handle = AsyncHandle(5)
    runner = JobRunner(coordinator, AsyncJob(handle), {}, strategy)

    runner.release(7)
    await wait_for_state(runner, RunnerState.DONE)

    assert handle.calls == [("release", 7)]
    assert runner.state == RunnerState.DONE
