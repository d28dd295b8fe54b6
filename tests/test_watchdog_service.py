import asyncio

from app.broker.in_memory import InMemoryBroker
from app.coordinator import Coordinator
from app.scheduler.service import WatchdogService
from runner_sdk.states import RunnerState


async def test_watchdog_times_out_lapsing_runner(make_strategy):
    broker = InMemoryBroker(default_ttr=1)
    coordinator = Coordinator()
    broker.put("slow")
    runner = coordinator.submit(broker.reserve(), "slow", make_strategy())
    assert runner.state == RunnerState.RUNNING

    watchdog = WatchdogService(coordinator, interval=0.01)
    await watchdog.start()
    assert watchdog.running
    try:
        for _ in range(100):
            if not coordinator.runners:
                break
            await asyncio.sleep(0.01)
    finally:
        await watchdog.stop()

    assert not watchdog.running
    assert runner.state == RunnerState.DONE
    assert coordinator.runners == []
    assert broker.counts()["delayed"] == 1


async def test_watchdog_survives_tick_errors(caplog):
    class Broken(Coordinator):
        def check_timeouts(self):
            raise RuntimeError("tick failed")

    watchdog = WatchdogService(Broken(), interval=0.01)
    await watchdog.start()
    await asyncio.sleep(0.05)
    await watchdog.stop()

    assert "tick failed" in caplog.text
