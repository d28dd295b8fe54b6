import asyncio

from runner_sdk.deferred import Deferred
from runner_sdk.errors import NoRetry
from runner_sdk.outcome import NO_RETRY, TIMED_OUT
from runner_sdk.runner import JobRunner
from runner_sdk.states import RunnerState
from runner_sdk.strategy import from_handler


async def settle(d: Deferred):
    for _ in range(10):
        if d.resolved:
            return
        await asyncio.sleep(0)


async def test_handler_return_succeeds_deferred():
    async def handler(params, stats):
        return params["x"] * 2

    d = Deferred()
    from_handler(handler)(d, {"x": 21}, {})
    await settle(d)

    assert d.succeeded
    assert d.result == 42


async def test_handler_no_retry_maps_to_sentinel():
    async def handler(params, stats):
        raise NoRetry("malformed payload")

    d = Deferred()
    from_handler(handler)(d, {}, {})
    await settle(d)

    assert d.result == NO_RETRY


async def test_handler_exception_fails_with_exception():
    async def handler(params, stats):
        raise ValueError("boom")

    d = Deferred()
    from_handler(handler)(d, {}, {})
    await settle(d)

    assert isinstance(d.result, ValueError)


async def test_timeout_cancels_handler_task():
    cancelled = asyncio.Event()

    async def handler(params, stats):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    d = Deferred()
    from_handler(handler)(d, {}, {})
    await asyncio.sleep(0)

    d.fail(TIMED_OUT)
    await asyncio.wait_for(cancelled.wait(), timeout=1.0)

    assert d.result == TIMED_OUT


async def test_middlewares_wrap_handler_in_order():
    order = []

    async def handler(params, stats):
        order.append("handler")
        return "ok"

    def tag(name):
        async def middleware(params, stats, call_next):
            order.append(f"{name}:before")
            result = await call_next(params, stats)
            order.append(f"{name}:after")
            return result
        return middleware

    d = Deferred()
    from_handler(handler, [tag("outer"), tag("inner")])(d, {}, {})
    await settle(d)

    assert order == ["outer:before", "inner:before", "handler", "inner:after", "outer:after"]


async def test_runner_with_handler_strategy_completes(coordinator, job):
    async def handler(params, stats):
        await asyncio.sleep(0)
        return {"processed": params["id"]}

    runner = JobRunner(coordinator, job, {"id": 3}, from_handler(handler))
    runner.run()
    assert runner.state == RunnerState.RUNNING

    for _ in range(10):
        if runner.state == RunnerState.DONE:
            break
        await asyncio.sleep(0)

    assert runner.state == RunnerState.DONE
    assert job.names() == ["stats", "delete"]
