import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, Mapping, Protocol, Sequence

from runner_sdk.deferred import Deferred
from runner_sdk.errors import NoRetry
from runner_sdk.outcome import NO_RETRY, Outcome, OutcomeKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Mapping[str, Any]], Coroutine[Any, Any, Any]]
Middleware = Callable[[Any, Mapping[str, Any], Handler], Coroutine[Any, Any, Any]]


class Strategy(Protocol):
    """
    Executes one job.

    Called as strategy(deferred, params, stats). It must eventually succeed
    the deferred, or fail it with NO_RETRY, an exception, or any other value.
    """

    def __call__(self, deferred: Deferred, params: Any, stats: Dict[str, Any]) -> None: ...


def build_chain(handler: Handler, middlewares: Sequence[Middleware] = ()) -> Handler:
    chain = handler

    # Apply middleware in reverse order (onion)
    for mw in reversed(middlewares):
        def make_wrapper(current_mw, current_chain):
            async def wrapper(params, stats):
                return await current_mw(params, stats, current_chain)
            return wrapper
        chain = make_wrapper(mw, chain)

    return chain


def from_handler(handler: Handler, middlewares: Sequence[Middleware] = ()) -> Strategy:
    """
    Turns `async def handler(params, stats)` into a strategy.

    The handler runs as a task on the current event loop. Returning succeeds
    the deferred; raising NoRetry fails it with NO_RETRY; any other exception
    fails it with that exception. If the deferred is failed with TIMEOUT
    first, the task is cancelled.
    """
    chain = build_chain(handler, middlewares)

    def strategy(deferred: Deferred, params: Any, stats: Dict[str, Any]) -> None:
        run = Deferred.from_awaitable(chain(params, stats))

        def _handler_failed(error: BaseException):
            if isinstance(error, asyncio.CancelledError):
                return
            if isinstance(error, NoRetry):
                logger.info("Handler asked for no retry: %s", error)
                deferred.fail(NO_RETRY)
            else:
                deferred.fail(error)

        def _on_failure(reason: Any):
            if Outcome.coerce(reason).kind == OutcomeKind.TIMEOUT and not run.task.done():
                logger.debug("Cancelling handler task after timeout")
                run.task.cancel()

        run.add_callbacks(deferred.succeed, _handler_failed)
        deferred.errback(_on_failure)

    return strategy
