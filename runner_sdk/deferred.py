import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any]

_PENDING = "pending"
_SUCCEEDED = "succeeded"
_FAILED = "failed"


class Deferred:
    """
    One-shot result cell.

    Resolves exactly once, either through succeed() or fail(). Callbacks
    registered before resolution run in registration order when it happens;
    callbacks registered afterwards run immediately with the stored result.
    Resolving a cell that is already resolved does nothing.
    """

    def __init__(self):
        self._status = _PENDING
        self._result: Any = None
        self._callbacks: List[Callback] = []
        self._errbacks: List[Callback] = []
        self.task: Optional[asyncio.Future] = None

    def __repr__(self):
        return f"<Deferred {self._status}>"

    @property
    def resolved(self) -> bool:
        return self._status != _PENDING

    @property
    def succeeded(self) -> bool:
        return self._status == _SUCCEEDED

    @property
    def failed(self) -> bool:
        return self._status == _FAILED

    @property
    def result(self) -> Any:
        return self._result

    def callback(self, fn: Callback) -> "Deferred":
        if self._status == _SUCCEEDED:
            fn(self._result)
        elif self._status == _PENDING:
            self._callbacks.append(fn)
        return self

    def errback(self, fn: Callback) -> "Deferred":
        if self._status == _FAILED:
            fn(self._result)
        elif self._status == _PENDING:
            self._errbacks.append(fn)
        return self

    def add_callbacks(self, on_success: Callback, on_failure: Callback) -> "Deferred":
        self.callback(on_success)
        self.errback(on_failure)
        return self

    def succeed(self, value: Any = None) -> bool:
        return self._resolve(_SUCCEEDED, value)

    def fail(self, reason: Any = None) -> bool:
        return self._resolve(_FAILED, reason)

    def _resolve(self, status: str, value: Any) -> bool:
        if self._status != _PENDING:
            logger.debug("Ignoring %s on %r", status, self)
            return False

        self._status = status
        self._result = value
        pending = self._callbacks if status == _SUCCEEDED else self._errbacks
        self._callbacks = []
        self._errbacks = []
        for fn in pending:
            fn(value)
        return True

    @classmethod
    def from_awaitable(cls, aw: Awaitable[Any]) -> "Deferred":
        """
        Runs an awaitable on the current event loop and mirrors its result.

        The returned cell keeps a reference to the task as `task`, so callers
        can cancel it. A cancelled task fails the cell with CancelledError.
        """
        d = cls()
        task = asyncio.ensure_future(aw)

        def _done(fut: "asyncio.Future[Any]"):
            if fut.cancelled():
                d.fail(asyncio.CancelledError())
                return
            exc = fut.exception()
            if exc is not None:
                d.fail(exc)
            else:
                d.succeed(fut.result())

        task.add_done_callback(_done)
        d.task = task
        return d
