from typing import Any, Dict, Protocol, runtime_checkable

from runner_sdk.deferred import Deferred


@runtime_checkable
class QueueItem(Protocol):
    """
    A job reserved from the broker.

    Every operation returns a Deferred. stats() succeeds with the broker's
    stats-job mapping, which must contain "time-left" (seconds until the
    reservation lapses).
    """

    id: Any

    def stats(self) -> Deferred: ...

    def release(self, delay: int = 0) -> Deferred: ...

    def bury(self, priority: int) -> Deferred: ...

    def delete(self) -> Deferred: ...


class AsyncJob:
    """
    Adapts a job handle with coroutine methods to the QueueItem protocol.

    `handle` needs async stats(), release(delay), bury(priority) and
    delete(); each call is scheduled on the running event loop.
    """

    def __init__(self, handle: Any, job_id: Any = None):
        self.handle = handle
        self.id = job_id if job_id is not None else getattr(handle, "id", None)

    def __repr__(self):
        return f"<AsyncJob {self.id}>"

    def stats(self) -> Deferred:
        return Deferred.from_awaitable(self._stats())

    async def _stats(self) -> Dict[str, Any]:
        stats = await self.handle.stats()
        return dict(stats)

    def release(self, delay: int = 0) -> Deferred:
        return Deferred.from_awaitable(self.handle.release(delay))

    def bury(self, priority: int) -> Deferred:
        return Deferred.from_awaitable(self.handle.bury(priority))

    def delete(self) -> Deferred:
        return Deferred.from_awaitable(self.handle.delete())
