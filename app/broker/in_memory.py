import itertools
import logging
import time
from typing import Any, Callable, Dict, Optional

from app.domain.errors import BrokerError, JobNotFoundError, JobNotReservedError
from app.domain.models import BrokerJobRecord
from app.domain.states import BrokerJobStatus
from app.settings import settings
from runner_sdk.deferred import Deferred

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 65536


class InMemoryBroker:
    """
    Single-process broker with beanstalkd-like lease semantics, for local
    development and tests.

    Jobs are reserved lowest priority value first, FIFO within a priority.
    A reservation lapses after the job's ttr, after which the job is ready
    again; released jobs may be delayed; buried jobs wait for kick().
    Expired reservations and due delays are promoted lazily on every call.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, default_ttr: Optional[int] = None):
        self.clock = clock
        self.default_ttr = default_ttr if default_ttr is not None else settings.BROKER_DEFAULT_TTR_SECONDS
        self._jobs: Dict[int, BrokerJobRecord] = {}
        self._ids = itertools.count(1)

    def put(self, body: Any, pri: int = DEFAULT_PRIORITY, delay: int = 0, ttr: Optional[int] = None) -> int:
        now = self.clock()
        job_id = next(self._ids)
        record = BrokerJobRecord(
            id=job_id,
            body=body,
            pri=pri,
            ttr=ttr if ttr is not None else self.default_ttr,
            status=BrokerJobStatus.DELAYED if delay > 0 else BrokerJobStatus.READY,
            created_at=now,
            deadline=now + delay if delay > 0 else None,
            delay=delay,
        )
        self._jobs[job_id] = record
        logger.debug("Put job %s (pri=%s delay=%s)", job_id, pri, delay)
        return job_id

    def reserve(self) -> Optional["BrokerJob"]:
        self._promote()
        ready = [j for j in self._jobs.values() if j.status == BrokerJobStatus.READY]
        if not ready:
            return None

        record = min(ready, key=lambda j: (j.pri, j.id))
        record.status = BrokerJobStatus.RESERVED
        record.deadline = self.clock() + record.ttr
        record.reserves += 1
        logger.debug("Reserved job %s (ttr=%s)", record.id, record.ttr)
        return BrokerJob(self, record.id, record.body)

    def stats(self, job_id: int) -> Dict[str, Any]:
        self._promote()
        record = self._get(job_id)
        now = self.clock()

        time_left = 0
        if record.deadline is not None and record.status in (BrokerJobStatus.RESERVED, BrokerJobStatus.DELAYED):
            time_left = max(0, record.deadline - now)

        return {
            "id": record.id,
            "state": str(record.status),
            "pri": record.pri,
            "age": int(now - record.created_at),
            "delay": record.delay,
            "ttr": record.ttr,
            "time-left": time_left,
            "reserves": record.reserves,
            "timeouts": record.timeouts,
            "releases": record.releases,
            "buries": record.buries,
            "kicks": record.kicks,
        }

    def release(self, job_id: int, pri: Optional[int] = None, delay: int = 0):
        self._promote()
        record = self._get_reserved(job_id)
        record.releases += 1
        record.delay = delay
        if pri is not None:
            record.pri = pri

        if delay > 0:
            record.status = BrokerJobStatus.DELAYED
            record.deadline = self.clock() + delay
        else:
            record.status = BrokerJobStatus.READY
            record.deadline = None
        logger.debug("Released job %s (delay=%s)", job_id, delay)

    def bury(self, job_id: int, pri: Optional[int] = None):
        self._promote()
        record = self._get_reserved(job_id)
        record.buries += 1
        record.status = BrokerJobStatus.BURIED
        record.deadline = None
        if pri is not None:
            record.pri = pri
        logger.debug("Buried job %s", job_id)

    def kick(self, bound: int) -> int:
        buried = sorted(
            (j for j in self._jobs.values() if j.status == BrokerJobStatus.BURIED),
            key=lambda j: j.id,
        )[:bound]
        for record in buried:
            record.status = BrokerJobStatus.READY
            record.kicks += 1
        return len(buried)

    def delete(self, job_id: int):
        self._get(job_id)
        del self._jobs[job_id]
        logger.debug("Deleted job %s", job_id)

    def counts(self) -> Dict[str, int]:
        self._promote()
        counts = {str(s): 0 for s in BrokerJobStatus}
        for record in self._jobs.values():
            counts[str(record.status)] += 1
        return counts

    def _get(self, job_id: int) -> BrokerJobRecord:
        record = self._jobs.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    def _get_reserved(self, job_id: int) -> BrokerJobRecord:
        record = self._get(job_id)
        if record.status != BrokerJobStatus.RESERVED:
            raise JobNotReservedError(job_id)
        return record

    def _promote(self):
        now = self.clock()
        for record in self._jobs.values():
            if record.deadline is None or record.deadline > now:
                continue

            if record.status == BrokerJobStatus.RESERVED:
                record.timeouts += 1
                logger.info("Reservation of job %s lapsed", record.id)
            elif record.status != BrokerJobStatus.DELAYED:
                continue

            record.status = BrokerJobStatus.READY
            record.deadline = None


class BrokerJob:
    """QueueItem handle for a job reserved from an InMemoryBroker."""

    def __init__(self, broker: InMemoryBroker, job_id: int, body: Any):
        self.broker = broker
        self.id = job_id
        self.body = body

    def __repr__(self):
        return f"<BrokerJob {self.id}>"

    def stats(self) -> Deferred:
        return self._call(self.broker.stats, self.id)

    def release(self, delay: int = 0) -> Deferred:
        return self._call(self.broker.release, self.id, None, delay)

    def bury(self, priority: int) -> Deferred:
        return self._call(self.broker.bury, self.id, priority)

    def delete(self) -> Deferred:
        return self._call(self.broker.delete, self.id)

    @staticmethod
    def _call(fn, *args) -> Deferred:
        d = Deferred()
        try:
            result = fn(*args)
        except BrokerError as e:
            logger.warning("Broker call %s%r failed: %s", fn.__name__, args, e)
            d.fail(e)
        else:
            d.succeed(result)
        return d
