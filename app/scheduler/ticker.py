import logging

from app.api.v1.metrics import JOBS_INFLIGHT
from app.coordinator import Coordinator

logger = logging.getLogger(__name__)

def run_ticker(coordinator: Coordinator) -> int:
    """
    Periodic maintenance:
    1. Time out runners whose lease is about to lapse
    2. Forget runners that are done or never started
    3. Refresh the inflight gauge from the live set
    """
    dropped = coordinator.check_timeouts()
    if dropped:
        logger.debug("Ticker dropped %s finished runners", dropped)

    JOBS_INFLIGHT.set(len(coordinator.runners))
    return dropped
