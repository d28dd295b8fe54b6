import logging
import math
import random
from typing import Any, Dict, Optional

from app.settings import settings

logger = logging.getLogger(__name__)

def calculate_next_delay(
    previous_delay: float,
    growth: float = 1.3,
    min_delay: int = 1,
    jitter: bool = False
) -> int:
    """
    Calculates the release delay for the next attempt from the previous one.

    Formula:
        delay = ceil(max(min_delay, previous_delay * growth))
        if jitter:
            delay = delay + random_uniform(0, 0.1 * delay), rounded up

    Args:
        previous_delay: Delay the job was last released with, as reported by
                        the broker's stats ("delay"). 0 for a first failure.

    Returns:
        int: Seconds to keep the job delayed. Starting from 0 this gives
             1, 2, 3, 4, 6, 8, 11, 15, 20, ...
    """
    if previous_delay < 0:
        previous_delay = 0

    delay = max(min_delay, previous_delay * growth)

    if jitter:
        # Add up to 10% jitter to avoid thundering herd
        delay += random.uniform(0, delay * 0.1)

    return math.ceil(delay)


class ExponentialBackoff:
    """
    Default backoff policy: release with a growing delay, bury once the
    delay would pass max_delay.
    """

    def __init__(
        self,
        growth: Optional[float] = None,
        min_delay: Optional[int] = None,
        max_delay: Optional[int] = None,
        jitter: Optional[bool] = None,
    ):
        self.growth = growth if growth is not None else settings.BACKOFF_GROWTH
        self.min_delay = min_delay if min_delay is not None else settings.BACKOFF_MIN_DELAY_SECONDS
        self.max_delay = max_delay if max_delay is not None else settings.BACKOFF_MAX_DELAY_SECONDS
        self.jitter = jitter if jitter is not None else settings.BACKOFF_JITTER

    def __call__(self, runner, stats: Optional[Dict[str, Any]]):
        previous = (stats or {}).get("delay", 0) or 0
        delay = calculate_next_delay(previous, self.growth, self.min_delay, self.jitter)

        if delay > self.max_delay:
            logger.warning("%s: next delay %ss exceeds %ss, burying", runner, delay, self.max_delay)
            runner.bury()
        else:
            runner.release(delay)
