from dataclasses import dataclass
from typing import Any, Optional

from app.domain.states import BrokerJobStatus

@dataclass
class BrokerJobRecord:
    id: int
    body: Any
    pri: int
    ttr: int
    status: BrokerJobStatus

    created_at: float
    # Clock instant a delayed job becomes ready, or a reservation lapses
    deadline: Optional[float] = None
    delay: int = 0

    reserves: int = 0
    releases: int = 0
    buries: int = 0
    kicks: int = 0
    timeouts: int = 0
