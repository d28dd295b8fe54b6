from enum import StrEnum, auto

class BrokerJobStatus(StrEnum):
    READY = auto()     # Waiting to be reserved
    RESERVED = auto()  # Leased by a consumer until its ttr runs out
    DELAYED = auto()   # Released with a delay, not yet ready
    BURIED = auto()    # Parked until kicked
