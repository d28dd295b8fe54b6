from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Any


class OutcomeKind(StrEnum):
    TIMEOUT = auto()
    NO_RETRY = auto()
    EXCEPTION = auto()
    OTHER = auto()


@dataclass(frozen=True)
class Outcome:
    """
    Failure payload of a strategy Deferred.

    Strategies may fail their Deferred with an Outcome, with an exception or
    with any other value; coerce() maps the last two onto EXCEPTION and OTHER.
    """
    kind: OutcomeKind
    value: Any = None

    @classmethod
    def exception(cls, error: BaseException) -> "Outcome":
        return cls(OutcomeKind.EXCEPTION, error)

    @classmethod
    def other(cls, value: Any) -> "Outcome":
        return cls(OutcomeKind.OTHER, value)

    @classmethod
    def coerce(cls, reason: Any) -> "Outcome":
        if isinstance(reason, Outcome):
            return reason
        if isinstance(reason, BaseException):
            return cls.exception(reason)
        return cls.other(reason)


TIMED_OUT = Outcome(OutcomeKind.TIMEOUT)
NO_RETRY = Outcome(OutcomeKind.NO_RETRY)
