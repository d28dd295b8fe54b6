import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from runner_sdk.deferred import Deferred
from runner_sdk.errors import UnknownStateError

logger = logging.getLogger(__name__)

PreHook = Callable[[], Deferred]
EnterHook = Callable[[], Any]
StateListener = Callable[["StateMachine", Hashable, Hashable], Any]


@dataclass(frozen=True)
class StateSpec:
    pre: Optional[PreHook] = None
    enter: Tuple[EnterHook, ...] = ()
    terminal: bool = False


class StateMachine:
    """
    Finite state machine whose transitions may be gated on a Deferred.

    States are declared per instance. Entering a state runs its optional
    pre-hook first; the state only changes once the returned Deferred
    succeeds, after which its enter-hooks run in declared order. Enter-hooks
    may call change_state() again, which completes its own hook chain before
    returning. No transition leaves a terminal state.
    """

    def __init__(self, initial: Hashable):
        self.states: Dict[Hashable, StateSpec] = {}
        self._state = initial
        self._listeners: List[StateListener] = []

    def __str__(self):
        return type(self).__name__

    def declare(
        self,
        state: Hashable,
        pre: Optional[PreHook] = None,
        enter: Sequence[EnterHook] = (),
        terminal: bool = False,
    ):
        self.states[state] = StateSpec(pre=pre, enter=tuple(enter), terminal=terminal)

    @property
    def state(self) -> Hashable:
        return self._state

    def current_state(self) -> Hashable:
        return self._state

    def add_state_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def change_state(self, target: Hashable):
        if target not in self.states:
            raise UnknownStateError(self, target)

        current = self.states.get(self._state)
        if current is not None and current.terminal:
            logger.debug("%s: ignoring change to %s from terminal state %s", self, target, self._state)
            return

        spec = self.states[target]
        if spec.pre is None:
            self._enter(target, spec)
            return

        gate = spec.pre()
        gate.callback(lambda _: self._enter(target, spec))
        gate.errback(lambda reason: self._abort(target, reason))

    def _enter(self, target: Hashable, spec: StateSpec):
        # The gate may resolve after another transition already reached a terminal state.
        current = self.states.get(self._state)
        if current is not None and current.terminal:
            logger.debug("%s: dropping gated change to %s, already %s", self, target, self._state)
            return

        old = self._state
        self._state = target
        logger.debug("%s: %s -> %s", self, old, target)

        for listener in list(self._listeners):
            listener(self, old, target)

        for hook in spec.enter:
            hook()

    def _abort(self, target: Hashable, reason: Any):
        logger.warning("%s: transition %s -> %s aborted (%r)", self, self._state, target, reason)
