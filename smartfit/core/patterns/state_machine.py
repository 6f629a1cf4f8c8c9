from enum import Enum
from typing import Dict, List


class BreakerState(Enum):
    CLOSED    = "closed"
    OPEN      = "open"
    HALF_OPEN = "half_open"


class BreakerStateMachine:
    """Holds the breaker state and the transitions it may take."""

    def __init__(self, initial: BreakerState = BreakerState.CLOSED):
        self._state = initial
        self._trans: Dict[BreakerState, List[BreakerState]] = {
            BreakerState.CLOSED:    [BreakerState.OPEN],
            BreakerState.OPEN:      [BreakerState.HALF_OPEN],
            BreakerState.HALF_OPEN: [BreakerState.CLOSED, BreakerState.OPEN],
        }

    @property
    def state(self) -> BreakerState: return self._state

    def can(self, nxt: BreakerState) -> bool: return nxt in self._trans[self._state]

    def transition(self, nxt: BreakerState) -> bool:
        if self.can(nxt):
            self._state = nxt
            return True
        return False
