"""Resilience patterns: breaker, its state table and transition observers."""

from .state_machine import BreakerState, BreakerStateMachine
from .circuit_breaker import BreakerConfig, CircuitBreaker, Counts, FailureRatioTrip
from .observer import (
    BreakerEventBus,
    BreakerObserver,
    BreakerSubject,
    LoggingBreakerObserver,
    StateChangeEvent,
)

__all__ = [
    "BreakerState",
    "BreakerStateMachine",
    "BreakerConfig",
    "CircuitBreaker",
    "Counts",
    "FailureRatioTrip",
    "BreakerEventBus",
    "BreakerObserver",
    "BreakerSubject",
    "LoggingBreakerObserver",
    "StateChangeEvent",
]
