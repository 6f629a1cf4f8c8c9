# smartfit/core/__init__.py
"""Core infrastructure components for the SmartFit user service."""

# Import order: most fundamental to most specific

from .error_kinds import ErrorKind
from .exceptions import (
    SmartFitError,
    ConfigurationError,
    DependencyError,
    CircuitOpenError,
    CallFailedError,
    SoftError,
    ServiceError,
)

from .patterns.state_machine import BreakerState
from .patterns.circuit_breaker import CircuitBreaker, BreakerConfig, FailureRatioTrip, Counts
from .patterns.observer import BreakerEventBus, LoggingBreakerObserver, StateChangeEvent


__all__ = [
    "ErrorKind",
    "SmartFitError",
    "ConfigurationError",
    "DependencyError",
    "CircuitOpenError",
    "CallFailedError",
    "SoftError",
    "ServiceError",
    "BreakerState",
    "CircuitBreaker",
    "BreakerConfig",
    "FailureRatioTrip",
    "Counts",
    "BreakerEventBus",
    "LoggingBreakerObserver",
    "StateChangeEvent",
]
