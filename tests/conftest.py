"""Shared fixtures: a manual clock, breakers built on it, and gateway fakes."""

from __future__ import annotations

import pytest

from fakes import FakeGateway, ManualClock
from smartfit.core.patterns.circuit_breaker import BreakerConfig, CircuitBreaker
from smartfit.models.user_models import User


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def transitions() -> list:
    return []


@pytest.fixture
def breaker(clock: ManualClock, transitions: list) -> CircuitBreaker:
    cfg = BreakerConfig(
        name="DBGateway",
        max_half_open_requests=3,
        rolling_window_interval=10.0,
        open_timeout=30.0,
    )
    return CircuitBreaker(
        cfg,
        on_state_change=lambda name, prev, new: transitions.append((name, prev, new)),
        clock=clock,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def alice() -> User:
    return User(id=7, full_name="Alice Runner", email="alice@example.com", city="Austin")
