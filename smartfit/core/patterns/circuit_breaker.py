"""
Circuit breaker guarding one outbound dependency.

Closed -> Open when the trip rule fires over the rolling window, Open ->
Half-Open once the open timeout elapsed, Half-Open -> Closed after enough
consecutive successful probes, Half-Open -> Open on the first failed probe.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, TypeVar, Union

from ..exceptions import CircuitOpenError, ConfigurationError
from .state_machine import BreakerState, BreakerStateMachine

T = TypeVar("T")

Work = Callable[[], Union[Awaitable[T], T]]
StateChangeCallback = Callable[[str, BreakerState, BreakerState], Any]


@dataclass
class Counts:
    """Rolling window counters; cleared on every new generation."""
    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    @property
    def failure_ratio(self) -> float:
        if not self.requests:
            return 0.0
        return self.total_failures / self.requests

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def clear(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0


@dataclass(frozen=True)
class FailureRatioTrip:
    """Trip once at least ``min_requests`` calls were seen and enough failed."""
    min_requests: int = 3
    failure_ratio: float = 0.6

    def __post_init__(self):
        # a single failure must never open the breaker
        if self.min_requests < 2:
            raise ConfigurationError(f"min_requests must be at least 2, got {self.min_requests}")
        if not 0.0 < self.failure_ratio <= 1.0:
            raise ConfigurationError(f"failure_ratio must be in (0, 1], got {self.failure_ratio}")

    def __call__(self, counts: Counts) -> bool:
        return counts.requests >= self.min_requests and counts.failure_ratio >= self.failure_ratio


@dataclass(frozen=True)
class BreakerConfig:
    name: str = "DBGateway"
    max_half_open_requests: int = 3
    rolling_window_interval: float = 10.0       # seconds, 0 keeps one window forever
    open_timeout: float = 30.0                  # seconds
    trip: Callable[[Counts], bool] = field(default_factory=FailureRatioTrip)

    def __post_init__(self):
        if self.max_half_open_requests < 1:
            raise ConfigurationError("max_half_open_requests must be at least 1")
        if self.rolling_window_interval < 0:
            raise ConfigurationError("rolling_window_interval must not be negative")
        if self.open_timeout <= 0:
            raise ConfigurationError("open_timeout must be positive")

    @classmethod
    def from_settings(cls, settings) -> "BreakerConfig":
        return cls(
            name                    = settings.BREAKER_NAME,
            max_half_open_requests  = settings.BREAKER_MAX_REQUESTS,
            rolling_window_interval = settings.BREAKER_INTERVAL,
            open_timeout            = settings.BREAKER_TIMEOUT,
            trip                    = FailureRatioTrip(
                min_requests  = settings.BREAKER_MIN_REQUESTS,
                failure_ratio = settings.BREAKER_FAILURE_RATIO,
            ),
        )


class CircuitBreaker:
    """Concurrency-safe breaker with a rolling window and half-open probes.

    Bookkeeping is serialised by one lock that is never held while the guarded
    work runs. Each admitted call remembers the generation it was admitted in;
    an outcome that arrives after the generation changed is not accounted, so
    the first failing probe decides the half-open round.
    """

    def __init__(self, cfg: Optional[BreakerConfig] = None, *,
                 on_state_change: Optional[StateChangeCallback] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.cfg = cfg or BreakerConfig()
        self.log = logging.getLogger(f"{self.__class__.__name__}.{self.cfg.name}")
        self._on_state_change = on_state_change
        self._clock = clock
        self._lock = threading.Lock()
        self._machine = BreakerStateMachine(BreakerState.CLOSED)
        self._counts = Counts()
        self._generation = 0
        self._expiry: Optional[float] = None
        self._pending: List[Tuple[BreakerState, BreakerState]] = []
        self._tasks: Set[asyncio.Future] = set()
        with self._lock:
            self._new_generation(self._clock())

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self.cfg.name

    @property
    def state(self) -> BreakerState:
        with self._lock:
            state, _ = self._current_state(self._clock())
            transitions = self._drain()
        self._notify(transitions)
        return state

    @property
    def counts(self) -> Counts:
        with self._lock:
            return replace(self._counts)

    async def __call__(self, fn: Callable[..., Awaitable[T]], *a, **kw) -> T:
        return await self.execute(functools.partial(fn, *a, **kw))

    async def execute(self, work: Work) -> T:
        """Run ``work`` under breaker supervision.

        Raises CircuitOpenError without calling ``work`` while open or while
        the half-open quota is used up. Otherwise returns what ``work``
        returns, or re-raises what it raises, after the outcome is accounted.
        """
        generation = self._before_call()
        try:
            result = work()
            if inspect.isawaitable(result):
                result = await result
        except BaseException:
            self._after_call(generation, success=False)
            raise
        self._after_call(generation, success=True)
        return result

    # ------------------------------------------------------------------ #
    # Admission and accounting
    # ------------------------------------------------------------------ #
    def _before_call(self) -> int:
        with self._lock:
            state, generation = self._current_state(self._clock())
            rejected = state is BreakerState.OPEN or (
                state is BreakerState.HALF_OPEN
                and self._counts.requests >= self.cfg.max_half_open_requests
            )
            if not rejected:
                self._counts.on_request()
            transitions = self._drain()
        self._notify(transitions)

        if rejected:
            self.log.debug(f"Rejected call while {state.value}")
            raise CircuitOpenError(self.name)
        return generation

    def _after_call(self, before: int, *, success: bool) -> None:
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)
            if generation == before:
                if success:
                    self._on_success(state, now)
                else:
                    self._on_failure(state, now)
            transitions = self._drain()
        self._notify(transitions)

    def _on_success(self, state: BreakerState, now: float) -> None:
        self._counts.on_success()
        if state is BreakerState.CLOSED:
            self._evaluate_trip(now)
        elif self._counts.consecutive_successes >= self.cfg.max_half_open_requests:
            self._set_state(BreakerState.CLOSED, now)

    def _on_failure(self, state: BreakerState, now: float) -> None:
        self._counts.on_failure()
        if state is BreakerState.CLOSED:
            self._evaluate_trip(now)
        else:
            self._set_state(BreakerState.OPEN, now)

    def _evaluate_trip(self, now: float) -> None:
        if self.cfg.trip(replace(self._counts)):
            self._set_state(BreakerState.OPEN, now)

    # ------------------------------------------------------------------ #
    # State bookkeeping (caller holds the lock)
    # ------------------------------------------------------------------ #
    def _current_state(self, now: float) -> Tuple[BreakerState, int]:
        state = self._machine.state
        if state is BreakerState.CLOSED:
            if self._expiry is not None and self._expiry <= now:
                self._new_generation(now)
        elif state is BreakerState.OPEN:
            if self._expiry is not None and self._expiry <= now:
                self._set_state(BreakerState.HALF_OPEN, now)
        return self._machine.state, self._generation

    def _set_state(self, new: BreakerState, now: float) -> None:
        prev = self._machine.state
        if not self._machine.transition(new):
            raise RuntimeError(f"Invalid breaker transition {prev.value} -> {new.value}")
        self._new_generation(now)
        self._pending.append((prev, new))

    def _new_generation(self, now: float) -> None:
        self._generation += 1
        self._counts.clear()
        state = self._machine.state
        if state is BreakerState.CLOSED:
            interval = self.cfg.rolling_window_interval
            self._expiry = now + interval if interval > 0 else None
        elif state is BreakerState.OPEN:
            self._expiry = now + self.cfg.open_timeout
        else:
            self._expiry = None

    def _drain(self) -> List[Tuple[BreakerState, BreakerState]]:
        transitions, self._pending = self._pending, []
        return transitions

    # ------------------------------------------------------------------ #
    # Notification (lock released)
    # ------------------------------------------------------------------ #
    def _notify(self, transitions: List[Tuple[BreakerState, BreakerState]]) -> None:
        for prev, new in transitions:
            level = logging.WARNING if new is BreakerState.OPEN else logging.INFO
            self.log.log(level, f"Circuit breaker {self.name} changed from {prev.value} to {new.value}")
            if self._on_state_change is None:
                continue
            try:
                outcome = self._on_state_change(self.name, prev, new)
            except Exception as e:
                self.log.error(f"Error in state change callback: {e}", exc_info=True)
                continue
            if inspect.isawaitable(outcome):
                self._spawn(outcome)

    def _spawn(self, outcome: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.log.warning("No running event loop, dropping async state change callback")
            if inspect.iscoroutine(outcome):
                outcome.close()
            return
        task = asyncio.ensure_future(outcome, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error(f"Error in state change callback: {task.exception()}")
