"""
Observer fan-out for breaker transitions.

A breaker calls its ``on_state_change`` hook while serving a request, so the
hook must return at once. ``BreakerEventBus`` is such a hook: it queues the
transition and a consumer task hands it to every attached observer.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional

from .state_machine import BreakerState


@dataclass(frozen=True)
class StateChangeEvent:
    breaker_name: str
    previous: BreakerState
    current: BreakerState
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def opened(self) -> bool:
        return self.current is BreakerState.OPEN


class BreakerObserver(ABC):
    """Receives transitions into any state listed in ``states``."""

    name: str = "observer"
    states: FrozenSet[BreakerState] = frozenset(BreakerState)

    @abstractmethod
    async def on_transition(self, event: StateChangeEvent) -> None: ...

    def wants(self, event: StateChangeEvent) -> bool:
        return event.current in self.states


class LoggingBreakerObserver(BreakerObserver):
    def __init__(self, name: str = "breaker-log"):
        self.name = name
        self.log = logging.getLogger(f"{self.__class__.__name__}.{name}")

    async def on_transition(self, event: StateChangeEvent) -> None:
        self.log.log(
            logging.WARNING if event.opened else logging.INFO,
            f"Circuit breaker {event.breaker_name} changed from "
            f"{event.previous.value} to {event.current.value} at {event.timestamp}",
        )


class BreakerSubject:
    """Observer registry; one failing observer never hides an event from the rest."""

    def __init__(self):
        self.observers: List[BreakerObserver] = []
        self.log = logging.getLogger(self.__class__.__name__)

    def attach(self, observer: BreakerObserver) -> bool:
        if observer in self.observers:
            self.log.warning(f"{observer.name} is already attached")
            return False
        self.observers.append(observer)
        self.log.info(f"Attached {observer.name}")
        return True

    def detach(self, observer: BreakerObserver) -> bool:
        if observer not in self.observers:
            self.log.warning(f"{observer.name} is not attached")
            return False
        self.observers.remove(observer)
        self.log.info(f"Detached {observer.name}")
        return True

    async def dispatch(self, event: StateChangeEvent) -> None:
        targets = [o for o in self.observers if o.wants(event)]
        if not targets:
            self.log.debug(f"Nobody listens for {event.current.value}")
            return

        results = await asyncio.gather(
            *(o.on_transition(event) for o in targets), return_exceptions=True
        )
        for observer, outcome in zip(targets, results):
            if isinstance(outcome, Exception):
                self.log.error(f"{observer.name} failed on {event.current.value}: {outcome}",
                               exc_info=outcome)


class BreakerEventBus:
    """Queue between breakers and observers, drained by one consumer task."""

    def __init__(self, maxsize: int = 1000):
        self.subject = BreakerSubject()
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.log = logging.getLogger(self.__class__.__name__)
        self._consumer: Optional[asyncio.Task] = None

    def __call__(self, breaker_name: str, previous: BreakerState, current: BreakerState) -> None:
        self.publish(StateChangeEvent(breaker_name, previous, current))

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        return self.queue.qsize()

    def attach(self, observer: BreakerObserver) -> bool:
        return self.subject.attach(observer)

    def detach(self, observer: BreakerObserver) -> bool:
        return self.subject.detach(observer)

    def publish(self, event: StateChangeEvent) -> bool:
        """Queue ``event``; returns False and drops it when the queue is full."""
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.log.error(f"Queue full, dropped {event.breaker_name} -> {event.current.value}")
            return False
        return True

    def start(self) -> None:
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="breaker-events")
        self.log.info("Breaker event bus running")

    async def drain(self) -> None:
        """Block until every queued event was dispatched."""
        await self.queue.join()

    async def stop(self) -> None:
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        self.log.info("Breaker event bus stopped")

    async def _consume(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.subject.dispatch(event)
            except Exception as e:
                self.log.error(f"Dispatch of {event.current.value} failed: {e}", exc_info=True)
            finally:
                self.queue.task_done()
