"""Restartable one-second countdown owned by a session context.

The timer never ends a game by itself: at zero it only stops counting.
The end of a game is always announced by the server.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import DEFAULT_ROUND_DURATION_SEC, DEFAULT_TICK_INTERVAL_SEC

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimerState:
    """Read-only view of the countdown."""

    remaining_seconds: int
    running: bool

    def to_dict(self) -> dict[str, Any]:
        return {"remaining_seconds": self.remaining_seconds, "running": self.running}


class TickHandle(ABC):
    """A live periodic callback registration."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering ticks. Safe to call more than once."""


class Ticker(ABC):
    """Source of periodic ticks for a countdown."""

    @abstractmethod
    def schedule(self, callback: Callable[[], None]) -> TickHandle:
        """Call ``callback`` once per interval until the handle is cancelled."""


class _TaskHandle(TickHandle):
    def __init__(self, task: asyncio.Task[None]):
        self._task = task

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class AsyncioTicker(Ticker):
    """Ticks from a task on the running event loop."""

    def __init__(self, interval_sec: float = DEFAULT_TICK_INTERVAL_SEC):
        self.interval_sec = interval_sec

    def schedule(self, callback: Callable[[], None]) -> TickHandle:
        loop = asyncio.get_running_loop()
        return _TaskHandle(loop.create_task(self._run(callback)))

    async def _run(self, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            callback()


class _ManualHandle(TickHandle):
    def __init__(self, callback: Callable[[], None]):
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTicker(Ticker):
    """Caller-driven ticker for tests and frame-driven embedders."""

    def __init__(self) -> None:
        self._handles: list[_ManualHandle] = []

    def schedule(self, callback: Callable[[], None]) -> TickHandle:
        handle = _ManualHandle(callback)
        self._handles.append(handle)
        return handle

    @property
    def active_handles(self) -> int:
        return sum(1 for handle in self._handles if not handle.cancelled)

    def advance(self, ticks: int = 1) -> None:
        """Deliver ``ticks`` ticks to every live registration."""
        for _ in range(ticks):
            for handle in list(self._handles):
                if not handle.cancelled:
                    handle.callback()
            self._handles = [handle for handle in self._handles if not handle.cancelled]


class CountdownTimer:
    """Countdown from a fixed duration with at most one live tick handle."""

    def __init__(self, duration: int = DEFAULT_ROUND_DURATION_SEC, ticker: Ticker | None = None):
        if duration < 0:
            raise ValueError("duration must be >= 0.")
        self.duration = duration
        self._ticker = ticker or AsyncioTicker()
        self._remaining = duration
        self._running = False
        self._handle: TickHandle | None = None
        self._listeners: list[Callable[[TimerState], None]] = []

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._running

    def state(self) -> TimerState:
        return TimerState(remaining_seconds=self._remaining, running=self._running)

    def add_listener(self, listener: Callable[[TimerState], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def start(self, duration: int | None = None) -> None:
        """(Re)start the countdown, replacing any live tick handle."""
        self._cancel_handle()
        self._running = False
        resolved = self.duration if duration is None else duration
        if resolved < 0:
            raise ValueError("duration must be >= 0.")
        if resolved > 0:
            self._handle = self._ticker.schedule(self.tick)
        self._remaining = resolved
        self._running = resolved > 0
        self._notify()

    def stop(self) -> None:
        if not self._running and self._handle is None:
            return
        self._running = False
        self._cancel_handle()
        self._notify()

    def reset(self, duration: int | None = None) -> None:
        """Stop and restore the full duration without starting."""
        self._cancel_handle()
        self._running = False
        self._remaining = self.duration if duration is None else duration
        self._notify()

    def tick(self) -> None:
        if not self._running:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self._running = False
            self._cancel_handle()
            logger.debug("Countdown reached zero.")
        self._notify()

    def _cancel_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    def _notify(self) -> None:
        state = self.state()
        for listener in list(self._listeners):
            listener(state)
