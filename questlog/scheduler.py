"""Frame-coalescing recompute scheduling.

Any object with ``call_later(delay, callback)`` returning a cancellable handle
works as a clock; an asyncio event loop qualifies. ManualClock drives virtual
time for headless runs and tests.
"""

import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_FRAME_INTERVAL = 1 / 60


class Handle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Handle: ...


class TimerHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Virtual clock; timers fire only when time is advanced."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.now + max(0.0, delay), callback, args)
        heapq.heappush(self._timers, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due timers in order. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while self._timers and self._timers[0][0] <= target:
            when, _, handle = heapq.heappop(self._timers)
            self.now = when
            if handle.cancelled:
                continue
            handle.callback(*handle.args)
            fired += 1
        self.now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._timers if not h.cancelled)


class FrameScheduler:
    """Runs ``callback`` at most once per frame however often it is requested."""

    def __init__(
        self,
        clock: Clock,
        callback: Callable[[], Any],
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
    ) -> None:
        self.clock = clock
        self.callback = callback
        self.frame_interval = frame_interval
        self._handle: Handle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request_recompute(self) -> bool:
        """Schedule a run on the next frame. False if one is already pending."""
        if self._handle is not None:
            return False
        self._handle = self.clock.call_later(self.frame_interval, self._run)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _run(self) -> None:
        self._handle = None
        self.callback()
