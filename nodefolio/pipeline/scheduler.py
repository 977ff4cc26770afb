"""
Cancellable timers and frame loops.

Two schedulers drive re-renders: a fixed-period timer (slideshow) and a
per-frame callback (physics overlay). Every registration returns a
``Handle``; once a handle is cancelled its callback never runs again, even
if a tick was already queued.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1.0 / 60.0


class Handle:
    """Cancellation handle for a timer or frame loop."""

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = False
        self._on_cancel: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_cancel_callback(self, callback: Callable[[], None]) -> None:
        self._on_cancel.append(callback)

    def cancel(self) -> bool:
        """Cancel once. Returns False if the handle was already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        callbacks, self._on_cancel = self._on_cancel, []
        for callback in callbacks:
            callback()
        return True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"Handle({self.name!r}, {state})"


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for the timer/frame sources tools depend on."""

    def call_every(self, period: float, callback: Callable[[], None]) -> Handle:
        ...

    def request_frames(self, callback: Callable[[], None]) -> Handle:
        ...

    def now(self) -> float:
        ...


def _run_callback(handle: Handle, callback: Callable[[], None]) -> None:
    if handle.cancelled:
        return
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback %s failed", handle.name or callback)


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Must be used from code running inside the loop (or given one explicitly).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None,
                 frame_interval: float = FRAME_INTERVAL):
        self._loop = loop
        self.frame_interval = frame_interval

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_every(self, period: float, callback: Callable[[], None]) -> Handle:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        handle = Handle(getattr(callback, "__qualname__", "timer"))
        loop = self.loop
        current: list[asyncio.TimerHandle] = []

        def tick():
            _run_callback(handle, callback)
            if not handle.cancelled:
                current[0] = loop.call_later(period, tick)

        current.append(loop.call_later(period, tick))
        handle.add_cancel_callback(lambda: current[0].cancel())
        return handle

    def request_frames(self, callback: Callable[[], None]) -> Handle:
        return self.call_every(self.frame_interval, callback)


class ManualScheduler:
    """
    Deterministic scheduler for headless rendering and tests.

    Time only moves when ``advance`` or ``run_frames`` is called.

    Example:
        >>> sched = ManualScheduler()
        >>> ticks = []
        >>> _ = sched.call_every(3.0, lambda: ticks.append(sched.now()))
        >>> sched.advance(7.0)
        >>> ticks
        [3.0, 6.0]
    """

    def __init__(self, start: float = 0.0, frame_interval: float = FRAME_INTERVAL):
        self._now = start
        self.frame_interval = frame_interval
        self._timers: list[tuple[float, int, float, Callable[[], None], Handle]] = []
        self._frames: list[tuple[Callable[[], None], Handle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_every(self, period: float, callback: Callable[[], None]) -> Handle:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        handle = Handle(getattr(callback, "__qualname__", "timer"))
        heapq.heappush(self._timers, (self._now + period, next(self._seq), period, callback, handle))
        return handle

    def request_frames(self, callback: Callable[[], None]) -> Handle:
        handle = Handle(getattr(callback, "__qualname__", "frame"))
        self._frames.append((callback, handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of live timers and frame loops."""
        timers = sum(1 for entry in self._timers if not entry[4].cancelled)
        frames = sum(1 for _, h in self._frames if not h.cancelled)
        return timers + frames

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in time order."""
        target = self._now + seconds
        while self._timers and self._timers[0][0] <= target:
            due, _, period, callback, handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            self._now = due
            _run_callback(handle, callback)
            if not handle.cancelled:
                heapq.heappush(self._timers, (due + period, next(self._seq), period, callback, handle))
        self._now = target

    def run_frames(self, count: int = 1) -> None:
        """Advance one frame interval at a time, invoking frame callbacks."""
        for _ in range(count):
            self.advance(self.frame_interval)
            self._frames = [(cb, h) for cb, h in self._frames if not h.cancelled]
            for callback, handle in list(self._frames):
                _run_callback(handle, callback)


def default_scheduler() -> Scheduler:
    """
    Pick a scheduler for the current context.

    Inside a running event loop timers go through asyncio. Otherwise a
    ``ManualScheduler`` is returned, so synchronous callers can still
    register timers and frame loops and drive them with ``advance``.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop; using a manual scheduler")
        return ManualScheduler()
    return AsyncioScheduler(loop)
