"""
Owner Executor Module

Single-threaded message queue that owns all playback state. Other threads
(speech engine callbacks) only ever ``post`` work onto it; delayed calls
are scheduled with ``call_later`` and can be cancelled.
"""

import heapq
import itertools
import queue
import time
from typing import Any, Callable, List, Tuple

from readsync.utils import logger


class ScheduledCall:
    """Handle to a delayed call; ``cancel()`` makes it a no-op."""

    def __init__(self, due: float, fn: Callable[..., Any], args: Tuple[Any, ...]):
        self.due = due
        self._fn = fn
        self._args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        if not self.cancelled:
            self._fn(*self._args)


class OwnerExecutor:
    """
    Serializes state mutation onto the thread that runs it.

    ``post`` is safe from any thread. ``call_later`` and the ``run_*``
    methods belong to the owner thread.
    """

    IDLE_WAIT = 0.05  # Seconds to block on the queue when nothing is due

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the executor.

        Args:
            clock: Monotonic time source, injectable for tests
        """
        self._clock = clock
        self._queue: "queue.Queue[Tuple[Callable[..., Any], Tuple[Any, ...]]]" = queue.Queue()
        self._timers: List[Tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()
        self._running = False

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue ``fn(*args)`` to run on the owner thread."""
        self._queue.put((fn, args))

    def call_later(self, delay: float, fn: Callable[..., Any], *args: Any) -> ScheduledCall:
        """Schedule ``fn(*args)`` after ``delay`` seconds."""
        call = ScheduledCall(self._clock() + max(0.0, delay), fn, args)
        heapq.heappush(self._timers, (call.due, next(self._sequence), call))
        return call

    def pending(self) -> int:
        """Number of queued messages plus live timers."""
        live = sum(1 for _, _, call in self._timers if not call.cancelled)
        return self._queue.qsize() + live

    def run_pending(self) -> int:
        """
        Run queued messages and due timers until none are left.

        Returns:
            Number of callables run
        """
        count = 0
        while True:
            ran = self._drain_queue() + self._run_due_timers()
            if ran == 0:
                return count
            count += ran

    def run_forever(self) -> None:
        """Process messages until ``shutdown()`` is called."""
        self._running = True
        while self._running:
            self.run_pending()
            if not self._running:
                break
            try:
                fn, args = self._queue.get(timeout=self._wait_time())
            except queue.Empty:
                continue
            self._invoke(fn, args)

    def shutdown(self) -> None:
        """Stop ``run_forever``; safe from any thread."""
        self._running = False
        self.post(lambda: None)

    def _wait_time(self) -> float:
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)
        if not self._timers:
            return self.IDLE_WAIT
        return min(self.IDLE_WAIT, max(0.0, self._timers[0][0] - self._clock()))

    def _drain_queue(self) -> int:
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            self._invoke(fn, args)
            count += 1

    def _run_due_timers(self) -> int:
        count = 0
        now = self._clock()
        while self._timers and self._timers[0][0] <= now:
            _, _, call = heapq.heappop(self._timers)
            if call.cancelled:
                continue
            self._invoke(call.run, ())
            count += 1
        return count

    def _invoke(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        """Run one task; a failing task is reported and the loop carries on."""
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Error in owner task {getattr(fn, '__name__', fn)!r}: {e}")
