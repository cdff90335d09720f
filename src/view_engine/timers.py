"""Tick-driven timers and gesture counting.

Nothing here uses threads: deadlines are checked against the timestamp
passed to each tick, so timers fire in the same cooperative loop that
computes the camera pose.
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(order=True)
class TimerHandle:
    """A scheduled callback. Compare by deadline, then scheduling order."""
    deadline_ms: float
    sequence: int
    callback: Callable[[float], None] = field(compare=False)
    name: str = field(default='', compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerQueue:
    """Cancellable one-shot callbacks fired from ``fire_due``."""

    def __init__(self):
        self._heap: List[TimerHandle] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return sum(1 for handle in self._heap if not handle.cancelled)

    def schedule(self, deadline_ms: float, callback: Callable[[float], None],
                 name: str = '') -> TimerHandle:
        """Schedule ``callback(now_ms)`` for the first tick at or after ``deadline_ms``."""
        handle = TimerHandle(deadline_ms, next(self._counter), callback, name)
        heapq.heappush(self._heap, handle)
        logger.debug(f"Timer '{name}' scheduled for t={deadline_ms:.0f}ms")
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None and not handle.cancelled:
            handle.cancelled = True
            logger.debug(f"Timer '{handle.name}' cancelled")

    def cancel_all(self) -> None:
        for handle in self._heap:
            handle.cancelled = True
        self._heap.clear()

    def fire_due(self, now_ms: float) -> int:
        """Run every pending callback whose deadline has passed, in deadline order.

        Callbacks may schedule or cancel other timers.

        Returns:
            Number of callbacks fired
        """
        fired = 0
        while self._heap and self._heap[0].deadline_ms <= now_ms:
            handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.cancelled = True
            handle.callback(now_ms)
            fired += 1
        return fired


class ClickCounter:
    """Detects rapid repeated clicks, e.g. a triple-click.

    The count resets when the gap between clicks reaches ``window_ms`` and
    after each detection.
    """

    def __init__(self, threshold: int = 3, window_ms: float = 800.0):
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        self.threshold = threshold
        self.window_ms = window_ms
        self.count = 0
        self._last_click_ms: Optional[float] = None

    def click(self, now_ms: float) -> bool:
        """Register a click.

        Returns:
            True when this click completes the sequence
        """
        if self._last_click_ms is not None and now_ms - self._last_click_ms >= self.window_ms:
            self.count = 0
        self._last_click_ms = now_ms
        self.count += 1

        if self.count >= self.threshold:
            self.reset()
            return True
        return False

    def reset(self) -> None:
        self.count = 0
        self._last_click_ms = None
