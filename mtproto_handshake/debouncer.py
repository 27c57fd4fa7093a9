"""Run only the last of a burst of callbacks after a quiet period."""

from __future__ import annotations

import threading
from typing import Callable, Optional


class Debouncer:
    """Delays a callback, replacing any callback still waiting."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def add(self, func: Callable[[], object]) -> None:
        """Schedule func after the delay, cancelling the pending one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay, func)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def __call__(self, func: Callable[[], object]) -> None:
        self.add(func)

    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def register(delay: float) -> Debouncer:
    """Create a debouncer with the given delay in seconds."""
    return Debouncer(delay)