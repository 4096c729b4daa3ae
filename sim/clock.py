#!/usr/bin/env python3
"""
sim/clock.py
============
Cancelable periodic timer running on its own daemon thread.

The loop compensates for the time spent inside the callback so that ticks
stay on a fixed period; periods missed while stalled are dropped rather
than replayed.  Callback errors are logged and swallowed so one bad tick
does not kill the clock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

log = logging.getLogger("clock")


def next_deadline(previous: float, now: float, period_s: float) -> float:
    """Deadline of the tick after one due at *previous*.

    A clock that fell behind (slow callback, GC pause) drops the periods it
    missed and fires once, right away, instead of bursting to catch up.
    """
    deadline = previous + period_s
    if deadline < now:
        return now
    return deadline


class TickClock:
    """Calls ``callback`` every ``period_s`` seconds until cancelled.

    Parameters
    ----------
    period_s : float
        Tick period in seconds.
    callback : callable
        Invoked with no arguments on the clock thread.
    name : str
        Thread name, used in logs.
    """

    def __init__(
        self,
        period_s: float,
        callback: Callable[[], None],
        name: str = "TickClock",
    ) -> None:
        self._period_s = period_s
        self._callback = callback
        self._name = name
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and not self._cancelled.is_set()

    def start(self) -> None:
        """Spawn the clock thread.  Calling twice is a no-op."""
        if self._thread is not None or self._cancelled.is_set():
            return
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name=self._name
        )
        self._thread.start()
        log.debug("%s armed at %.3f s", self._name, self._period_s)

    def cancel(self) -> None:
        """Disarm the clock without waiting for it.

        Safe to call from inside the callback and more than once.
        """
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        log.debug("%s disarmed", self._name)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the clock thread to exit (no-op from the clock thread)."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout)

    def _loop(self) -> None:
        next_at = time.perf_counter()
        while True:
            now = time.perf_counter()
            next_at = next_deadline(next_at, now, self._period_s)
            if self._cancelled.wait(next_at - now):
                break
            try:
                self._callback()
            except Exception:
                log.exception("%s tick error", self._name)
