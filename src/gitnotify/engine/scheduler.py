"""Recurring poll timer.

Runs a callback every `interval` seconds on a daemon thread. The next firing
is always measured from "now" when rescheduled, never from the original
baseline, and a callback exception is logged rather than ending the loop.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from ..log import get_logger

_log = get_logger("scheduler")


class PollScheduler:
    def __init__(self, callback: Callable[[], object], interval: float) -> None:
        self._callback = callback
        self._interval = float(interval)
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._stopped = True
        self._next_fire: float | None = None  # time.monotonic() deadline
        self._generation = 0

    @property
    def interval(self) -> float:
        with self._cond:
            return self._interval

    @property
    def is_running(self) -> bool:
        with self._cond:
            return not self._stopped

    @property
    def next_fire_at(self) -> float | None:
        """Wall-clock time of the next firing, or None when stopped."""
        with self._cond:
            if self._stopped or self._next_fire is None:
                return None
            return time.time() + max(0.0, self._next_fire - time.monotonic())

    def start(self, fire_immediately: bool = False) -> None:
        """Start the timer thread. A no-op if already running."""
        with self._cond:
            if not self._stopped:
                return
            self._stopped = False
            self._generation += 1
            delay = 0.0 if fire_immediately else self._interval
            self._next_fire = time.monotonic() + delay
            self._thread = threading.Thread(
                target=self._run,
                args=(self._generation,),
                name="gitnotify-poller",
                daemon=True,
            )
            self._thread.start()
        _log.info("scheduler started, interval %.0fs", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the timer; no firing starts after this returns."""
        with self._cond:
            self._stopped = True
            self._next_fire = None
            thread = self._thread
            self._thread = None
            self._cond.notify_all()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        _log.info("scheduler stopped")

    def reschedule(self, interval: float | None = None) -> None:
        """Optionally change the interval, and restart the countdown from now."""
        with self._cond:
            if interval is not None:
                self._interval = float(interval)
            if not self._stopped:
                self._next_fire = time.monotonic() + self._interval
                self._cond.notify_all()

    def _run(self, generation: int) -> None:
        while True:
            with self._cond:
                # a stop() followed by start() hands the timer to a new thread
                while not self._stopped and generation == self._generation:
                    assert self._next_fire is not None
                    remaining = self._next_fire - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._stopped or generation != self._generation:
                    return
                self._next_fire = time.monotonic() + self._interval

            try:
                self._callback()
            except Exception as e:
                _log.error("scheduled poll raised: %s", e, exc_info=True)
