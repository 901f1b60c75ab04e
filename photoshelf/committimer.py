"""A commit timer that fires after a quiet period or after a maximum delay."""

from __future__ import annotations

import threading
from typing import Callable, Optional


class CommitTimer:
    """Debounce bursts of activity into a single callback.

    Every call to :meth:`start` restarts a short timer. A long timer starts
    with the first call of a burst and is not restarted. Whichever expires
    first stops both and invokes the callback once.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        small_interval: float = 0.2,
        large_interval: float = 10.0,
    ) -> None:
        if small_interval <= 0 or large_interval <= 0:
            raise ValueError("timer intervals must be positive")
        self._callback = callback
        self.small_interval = small_interval
        self.large_interval = large_interval
        self._lock = threading.Lock()
        self._small: Optional[tuple[object, threading.Timer]] = None
        self._large: Optional[tuple[object, threading.Timer]] = None

    def _make_timer(self, interval: float) -> tuple[object, threading.Timer]:
        token = object()
        timer = threading.Timer(interval, self._on_timeout, args=(token,))
        timer.daemon = True
        return token, timer

    def start(self) -> None:
        """Restart the short timer and start the long one if it is idle."""
        with self._lock:
            if self._small is not None:
                self._small[1].cancel()
            self._small = self._make_timer(self.small_interval)
            self._small[1].start()
            if self._large is None:
                self._large = self._make_timer(self.large_interval)
                self._large[1].start()

    def _cancel_all(self) -> None:
        for entry in (self._small, self._large):
            if entry is not None:
                entry[1].cancel()
        self._small = None
        self._large = None

    def stop(self) -> None:
        """Cancel both timers without invoking the callback."""
        with self._lock:
            self._cancel_all()

    def is_active(self) -> bool:
        """Whether a timeout is pending."""
        with self._lock:
            return self._small is not None or self._large is not None

    def _on_timeout(self, token: object) -> None:
        with self._lock:
            current = {entry[0] for entry in (self._small, self._large) if entry is not None}
            if token not in current:
                return
            self._cancel_all()
        self._callback()