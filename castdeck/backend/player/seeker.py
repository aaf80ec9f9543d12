from __future__ import annotations

"""Coalesces bursts of relative seek requests into one absolute seek."""

from typing import Any, Callable, Optional
import threading
import time

from castdeck.backend.common.constants import SEEK_DEBOUNCE_SECONDS
from castdeck.backend.common.logging import get_logger

log = get_logger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class DebouncedSeeker:
    """Pending offset plus deadline.

    ``request`` adds to the pending offset and pushes the deadline out by the
    quiescence window. Once the deadline passes, the accumulated offset is
    applied as a single absolute seek from the current position. A net offset
    of zero issues nothing.
    """

    def __init__(
        self,
        seek_fn: Callable[[float], Any],
        position_ms_fn: Callable[[], int],
        window: float = SEEK_DEBOUNCE_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._seek_fn = seek_fn
        self._position_ms_fn = position_ms_fn
        self._window = max(0.0, window)
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self.pending_offset: float = 0
        self.deadline: Optional[float] = None

    @property
    def window(self) -> float:
        return self._window

    @property
    def pending(self) -> bool:
        return self.deadline is not None

    def request(self, offset: float) -> None:
        with self._lock:
            self.pending_offset += offset
            self.deadline = self._clock() + self._window
            self._restart_timer(self._window)
        log.debug("seek_requested", extra={"offset": offset, "pending_offset": self.pending_offset})

    def poll(self, now: Optional[float] = None) -> Optional[float]:
        """Flush if the window has elapsed; returns the seek target if one was issued."""

        with self._lock:
            if self.deadline is None:
                return None
            current = self._clock() if now is None else now
            if current < self.deadline:
                return None
            offset = self._take_locked()
        return self._apply(offset)

    def flush(self) -> Optional[float]:
        with self._lock:
            if self.deadline is None:
                return None
            offset = self._take_locked()
        return self._apply(offset)

    def cancel(self) -> None:
        with self._lock:
            self._take_locked()

    def _take_locked(self) -> float:
        offset = self.pending_offset
        self.pending_offset = 0
        self.deadline = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return offset

    def _apply(self, offset: float) -> Optional[float]:
        if offset == 0:
            log.debug("seek_cancelled_out")
            return None
        try:
            target = max(0.0, self._position_ms_fn() / 1000.0 + offset)
            log.debug("seek_flush", extra={"offset": offset, "target": target})
            self._seek_fn(target)
        except Exception as exc:  # noqa: BLE001
            log.warning("seek_flush_failed", extra={"offset": offset, "error": str(exc)})
            return None
        return target

    def _restart_timer(self, delay: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        timer = self._timer_factory(delay, self._on_timer)
        if hasattr(timer, "daemon"):
            timer.daemon = True
        self._timer = timer
        timer.start()

    def _on_timer(self) -> None:
        with self._lock:
            if self.deadline is None:
                return
            remaining = self.deadline - self._clock()
            if remaining > 0:
                self._restart_timer(remaining)
                return
        self.poll()


__all__ = ["DebouncedSeeker"]
