"""Periodic room sweep.

Disconnect handling removes memberships as sessions close, but a crash
or a lost network connection can skip that cleanup. The sweeper runs
independently of any single disconnect and deletes rooms left without
members, pruning memberships whose session is gone.
"""

import logging
import threading
import typing as t
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


_MIN_INTERVAL = 1.0  # Minimum sweep interval to prevent tight loops


@dataclass
class RoomSweeper:
    """Runs ``RoomLifecycleManager.sweep`` in a background thread.

    Parameters
    ----------
    lifecycle
        Room lifecycle manager
    interval_seconds : float
        Time between sweeps. Default is 60.
    """

    lifecycle: t.Any
    interval_seconds: float = 60.0
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False)
    _thread: threading.Thread | None = field(default=None, init=False)
    _start_lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    @property
    def interval(self) -> float:
        return max(self.interval_seconds, _MIN_INTERVAL)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread. Calling it on a running sweeper does nothing."""
        with self._start_lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._sweep_loop, daemon=True, name="room-sweeper"
            )
            self._thread.start()
            log.debug(f"Room sweeper started (interval: {self.interval}s)")

    def stop(self) -> None:
        """Stop the sweep thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    def run_once(self) -> dict[str, int] | None:
        """Run a single sweep, logging instead of raising on failure."""
        try:
            return self.lifecycle.sweep()
        except Exception as e:
            # Store might have a brief hiccup; the next sweep retries.
            log.warning(f"Room sweep failed (will retry): {e}")
            return None

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.run_once()
