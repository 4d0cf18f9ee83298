"""Implementation of the request-rate governor.

Controls the frequency of outgoing requests to the registry API. The budget is
a fixed window: the first acquisition after an idle period opens a window and
schedules a single reset timer; when the timer fires the budget is replenished
and the window closes until the next acquisition.
"""

import logging
import threading
import time
from typing import Any, Callable, List, Optional

from crptapi.domain.errors import ClientClosedError, InvalidConfigurationError, RateLimitedError
from crptapi.domain.events.api_events import (
    DomainEvent, EventListener, PermitDenied, WindowReset, WindowStarted, dispatch_event
)
from crptapi.domain.models.common import RateLimitPolicy, TimeUnit

logger = logging.getLogger(__name__)

# Signature of threading.Timer: factory(interval, function, args=...)
TimerFactory = Callable[..., Any]


class RateGovernor:
    """Fixed-window rate governor shared by concurrent callers.

    All mutable state (remaining permits, the live reset timer, the closed
    flag) is guarded by one lock. A window is active exactly while a reset
    timer handle is held, so at most one timer is ever scheduled.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        timer_factory: TimerFactory = threading.Timer,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the governor.

        Args:
            capacity: Maximum number of permits granted per window.
            window_seconds: Length of a window in seconds.
            timer_factory: Creates the reset timer; ``threading.Timer`` by default.
            event_listener: Optional callable receiving window and denial events.

        Raises:
            InvalidConfigurationError: If ``capacity`` or ``window_seconds`` is not positive.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise InvalidConfigurationError(f"Request limit must be an integer, got {capacity!r}")
        if capacity <= 0:
            raise InvalidConfigurationError(f"Request limit must be positive, got {capacity}")
        if window_seconds <= 0:
            raise InvalidConfigurationError(f"Time window must be positive, got {window_seconds}")

        self._capacity = capacity
        self._window_seconds = float(window_seconds)
        self._timer_factory = timer_factory
        self._event_listener = event_listener

        self._lock = threading.Lock()
        self._replenished = threading.Condition(self._lock)
        self._remaining = capacity
        self._timer: Optional[Any] = None
        self._generation = 0
        self._window_started_at = 0.0
        self._closed = False
        logger.info(f"RateGovernor initialized: {capacity} requests / {self._window_seconds:g} seconds")

    @classmethod
    def per(cls, time_unit: TimeUnit, request_limit: int, **kwargs: Any) -> "RateGovernor":
        """Creates a governor allowing ``request_limit`` calls per one ``time_unit``."""
        if request_limit <= 0:
            raise InvalidConfigurationError(f"Request limit must be positive, got {request_limit}")
        return cls(request_limit, time_unit.to_seconds(1), **kwargs)

    @classmethod
    def from_policy(cls, policy: RateLimitPolicy, **kwargs: Any) -> "RateGovernor":
        return cls(policy.capacity, policy.window_seconds, **kwargs)

    # --- Read-only state ---

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def window_active(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # --- Acquisition ---

    def try_acquire(self) -> bool:
        """Takes one permit without blocking.

        Returns:
            True if a permit was granted, False if the window is exhausted.

        Raises:
            ClientClosedError: If the governor has been closed.
        """
        events: List[DomainEvent] = []
        try:
            with self._lock:
                self._ensure_open_locked()
                self._start_window_locked(events)
                granted = self._take_locked()
                if not granted:
                    events.append(PermitDenied(capacity=self._capacity))
        finally:
            self._dispatch(events)

        if granted:
            logger.debug("Rate limit permission granted.")
        else:
            logger.info("The request limit has been reached for this time window.")
        return granted

    def wait_for_permission(self, timeout: Optional[float] = None) -> None:
        """Blocks until a permit is granted.

        The caller sleeps on a condition that the reset timer notifies, then
        retries under the lock.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely.

        Raises:
            RateLimitedError: If ``timeout`` elapses before a permit is available.
            ClientClosedError: If the governor is closed before or during the wait.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        events: List[DomainEvent] = []
        try:
            with self._replenished:
                while True:
                    self._ensure_open_locked()
                    self._start_window_locked(events)
                    if self._take_locked():
                        logger.debug("Rate limit permission granted.")
                        return
                    if deadline is None:
                        logger.debug("Rate limit reached. Waiting for the window to reset.")
                        self._replenished.wait()
                        continue
                    time_left = deadline - time.monotonic()
                    if time_left <= 0:
                        logger.info(f"Gave up waiting for a permit after {timeout:.2f} seconds.")
                        raise RateLimitedError(
                            f"No permit became available within {timeout:.2f} seconds",
                            wait_timeout=timeout,
                        )
                    logger.debug(f"Rate limit reached. Waiting up to {time_left:.2f} seconds.")
                    self._replenished.wait(time_left)
        finally:
            self._dispatch(events)

    def wait_time(self) -> float:
        """Estimates the seconds until a permit can be granted.

        Returns 0 if a request can be made immediately.
        """
        with self._lock:
            if self._timer is None or self._remaining > 0:
                return 0.0
            elapsed = time.monotonic() - self._window_started_at
            return max(0.0, self._window_seconds - elapsed)

    # --- Lifecycle ---

    def close(self) -> None:
        """Cancels the pending reset timer and wakes any waiting callers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            timer, self._timer = self._timer, None
            self._replenished.notify_all()
        if timer is not None:
            timer.cancel()
        logger.debug("RateGovernor closed.")

    def __enter__(self) -> "RateGovernor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Internals (caller holds the lock) ---

    def _ensure_open_locked(self) -> None:
        if self._closed:
            raise ClientClosedError("Rate governor is closed")

    def _start_window_locked(self, events: List[DomainEvent]) -> None:
        if self._timer is not None:
            return
        self._generation += 1
        timer = self._timer_factory(self._window_seconds, self._reset, args=(self._generation,))
        timer.daemon = True
        timer.start()
        self._timer = timer
        self._remaining = self._capacity
        self._window_started_at = time.monotonic()
        events.append(WindowStarted(capacity=self._capacity, window_seconds=self._window_seconds))
        logger.debug(f"Rate limit window opened for {self._window_seconds:g} seconds.")

    def _take_locked(self) -> bool:
        if self._remaining <= 0:
            return False
        self._remaining -= 1
        return True

    def _reset(self, generation: int) -> None:
        # Runs on the timer thread.
        with self._lock:
            if self._timer is None or generation != self._generation:
                return
            permits_used = self._capacity - self._remaining
            self._remaining = self._capacity
            self._timer = None
            self._replenished.notify_all()
        logger.debug(f"Rate limit window reset after {permits_used} permits.")
        self._dispatch([WindowReset(capacity=self._capacity, permits_used=permits_used)])

    def _dispatch(self, events: List[DomainEvent]) -> None:
        for event in events:
            dispatch_event(event, self._event_listener)
