"""
Client-side rate limiting for the motapi SDK.

The MOT History API enforces three independent limits per client:

- a daily quota (500,000 requests per rolling 24h window),
- a burst allowance (10 requests),
- a requests-per-second ceiling (15 RPS).

`AdmissionController` tracks all three and blocks callers until a call is
admissible. `RateLimitedHttpClient` is the HttpClient decorator that puts
every outbound request through the controller.

Example:
    >>> from motapi._rate_limit import AdmissionController, RateLimitedHttpClient
    >>> from motapi._http import StandaloneHttpClient
    >>> client = RateLimitedHttpClient(
    ...     delegate=StandaloneHttpClient(auth_provider=auth, api_key="my-api-key"),
    ...     controller=AdmissionController(rps_limit=15),
    ... )
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, override

import requests

from motapi._event_listeners import notify_listeners
from motapi._http import HttpClient

if TYPE_CHECKING:
    from motapi._config import RateLimitConfig
    from motapi._event_listeners import MotEventListener

logger = logging.getLogger(__name__)

ONE_DAY = 24 * 60 * 60
ONE_SECOND = 1.0


# =============================================================================
# Admission Controller
# =============================================================================


class AdmissionController:
    """
    Blocking admission gate enforcing the daily quota, burst and RPS limits.

    `acquire()` never fails: it polls every `poll_interval` seconds until the
    call is admissible, then applies the post-admission update. The check and
    the update happen under the same lock, so two threads can never both be
    admitted against the same free slot. Sleeping happens outside the lock.

    Burst bookkeeping refills one token and consumes one on every admission,
    so the bucket only shrinks when it was already full. There is no
    time-based refill.

    Example:
        >>> controller = AdmissionController(rps_limit=5)
        >>> controller.acquire()  # returns immediately
        >>> controller.remaining_quota
        499999

    Args:
        daily_quota: Requests allowed per 24h window.
        burst_limit: Capacity of the burst allowance.
        rps_limit: Requests allowed per trailing second.
        poll_interval: Seconds to sleep between admission checks.
        listeners: Observers notified when a call has to wait.
        clock: Time source in seconds. Defaults to time.monotonic.
        sleep: Sleep function. Defaults to time.sleep.
    """

    DEFAULT_DAILY_QUOTA = 500_000
    DEFAULT_BURST_LIMIT = 10
    DEFAULT_RPS_LIMIT = 15
    DEFAULT_POLL_INTERVAL = 0.1

    def __init__(
        self,
        daily_quota: int = DEFAULT_DAILY_QUOTA,
        burst_limit: int = DEFAULT_BURST_LIMIT,
        rps_limit: int = DEFAULT_RPS_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        listeners: list[MotEventListener] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        assert daily_quota is not None, "daily_quota cannot be None."
        assert daily_quota >= 0, "daily_quota must be non-negative."
        assert burst_limit is not None, "burst_limit cannot be None."
        assert burst_limit > 0, "burst_limit must be greater than 0."
        assert rps_limit is not None, "rps_limit cannot be None."
        assert rps_limit > 0, "rps_limit must be greater than 0."
        assert poll_interval > 0, "poll_interval must be greater than 0."

        self.daily_quota = daily_quota
        self.burst_limit = burst_limit
        self.rps_limit = rps_limit
        self.poll_interval = poll_interval
        self.listeners: list[MotEventListener] = listeners if listeners is not None else []
        self._clock = clock
        self._sleep = sleep

        now = self._clock()
        self._remaining = daily_quota
        self._reset_at = now + ONE_DAY
        self._burst_tokens = burst_limit
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        listeners: list[MotEventListener] | None = None,
    ) -> AdmissionController:
        """Create a controller from a RateLimitConfig section."""
        return cls(
            daily_quota=config.daily_quota,
            burst_limit=config.burst_limit,
            rps_limit=config.rps_limit,
            poll_interval=config.poll_interval,
            listeners=listeners,
        )

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def remaining_quota(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def quota_reset_at(self) -> float:
        with self._lock:
            return self._reset_at

    @property
    def burst_tokens(self) -> int:
        with self._lock:
            return self._burst_tokens

    @property
    def requests_last_second(self) -> int:
        with self._lock:
            return self._count_recent(self._clock())

    # -------------------------------------------------------------------------
    # Admission
    # -------------------------------------------------------------------------

    def acquire(self) -> None:
        """
        Block until the next call is admissible, then record it.

        Never raises: waiting is backpressure, not an error.
        """
        start_time = self._clock()
        waiting = False

        while True:
            with self._lock:
                now = self._clock()
                if self._is_admissible(now):
                    self._record_admission(now)
                    if waiting:
                        logger.debug(f"Admitted after waiting {now - start_time:.2f}s.")
                    return
                state = f"remaining_quota={self._remaining}, burst_tokens={self._burst_tokens}"

            if not waiting:
                waiting = True
                logger.debug(f"Rate limit reached ({state}, rps_limit={self.rps_limit}). Waiting...")
                notify_listeners(self.listeners, "on_admission_wait", waited=now - start_time)

            self._sleep(self.poll_interval)

    def _is_admissible(self, now: float) -> bool:
        """Check all three limits. Caller must hold the lock."""
        if self._remaining <= 0 and now < self._reset_at:
            return False

        if self._burst_tokens <= 0:
            return False

        if self._count_recent(now) >= self.rps_limit:
            return False

        return True

    def _record_admission(self, now: float) -> None:
        """Apply the post-admission update. Caller must hold the lock."""
        if now >= self._reset_at:
            logger.info("Daily quota window elapsed. Restoring quota.")
            self._remaining = self.daily_quota
            self._reset_at = now + ONE_DAY
        self._remaining -= 1

        self._burst_tokens = min(self._burst_tokens + 1, self.burst_limit)
        self._burst_tokens -= 1

        self._timestamps.append(now)
        window_start = now - ONE_SECOND
        while self._timestamps and self._timestamps[0] <= window_start:
            self._timestamps.popleft()

    def _count_recent(self, now: float) -> int:
        window_start = now - ONE_SECOND
        return sum(1 for t in self._timestamps if t > window_start)


# =============================================================================
# Rate-Limited Decorator
# =============================================================================


class RateLimitedHttpClient(HttpClient):
    """
    HTTP client decorator that admits every request through an AdmissionController.

    Both GET and PUT requests count against the MOT History API limits,
    so both are gated.

    Example:
        >>> client = RateLimitedHttpClient(
        ...     delegate=StandaloneHttpClient(auth_provider=auth, api_key="key"),
        ...     controller=AdmissionController(),
        ... )

    Args:
        delegate: The underlying HTTP client to delegate requests to.
        controller: The admission controller shared by all requests.
    """

    def __init__(self, delegate: HttpClient, controller: AdmissionController | None = None):
        assert delegate is not None, "Delegate HTTP client is required."

        self.delegate = delegate
        self.controller = controller or AdmissionController()

    @override
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """Wait for admission, then delegate the GET request."""
        self.controller.acquire()
        return self.delegate.get(url, headers, timeout)

    @override
    def put(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 30,
    ) -> requests.Response:
        """Wait for admission, then delegate the PUT request."""
        self.controller.acquire()
        return self.delegate.put(url, data, headers, timeout)
