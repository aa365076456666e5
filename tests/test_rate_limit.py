"""Tests for the admission controller and rate-limited HTTP client."""

import threading
from unittest.mock import MagicMock

import pytest
import requests

from motapi import (
    AdmissionController,
    HttpClient,
    MotEventListener,
    RateLimitConfig,
    RateLimitedHttpClient,
)
from motapi._rate_limit import ONE_DAY


class FakeClock:
    """Manually driven clock; sleeping advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_controller(clock: FakeClock, **kwargs) -> AdmissionController:
    return AdmissionController(clock=clock, sleep=clock.sleep, **kwargs)


# =============================================================================
# Initialization
# =============================================================================


class TestAdmissionControllerInit:
    """Tests for AdmissionController initialization."""

    def test_defaults(self):
        controller = AdmissionController()

        assert controller.daily_quota == 500_000
        assert controller.burst_limit == 10
        assert controller.rps_limit == 15
        assert controller.poll_interval == 0.1
        assert controller.remaining_quota == 500_000
        assert controller.burst_tokens == 10
        assert controller.requests_last_second == 0

    def test_quota_resets_one_day_after_creation(self):
        clock = FakeClock(start=50.0)
        controller = make_controller(clock)

        assert controller.quota_reset_at == 50.0 + ONE_DAY

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"daily_quota": -1}, "daily_quota must be non-negative"),
            ({"burst_limit": 0}, "burst_limit must be greater than 0"),
            ({"rps_limit": 0}, "rps_limit must be greater than 0"),
            ({"poll_interval": 0}, "poll_interval must be greater than 0"),
        ],
    )
    def test_rejects_invalid_parameters(self, kwargs, message):
        with pytest.raises(AssertionError, match=message):
            AdmissionController(**kwargs)

    def test_from_config(self):
        config = RateLimitConfig(daily_quota=100, burst_limit=3, rps_limit=2, poll_interval=0.5)

        controller = AdmissionController.from_config(config)

        assert controller.daily_quota == 100
        assert controller.burst_limit == 3
        assert controller.rps_limit == 2
        assert controller.poll_interval == 0.5


# =============================================================================
# Admission
# =============================================================================


class TestAdmission:
    """Tests for AdmissionController.acquire()."""

    def test_ten_instant_calls_are_admitted_without_waiting(self):
        clock = FakeClock()
        controller = make_controller(clock)

        for _ in range(10):
            controller.acquire()

        assert clock.sleeps == []
        assert controller.requests_last_second == 10

    def test_call_beyond_rps_limit_waits_for_the_window_to_slide(self):
        clock = FakeClock()
        controller = make_controller(clock, rps_limit=10)

        for _ in range(10):
            controller.acquire()
        assert clock.sleeps == []

        controller.acquire()

        # Admitted only once the first batch fell out of the trailing second
        assert clock.sleeps
        assert all(s == 0.1 for s in clock.sleeps)
        assert clock.now >= 1000.0 + 1.0
        assert controller.requests_last_second == 1

    def test_default_rps_limit_admits_fifteen_per_second(self):
        clock = FakeClock()
        controller = make_controller(clock)

        for _ in range(15):
            controller.acquire()
        assert clock.sleeps == []

        controller.acquire()
        assert len(clock.sleeps) > 0

    def test_rps_window_prunes_old_timestamps(self):
        clock = FakeClock()
        controller = make_controller(clock, rps_limit=2)

        controller.acquire()
        clock.advance(0.5)
        controller.acquire()
        clock.advance(0.6)

        # first admission is now older than one second
        assert controller.requests_last_second == 1
        controller.acquire()
        assert clock.sleeps == []

    def test_exhausted_daily_quota_blocks_until_reset(self):
        clock = FakeClock(start=0.0)
        controller = make_controller(clock, daily_quota=2, poll_interval=3600.0)

        controller.acquire()
        controller.acquire()
        assert controller.remaining_quota == 0

        controller.acquire()

        # waited until the daily window elapsed, then quota was restored and decremented
        assert clock.now >= ONE_DAY
        assert controller.remaining_quota == 1
        assert controller.quota_reset_at == clock.now + ONE_DAY

    def test_quota_restored_when_reset_time_passed(self):
        clock = FakeClock(start=0.0)
        controller = make_controller(clock, daily_quota=5)

        for _ in range(3):
            controller.acquire()
        assert controller.remaining_quota == 2

        clock.advance(ONE_DAY)
        controller.acquire()

        assert controller.remaining_quota == 4
        assert controller.quota_reset_at == ONE_DAY + ONE_DAY

    def test_zero_daily_quota_goes_negative_without_clamping(self):
        clock = FakeClock(start=0.0)
        controller = make_controller(clock, daily_quota=0)
        clock.advance(ONE_DAY)

        controller.acquire()

        assert controller.remaining_quota == -1

    def test_burst_tokens_only_consumed_when_bucket_is_full(self):
        clock = FakeClock()
        controller = make_controller(clock, burst_limit=10, rps_limit=100)

        controller.acquire()
        assert controller.burst_tokens == 9

        for _ in range(20):
            controller.acquire()
        assert controller.burst_tokens == 9
        assert clock.sleeps == []

    def test_empty_burst_bucket_keeps_caller_polling(self):
        clock = FakeClock()
        controller = make_controller(clock, burst_limit=1, rps_limit=100)

        controller.acquire()
        assert controller.burst_tokens == 0

        # Tokens are only refilled on admission, so an empty bucket stays empty.
        class StopPolling(Exception):
            pass

        attempts = []

        def limited_sleep(seconds):
            attempts.append(seconds)
            if len(attempts) >= 3:
                raise StopPolling()

        controller._sleep = limited_sleep
        with pytest.raises(StopPolling):
            controller.acquire()
        assert attempts == [0.1, 0.1, 0.1]

    def test_notifies_listeners_once_per_waiting_call(self):
        clock = FakeClock()
        listener = MagicMock(spec=MotEventListener)
        controller = make_controller(clock, rps_limit=1, listeners=[listener])

        controller.acquire()
        controller.acquire()

        listener.on_admission_wait.assert_called_once_with(waited=0.0)


class TestAdmissionConcurrency:
    """Admission must never over-admit under concurrent callers."""

    def test_concurrent_callers_never_exceed_rps_limit(self):
        clock = FakeClock()
        clock_lock = threading.Lock()

        def sleep(seconds):
            with clock_lock:
                clock.now += seconds

        class RecordingController(AdmissionController):
            def __init__(self, **kwargs):
                super().__init__(**kwargs)
                self.history: list[float] = []

            def _record_admission(self, now):
                self.history.append(now)
                super()._record_admission(now)

        controller = RecordingController(rps_limit=5, clock=clock, sleep=sleep)

        threads = [threading.Thread(target=controller.acquire) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = controller.history
        assert len(history) == 20
        for ts in history:
            assert sum(1 for other in history if ts - 1.0 < other <= ts) <= 5


# =============================================================================
# RateLimitedHttpClient
# =============================================================================


class MockHttpClient(HttpClient):
    """Mock HTTP client for testing."""

    def __init__(self):
        self.get_calls = []
        self.put_calls = []
        self.response = MagicMock(spec=requests.Response)
        self.response.status_code = 200

    def get(self, url, headers=None, timeout=30):
        self.get_calls.append({"url": url, "headers": headers, "timeout": timeout})
        return self.response

    def put(self, url, data=None, headers=None, timeout=30):
        self.put_calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return self.response


class TestRateLimitedHttpClient:
    """Tests for the RateLimitedHttpClient decorator."""

    def test_requires_delegate(self):
        with pytest.raises(AssertionError, match="Delegate HTTP client is required"):
            RateLimitedHttpClient(delegate=None)  # type: ignore

    def test_creates_default_controller(self):
        client = RateLimitedHttpClient(delegate=MockHttpClient())

        assert isinstance(client.controller, AdmissionController)
        assert client.controller.rps_limit == 15

    def test_get_acquires_admission_before_delegating(self):
        delegate = MockHttpClient()
        controller = MagicMock(spec=AdmissionController)
        order = []
        controller.acquire.side_effect = lambda: order.append("acquire")
        delegate.get = MagicMock(side_effect=lambda *a, **k: order.append("get") or delegate.response)
        client = RateLimitedHttpClient(delegate=delegate, controller=controller)

        response = client.get("https://example.com/vin/1", timeout=10)

        assert order == ["acquire", "get"]
        assert response is delegate.response
        delegate.get.assert_called_once_with("https://example.com/vin/1", None, 10)

    def test_put_is_rate_limited_too(self):
        delegate = MockHttpClient()
        controller = MagicMock(spec=AdmissionController)
        client = RateLimitedHttpClient(delegate=delegate, controller=controller)

        client.put("https://example.com/credentials", data={"email": "a@b.c"})

        controller.acquire.assert_called_once()
        assert delegate.put_calls == [
            {"url": "https://example.com/credentials", "data": {"email": "a@b.c"}, "headers": None, "timeout": 30}
        ]

    def test_shares_budget_between_get_and_put(self):
        clock = FakeClock()
        controller = make_controller(clock, rps_limit=2)
        client = RateLimitedHttpClient(delegate=MockHttpClient(), controller=controller)

        client.get("https://example.com/a")
        client.put("https://example.com/b")
        assert clock.sleeps == []

        client.get("https://example.com/c")
        assert clock.sleeps
